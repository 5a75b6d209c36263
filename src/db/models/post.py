from datetime import UTC, datetime
import uuid

from sqlalchemy import Column, DateTime, Index, Text, Uuid

from ..database import Base

POSTS_TABLE = "blog_posts"
SLUG_INDEX_NAME = "idx_blog_posts_slug"


def utc_now() -> datetime:
    return datetime.now(UTC)


POST_INDEXES = (
    # Slug is the external identifier; uniqueness is enforced here
    Index(SLUG_INDEX_NAME, "slug", unique=True),
    # Public listing is ordered by publication date, newest first
    Index(
        "ix_blog_posts_published_at",
        "published_at",
        postgresql_ops={"published_at": "DESC"},
    ),
)


class Post(Base):
    """SQLAlchemy model representing a blog post.

    Attributes:
        id (uuid.UUID): Surrogate primary key.
        slug (str): Unique, URL-safe external identifier.
        title (str): Post title.
        published_at (datetime): Date attributed to the post, supplied by the author.
        description (str | None): SEO summary.
        keywords (str | None): Comma-separated SEO keywords.
        content (str): HTML body, rendered verbatim.
        created_at (datetime): Creation timestamp (UTC).
        updated_at (datetime): Last modification timestamp (UTC).
    """

    __tablename__ = POSTS_TABLE
    __table_args__ = POST_INDEXES

    id = Column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        doc="Surrogate primary key",
    )
    slug = Column(
        Text,
        nullable=False,
        doc="Unique URL-safe identifier derived from the title",
    )
    title = Column(
        Text,
        nullable=False,
        doc="Post title",
    )
    published_at = Column(
        DateTime(timezone=True),
        nullable=False,
        doc="Publication date chosen by the author",
    )
    description = Column(
        Text,
        nullable=True,
        doc="SEO description",
    )
    keywords = Column(
        Text,
        nullable=True,
        doc="Comma-separated SEO keywords",
    )
    content = Column(
        Text,
        nullable=False,
        doc="HTML body",
    )
    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
        doc="Row creation timestamp",
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
        doc="Last modification timestamp",
    )

    def __repr__(self) -> str:
        """Return the formal string representation for debugging."""
        title_value = getattr(self, "title", None)
        if isinstance(title_value, str) and title_value:
            title_repr = title_value[:30] + "..." if len(title_value) > 30 else title_value
        else:
            title_repr = ""
        return f"<Post(slug={self.slug!r}, title={title_repr!r})>"

    def __str__(self) -> str:
        title = getattr(self, "title", "") or ""
        return f"Post '{title}' ({self.slug})"

    @property
    def keyword_list(self) -> list[str]:
        """Return the SEO keywords split on commas, blanks dropped."""
        raw = getattr(self, "keywords", None) or ""
        return [k.strip() for k in raw.split(",") if k.strip()]
