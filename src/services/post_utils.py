from datetime import UTC, datetime
import re

_WHITESPACE_RE = re.compile(r"\s+")
_NON_SLUG_RE = re.compile(r"[^\w-]+", re.ASCII)
_DASHES_RE = re.compile(r"-{2,}")
_TAG_RE = re.compile(r"<[^>]+>")

DEFAULT_SNIPPET_LENGTH = 250
MIN_SNIPPET_TEXT_LENGTH = 10
ELLIPSIS = "..."

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})
DEFAULT_BLOG_TITLE = "Blog Posts"


def slugify(value: str) -> str:
    """Derive a URL-safe slug: lowercase ASCII word characters separated by single hyphens."""
    slug = _WHITESPACE_RE.sub("-", str(value).lower().strip())
    slug = _NON_SLUG_RE.sub("", slug)
    slug = _DASHES_RE.sub("-", slug)
    return slug.strip("-")


def html_to_text(html: str | None) -> str:
    if not html:
        return ""
    return _WHITESPACE_RE.sub(" ", _TAG_RE.sub(" ", html)).strip()


def generate_snippet(html: str | None, max_length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    """Plain-text preview of HTML content.

    Tags become spaces and whitespace is collapsed. Long text is cut on a word
    boundary and suffixed with an ellipsis; the result, ellipsis included,
    never exceeds ``max_length``. Trivially short text yields an empty snippet.
    """
    text = html_to_text(html)
    if len(text) > max_length:
        budget = max(max_length - len(ELLIPSIS), 1)
        # Look one character past the budget so a cut right before a space keeps the whole word
        window = text[: budget + 1]
        cut = window.rfind(" ")
        truncated = window[:cut] if cut > 0 else text[:budget]
        return truncated.rstrip() + ELLIPSIS
    return text if len(text) > MIN_SNIPPET_TEXT_LENGTH else ""


def parse_published_at(value: str) -> datetime | None:
    """Parse an ISO-8601 date or datetime; naive values are taken as UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip())
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def blog_title_for_host(host: str | None) -> str:
    if not host:
        return DEFAULT_BLOG_TITLE
    hostname = host.split(":", 1)[0].lower()
    if hostname in LOCAL_HOSTS:
        return DEFAULT_BLOG_TITLE
    name = re.sub(r"^www\.", "", hostname).split(".", 1)[0]
    if not name:
        return DEFAULT_BLOG_TITLE
    return f"{name[0].upper()}{name[1:]}'s Blog"
