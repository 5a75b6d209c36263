from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from services.rebuild_hook import RebuildStatus


class PostSubmission(BaseModel):
    """Create/update request body.

    Every field is optional at the schema level: presence and format are
    checked by the publish pipeline so that missing fields are reported
    together and the attempt is still recorded.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(None, description="Post title (required)")
    content: str | None = Field(None, description="HTML body (required)")
    published_at: str | None = Field(None, description="ISO-8601 publication date (required)")
    slug: str | None = Field(None, description="Custom slug; derived from the title when omitted (create only)")
    description: str | None = Field(None, description="SEO description")
    keywords: str | None = Field(None, description="Comma-separated SEO keywords")


class PostOut(BaseModel):
    slug: str = Field(..., description="Unique post slug")
    title: str = Field(..., description="Post title")
    published_at: datetime = Field(..., description="Publication date")
    description: str | None = Field(None, description="SEO description")
    keywords: str | None = Field(None, description="SEO keywords")
    keyword_list: list[str] = Field(default_factory=list, description="SEO keywords split on commas")
    content: str = Field(..., description="HTML body")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)


class PostSummary(BaseModel):
    slug: str = Field(..., description="Unique post slug")
    title: str = Field(..., description="Post title")
    published_at: datetime = Field(..., description="Publication date")
    snippet: str = Field(..., description="Plain-text preview of the content")


class PublishResult(BaseModel):
    slug: str = Field(..., description="Slug of the written post")
    operation_status: Literal["created", "updated"] = Field(..., description="What happened to the post")
    rebuild_status: RebuildStatus = Field(..., description="Outcome of the rebuild hook dispatch")
