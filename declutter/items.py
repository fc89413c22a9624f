"""Pydantic models for strategy output and the final extraction response."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

# ---------------------------------------------------------------------------
# Page metadata records
# ---------------------------------------------------------------------------

class MetaTagItem(BaseModel):
    """One ``<meta>`` element as it appeared in the document."""

    name: str | None = None
    property: str | None = None
    content: str = ""


class MiniAppAction(BaseModel):
    model_config = {"populate_by_name": True}

    type: str = ""  # launch_frame | view_token
    url: str | None = None
    name: str | None = None
    splash_image_url: str | None = Field(default=None, alias="splashImageUrl")
    splash_background_color: str | None = Field(
        default=None, alias="splashBackgroundColor",
    )


class MiniAppButton(BaseModel):
    title: str = ""
    action: MiniAppAction = Field(default_factory=MiniAppAction)


class MiniAppEmbed(BaseModel):
    """Farcaster mini-app embed carried in the ``fc:frame`` meta tag."""

    model_config = {"populate_by_name": True}

    version: str = ""
    image_url: str = Field(default="", alias="imageUrl")
    button: MiniAppButton = Field(default_factory=MiniAppButton)


# ---------------------------------------------------------------------------
# Strategy output
# ---------------------------------------------------------------------------

class ExtractedContent(BaseModel):
    """What one strategy invocation produced.  Never reused across attempts."""

    title: str = ""
    content: str = ""
    author: str | None = None
    published: str | None = None
    excerpt: str | None = None
    site_name: str | None = None
    content_type: str | None = None
    # Strategy-specific values (scores, matched container, ...) for debugging
    variables: dict[str, Any] = Field(default_factory=dict)

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v or ""

    @field_validator("author", "published", "excerpt", "site_name", "content_type", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v


# ---------------------------------------------------------------------------
# Final response
# ---------------------------------------------------------------------------

class ResponseMetadata(BaseModel):
    model_config = {"frozen": True}

    canonical_url: str | None = None
    amp_url: str | None = None
    thumbnail: str | None = None
    favicon: str | None = None
    word_count: int = 0
    reading_time_minutes: int = 0
    domain: str | None = None
    schemas: list[dict[str, Any]] = Field(default_factory=list)
    mini_app: MiniAppEmbed | None = None
    retried: bool = False


class Response(BaseModel):
    """Canonical output of :func:`declutter.extract`."""

    model_config = {"frozen": True}

    title: str = ""
    content: str
    text_content: str = ""
    content_markdown: str | None = None
    excerpt: str | None = None
    author: str | None = None
    site_name: str | None = None
    published: str | None = None
    language: str | None = None
    content_type: str | None = None
    is_mobile: bool = False
    extractor_used: str = "generic"
    meta_tags: list[MetaTagItem] = Field(default_factory=list)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    @field_validator("content")
    @classmethod
    def require_content(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("content must not be empty")
        return v
