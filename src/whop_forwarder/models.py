"""
Domain models for the Whop forwarder.

Messages and users mirror the camelCase payload returned by the Whop
GraphQL API; field aliases keep the Python side snake_case.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WhopModel(BaseModel):
    """Base model for immutable records parsed from Whop payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
        coerce_numbers_to_str=True,
    )


class Channel(BaseModel):
    """A configured chat feed."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Configuration key, e.g. TEST_CHANNEL")
    id: str = Field(..., description="Whop chat feed id")
    name: str = Field(default="", description="Display name")


class FileAttachment(WhopModel):
    """File attached to a chat post."""

    file_url: str = ""

    @field_validator("file_url", mode="before")
    @classmethod
    def parse_nullable_str(cls, v: Any) -> Any:
        return "" if v is None else v


class WhopUser(WhopModel):
    """Author record returned alongside a page of posts."""

    id: str
    username: str = ""
    name: str = ""
    profile_pic: str | None = None

    @field_validator("username", "name", mode="before")
    @classmethod
    def parse_nullable_str(cls, v: Any) -> Any:
        return "" if v is None else v


class WhopMessage(WhopModel):
    """A single chat post, joined with its author when available."""

    id: str
    user_id: str = ""
    content: str | None = ""
    created_at: str = ""
    feed_id: str = ""
    feed_type: str = ""
    is_poster_admin: bool = False
    mentioned_user_ids: list[str] = Field(default_factory=list)
    file_attachments: list[FileAttachment] = Field(default_factory=list)
    user: WhopUser | None = None

    @field_validator("mentioned_user_ids", "file_attachments", mode="before")
    @classmethod
    def parse_nullable_list(cls, v: Any) -> Any:
        """GraphQL returns null for empty lists on some posts."""
        return [] if v is None else v

    @field_validator("user_id", "created_at", "feed_id", "feed_type", mode="before")
    @classmethod
    def parse_nullable_str(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("is_poster_admin", mode="before")
    @classmethod
    def parse_nullable_bool(cls, v: Any) -> Any:
        return False if v is None else v

    @property
    def text(self) -> str:
        """Message text with surrounding whitespace removed."""
        return (self.content or "").strip()

    @property
    def attachment_urls(self) -> list[str]:
        """Attachment URLs in post order, skipping empty entries."""
        return [a.file_url for a in self.file_attachments if a.file_url]

    @property
    def author_name(self) -> str:
        """Display name used when relaying the message."""
        if self.user is None:
            return "Unknown"
        return self.user.name or self.user.username or "Unknown"
