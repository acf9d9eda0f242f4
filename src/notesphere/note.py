"""Core dataclasses: the signed-in identity, its profile record, and notes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Identity:
    """An authenticated account as issued by the auth gateway."""

    uid: str
    email: str
    display_name: str | None = None


@dataclass
class UserProfile:
    """The ``users/{uid}`` record written once at registration."""

    name: str
    email: str
    created_at: datetime

    @classmethod
    def from_fields(cls, fields: dict[str, Any]) -> "UserProfile":
        return cls(
            name=fields.get("name") or "",
            email=fields.get("email") or "",
            created_at=fields.get("createdAt") or utcnow(),
        )

    def to_fields(self) -> dict[str, Any]:
        return {"name": self.name, "email": self.email, "createdAt": self.created_at}


@dataclass
class Note:
    """A single text note owned by exactly one identity."""

    id: str
    owner_id: str
    title: str
    content: str
    created_at: datetime
    #: Unset until the first update, then stamped on every update
    edited_at: datetime | None = None

    @classmethod
    def from_document(cls, doc_id: str, fields: dict[str, Any]) -> "Note":
        return cls(
            id=doc_id,
            owner_id=fields["ownerId"],
            title=fields.get("title", ""),
            content=fields.get("content", ""),
            created_at=fields["createdAt"],
            edited_at=fields.get("editedAt"),
        )

    @property
    def display_time(self) -> datetime:
        """Timestamp shown next to the note: last edit, else creation."""
        return self.edited_at or self.created_at

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or content."""
        q = query.lower()
        return q in self.title.lower() or q in self.content.lower()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at,
            "edited_at": self.edited_at,
            "updated": self.display_time,
        }
