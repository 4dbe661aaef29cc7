"""Data model of the synchronized application document.

This module provides:
- Entity models (Book, Friend, Activity, Group, FriendRequest, ...)
- AppData: the whole application document carried by a snapshot
- Snapshot: the unit of synchronization (data + version + timestamp + device)

All models serialize with camelCase keys, which is the shape stored in the
remote ``user_snapshots.snapshot`` column. Unknown keys are kept so that data
written by a newer client survives a round trip.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from bookmarked.core.types import CollectionKind

DEFAULT_AVATAR_URL = "https://images.unsplash.com/photo-1472099645785-5658abf4ff4e?w=200"

BookStatus = Literal["reading", "completed"]


class WireModel(BaseModel):
    """Base model using camelCase keys on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# === Books ===


class BookNote(WireModel):
    """A free-form note attached to a book."""

    id: str
    content: str
    timestamp: str
    page_number: int | None = None


class ProgressEntry(WireModel):
    """A single reading session logged against a book."""

    id: str
    pages_read: int = 0
    time_spent: int = 0
    timestamp: str
    current_page: int = 0
    progress_percentage: float = 0


class Book(WireModel):
    """A book on the user's shelf."""

    id: str
    isbn: str = ""
    title: str
    author: str = ""
    cover_url: str = ""
    synopsis: str | None = None
    page_count: int = 0
    genre: str | None = None
    publisher: str | None = None
    published_date: str | None = None
    status: BookStatus = "reading"
    current_page: int = 0
    progress: float = 0
    rating: float | None = None
    review: str | None = None
    notes: list[BookNote] = Field(default_factory=list)
    progress_entries: list[ProgressEntry] = Field(default_factory=list)
    date_added: str = ""
    date_completed: str | None = None
    total_pages: int | None = None


# === Social ===


class Friend(WireModel):
    """A friend in the user's reading circle."""

    id: str
    name: str
    handle: str = ""
    avatar_url: str = ""
    is_active: bool = False


class ActivityBook(WireModel):
    """Book summary embedded in an activity feed entry."""

    id: str
    title: str
    author: str = ""
    cover_url: str = ""
    progress: float = 0
    status: BookStatus = "reading"
    rating: float | None = None
    total_pages: int | None = None
    current_page: int | None = None


class Activity(WireModel):
    """An entry of the friends activity feed."""

    id: str
    friend: Friend
    type: Literal["finished", "milestone", "started"]
    book: ActivityBook
    timestamp: datetime
    message: str = ""


class Group(WireModel):
    """A reading group the user belongs to."""

    id: str
    name: str
    description: str = ""
    member_count: int = 0
    current_discussion: str = ""
    image_url: str = ""


class FriendRequest(WireModel):
    """A pending incoming friend request."""

    id: str
    friend: Friend
    timestamp: datetime


# === Profile ===


class Challenge(WireModel):
    """The user's current reading challenge."""

    id: str
    title: str
    description: str = ""
    progress: float = 0
    goal: float = 0
    unit: str = ""


class UserStats(WireModel):
    """Aggregated reading statistics."""

    books_read: int = 0
    current_streak: int = 0
    active_friends: int = 0
    milestones: int = 0
    average_rating: float = 0


class UserProfile(WireModel):
    """Profile record shown on the profile screen."""

    name: str = "Guest User"
    handle: str = "@guest"
    friend_code: str = "BOOK-0000"
    avatar_url: str = DEFAULT_AVATAR_URL


# Model of each list collection, keyed by kind
COLLECTION_MODELS: dict[CollectionKind, type[WireModel]] = {
    CollectionKind.BOOKS: Book,
    CollectionKind.FRIENDS: Friend,
    CollectionKind.ACTIVITIES: Activity,
    CollectionKind.GROUPS: Group,
    CollectionKind.FRIEND_REQUESTS: FriendRequest,
}


# === Snapshot ===


class AppData(WireModel):
    """The full application document carried by a snapshot.

    No field is individually versioned; the whole document is replaced on
    restore.
    """

    books: list[Book] = Field(default_factory=list)
    friends: list[Friend] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    groups: list[Group] = Field(default_factory=list)
    friend_requests: list[FriendRequest] = Field(default_factory=list)
    challenge: Challenge | None = None
    user_stats: UserStats = Field(default_factory=UserStats)
    user: UserProfile = Field(default_factory=UserProfile)

    def collection(self, kind: CollectionKind) -> list[Any]:
        """Get the items of a list collection."""
        items: list[Any] = getattr(self, kind.value)
        return items


class Snapshot(WireModel):
    """The unit of synchronization.

    Attributes:
        data: The application document.
        version: Local mutation counter at the time the snapshot was built.
        timestamp: Wall-clock epoch milliseconds when the snapshot was built.
        device_id: Identifier of the installation that produced the snapshot.
    """

    data: AppData
    version: int
    timestamp: int
    device_id: str = "unknown"

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> Snapshot:
        """Parse a snapshot from its stored JSON form.

        Raises:
            pydantic.ValidationError: If the payload is malformed.
        """
        return cls.model_validate(payload)
