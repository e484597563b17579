# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import json
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from chatapp.client.storage import KeyValueStorage
from chatapp.logging import get_logger

POSTS_KEY = "chatAppPosts"
CONTACTS_KEY = "chatAppContacts"
FAVORITES_KEY = "chatAppFavorites"

SCHEMA_VERSION = 1
POST_TTL = timedelta(hours=24)

logger = get_logger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(t: datetime) -> datetime:
    # naive timestamps are taken as UTC
    return t if t.tzinfo else t.replace(tzinfo=timezone.utc)


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class UserRecord(_Record):
    """Outward-facing account record as the server returns it."""

    id: Optional[str] = None
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    username: Optional[str] = None
    email: Optional[str] = None
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")

    @property
    def display_name(self) -> Optional[str]:
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.username

    def freshest_timestamp(self) -> Optional[datetime]:
        stamps = [_as_utc(t) for t in (self.last_login, self.created_at) if t is not None]
        return max(stamps) if stamps else None


class Position(_Record):
    x: float = 0.0
    y: float = 0.0


class Post(_Record):
    id: str
    text: str
    author: str = "Anonymous"
    is_anonymous: bool = Field(default=False, alias="isAnonymous")
    timestamp: datetime
    position: Position = Field(default_factory=Position)

    def expired(self, now: datetime) -> bool:
        return _as_utc(now) - _as_utc(self.timestamp) >= POST_TTL


class VersionedList(Generic[T]):
    """A list of typed items kept under one storage key as ``{"version", "items"}``.

    A bare JSON array (what older clients wrote) is read as version 0. Anything
    else that does not validate is dropped from storage and read as empty.
    """

    def __init__(self, storage: KeyValueStorage, key: str, item_type: Type[T]) -> None:
        self.storage = storage
        self.key = key
        self._adapter = TypeAdapter(List[item_type])

    def load(self) -> List[T]:
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []
        try:
            payload = json.loads(raw)
            if isinstance(payload, list):
                items = payload
            elif isinstance(payload, dict) and payload.get("version") == SCHEMA_VERSION:
                items = payload.get("items")
            else:
                raise ValueError(f"unsupported payload for {self.key}")
            return self._adapter.validate_python(items)
        except (ValueError, ValidationError) as e:
            logger.warning("local_cache_discarded", key=self.key, error=str(e))
            self.storage.remove_item(self.key)
            return []

    def save(self, items: List[T]) -> None:
        payload = {"version": SCHEMA_VERSION, "items": self._adapter.dump_python(items, mode="json", by_alias=True)}
        self.storage.set_item(self.key, json.dumps(payload))


class PostBoard:
    """Sticky posts that expire 24 hours after creation."""

    def __init__(self, storage: KeyValueStorage, clock: Callable[[], datetime] = utcnow) -> None:
        self._posts = VersionedList(storage, POSTS_KEY, Post)
        self._clock = clock

    def load(self) -> List[Post]:
        return self.prune()

    def prune(self) -> List[Post]:
        posts = self._posts.load()
        now = self._clock()
        valid = [p for p in posts if not p.expired(now)]
        if len(valid) != len(posts):
            self._posts.save(valid)
        return valid

    def create(self, text: str, author: str = "", is_anonymous: bool = False) -> Post:
        text = (text or "").strip()
        if not text:
            raise ValueError("Post text cannot be empty")
        post = Post(
            id=uuid.uuid4().hex,
            text=text,
            author="Anonymous" if is_anonymous else ((author or "").strip() or "Anonymous"),
            is_anonymous=is_anonymous,
            timestamp=self._clock(),
            position=Position(x=random.random() * 100, y=random.random() * 100),
        )
        posts = self.prune()
        posts.append(post)
        self._posts.save(posts)
        return post

    def move(self, post_id: str, x: float, y: float) -> None:
        posts = self.prune()
        for p in posts:
            if p.id == post_id:
                p.position = Position(x=x, y=y)
        self._posts.save(posts)

    def remove(self, post_id: str) -> None:
        self._posts.save([p for p in self.prune() if p.id != post_id])

    def count_by(self, user: UserRecord) -> int:
        names = {user.username, user.display_name}
        return sum(1 for p in self.load() if p.author in names)


class ContactBook:
    def __init__(self, storage: KeyValueStorage) -> None:
        self._contacts = VersionedList(storage, CONTACTS_KEY, str)
        self._favorites = VersionedList(storage, FAVORITES_KEY, str)

    def contacts(self) -> List[str]:
        return self._contacts.load()

    def favorites(self) -> List[str]:
        return self._favorites.load()

    def toggle_favorite(self, user_id: str) -> bool:
        """Returns True when the user is a favorite afterwards."""
        favs = self.favorites()
        if user_id in favs:
            favs.remove(user_id)
            self._favorites.save(favs)
            return False
        favs.append(user_id)
        self._favorites.save(favs)
        return True

    def add_contact(self, user_id: str) -> None:
        contacts = self.contacts()
        if user_id not in contacts:
            contacts.append(user_id)
            self._contacts.save(contacts)

    def remove_contact(self, user_id: str) -> None:
        self._contacts.save([c for c in self.contacts() if c != user_id])
