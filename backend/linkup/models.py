"""SQLModel data models.

Each class maps to one table whose rows are shaped like documents: reference
lists (followers, following, likes) and embedded comments are stored in JSON
columns on the owning row rather than in join tables.
"""

from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import Column, JSON
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `email`: unique login name, stored lower-cased
    - `password_hash`: hashed password string (never store plaintext)
    - `followers` / `following`: lists of user ids
    - `posts_count`: denormalised count, maintained on post create/delete
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    bio: str = ""
    profile_picture: str = ""
    followers: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    following: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    posts_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)


class Post(SQLModel, table=True):
    """A post in the feed.

    `comments` is an ordered list of embedded comment dicts with the keys
    `id`, `user`, `text`, `created_at` and `updated_at` (ISO strings).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    content: str
    image: str = ""
    author_id: int = Field(foreign_key="user.id", index=True)
    likes: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    comments: List[dict] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)
