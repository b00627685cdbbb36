"""Repository classes encapsulating database operations.

Each repository is small and focused on a single document type (users,
posts). Repositories return SQLModel objects and perform commits/refreshes
where appropriate. Array columns are flagged modified on save so that a
replaced list is always written back.
"""

from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm.attributes import flag_modified
from sqlmodel import Session, select

from . import models


def _save(session: Session, obj, array_fields: Iterable[str] = ()):
    for name in array_fields:
        flag_modified(obj, name)
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


class UserRepository:
    """CRUD operations for `User` documents."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, user: models.User) -> models.User:
        """Persist a new user and return the managed instance."""
        return _save(self.session, user)

    def save(self, user: models.User, *array_fields: str) -> models.User:
        """Write back a modified user, flagging any replaced list fields."""
        return _save(self.session, user, array_fields)

    def save_all(self, changes: Iterable[Tuple[models.User, str]]) -> None:
        """Write several `(user, replaced_list_field)` changes in one commit."""
        changed = []
        for user, field in changes:
            flag_modified(user, field)
            self.session.add(user)
            changed.append(user)
        self.session.commit()
        for user in changed:
            self.session.refresh(user)

    def get(self, user_id: int) -> Optional[models.User]:
        """Get a `User` by primary key."""
        return self.session.get(models.User, user_id)

    def get_by_email(self, email: str) -> Optional[models.User]:
        """Return a `User` by email or `None` if not found."""
        stmt = select(models.User).where(models.User.email == email.lower())
        return self.session.exec(stmt).first()

    def get_many(self, user_ids: Iterable[int]) -> Dict[int, models.User]:
        """Resolve a collection of ids to a `{id: User}` map.

        Ids with no matching row are simply absent from the result.
        """
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        stmt = select(models.User).where(models.User.id.in_(sorted(ids)))
        return {u.id: u for u in self.session.exec(stmt).all()}

    def search(self, term: Optional[str] = None) -> List[models.User]:
        """Return users whose name or email contains `term` (case-insensitive)."""
        stmt = select(models.User)
        if term:
            # autoescape keeps % and _ literal
            needle = term.lower()
            stmt = stmt.where(or_(
                func.lower(models.User.name).contains(needle, autoescape=True),
                func.lower(models.User.email).contains(needle, autoescape=True),
            ))
        return list(self.session.exec(stmt).all())


class PostRepository:
    """CRUD and feed queries for `Post` documents."""
    def __init__(self, session: Session):
        self.session = session

    def create(self, post: models.Post) -> models.Post:
        return _save(self.session, post)

    def save(self, post: models.Post, *array_fields: str) -> models.Post:
        """Write back a modified post, flagging any replaced list fields."""
        return _save(self.session, post, array_fields)

    def get(self, post_id: int) -> Optional[models.Post]:
        return self.session.get(models.Post, post_id)

    def delete(self, post: models.Post) -> None:
        self.session.delete(post)
        self.session.commit()

    def count(self) -> int:
        stmt = select(func.count()).select_from(models.Post)
        return self.session.exec(stmt).one()

    def page(self, offset: int, limit: int) -> List[models.Post]:
        """Return one page of the feed, newest first.

        Ties on `created_at` are broken by id so pages never overlap.
        """
        stmt = (
            select(models.Post)
            .order_by(models.Post.created_at.desc(), models.Post.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.exec(stmt).all())

    def feed_page(self, page: int, limit: int) -> Tuple[List[models.Post], int]:
        """Return `(posts, total)` for a 1-based `page` of size `limit`."""
        return self.page((page - 1) * limit, limit), self.count()

    def list_by_author(self, author_id: int) -> List[models.Post]:
        """All posts written by `author_id`, newest first."""
        stmt = (
            select(models.Post)
            .where(models.Post.author_id == author_id)
            .order_by(models.Post.created_at.desc(), models.Post.id.desc())
        )
        return list(self.session.exec(stmt).all())
