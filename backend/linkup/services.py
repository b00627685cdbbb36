"""Business logic services used by HTTP routers.

This module holds small service classes that coordinate repositories and
auxiliary logic. Services are intentionally thin: they perform validation,
execute domain logic and persist documents via repositories. Failures are
signalled with plain exceptions that routers translate to HTTP statuses:

- `ValueError` for invalid input (400)
- `NotFoundError` (a `LookupError`) for missing documents (404)
- `NotAuthorizedError` (a `PermissionError`) for ownership checks (403)
"""

import logging
import math
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from . import models, repositories, serializers
from .config import settings
from .utils import images

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
USER_SORT_KEYS = ("newest", "oldest", "name", "followers", "posts")

logger = logging.getLogger("linkup.services")


class NotFoundError(LookupError):
    """A referenced user, post or comment does not exist."""


class NotAuthorizedError(PermissionError):
    """The caller does not own the document it tries to change."""


def create_access_token(user_id: int) -> str:
    """Return a signed JWT carrying `user_id` that expires after the configured lifetime."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    payload = {"user_id": user_id, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuthService:
    """Authentication related operations (register + authenticate)."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def register(self, name: str, email: str, password: str, bio: Optional[str] = "") -> models.User:
        """Create a new user with a hashed password.

        Raises `ValueError` when the email is already registered.
        """
        email = email.strip().lower()
        name = name.strip()
        if not name:
            raise ValueError("Name is required")
        if self.user_repo.get_by_email(email):
            raise ValueError("User already exists")
        user = models.User(
            name=name,
            email=email,
            password_hash=PWD_CTX.hash(password),
            bio=(bio or "").strip(),
        )
        try:
            user = self.user_repo.create(user)
        except IntegrityError as e:
            # a concurrent registration won the unique email index
            self.session.rollback()
            raise ValueError("User already exists") from e
        logger.info("user_registered user_id=%s", user.id)
        return user

    def authenticate(self, email: str, password: str) -> Optional[models.User]:
        """Return the user when the credentials match, otherwise `None`."""
        user = self.user_repo.get_by_email(email.strip())
        if not user:
            return None
        if not PWD_CTX.verify(password, user.password_hash):
            return None
        return user

    def current_user(self, user: models.User) -> dict:
        """The caller's record with followers/following resolved to summaries."""
        users = self.user_repo.get_many([*user.followers, *user.following])
        return serializers.current_user(user, users)


class PostService:
    """Feed, post creation and the like/comment/delete operations."""
    def __init__(self, session: Session):
        self.session = session
        self.post_repo = repositories.PostRepository(session)
        self.user_repo = repositories.UserRepository(session)

    def populate(self, posts: List[models.Post]) -> List[dict]:
        """Serialize posts, resolving every referenced user in one query."""
        ids = set()
        for p in posts:
            ids |= serializers.post_user_ids(p)
        users = self.user_repo.get_many(ids)
        return [serializers.post(p, users) for p in posts]

    def populate_one(self, post: models.Post) -> dict:
        return self.populate([post])[0]

    def feed(self, page: int, limit: int) -> dict:
        """Return one page of the reverse-chronological feed.

        `page` is 1-based. A page past the end yields an empty list.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")
        posts, total = self.post_repo.feed_page(page, limit)
        return {
            "posts": self.populate(posts),
            "total": total,
            "totalPages": math.ceil(total / limit),
            "currentPage": page,
        }

    def get(self, post_id: int) -> models.Post:
        post = self.post_repo.get(post_id)
        if not post:
            raise NotFoundError("Post not found")
        return post

    def create(self, author: models.User, content: str, image_bytes: Optional[bytes] = None,
               image_filename: Optional[str] = None) -> models.Post:
        """Create a post, storing its optional image, and bump the author's post count."""
        content = (content or "").strip()
        if not content:
            raise ValueError("Post content is required")
        image = ""
        if image_bytes:
            image = images.save_image(image_bytes, image_filename or "", settings.UPLOAD_DIR)
        post = self.post_repo.create(models.Post(content=content, image=image, author_id=author.id))
        author.posts_count = (author.posts_count or 0) + 1
        self.user_repo.save(author)
        logger.info("post_created post_id=%s author_id=%s", post.id, author.id)
        return post

    def toggle_like(self, post_id: int, user: models.User):
        """Add the caller to the post's likes, or remove them if already there.

        Returns `(post, liked)`.
        """
        post = self.get(post_id)
        liked = user.id not in post.likes
        if liked:
            post.likes = [*post.likes, user.id]
        else:
            post.likes = [uid for uid in post.likes if uid != user.id]
        return self.post_repo.save(post, "likes"), liked

    def add_comment(self, post_id: int, user: models.User, text: str) -> models.Post:
        post = self.get(post_id)
        text = (text or "").strip()
        if not text:
            raise ValueError("Comment text is required")
        now = _now_iso()
        post.comments = [*post.comments, {
            "id": uuid.uuid4().hex,
            "user": user.id,
            "text": text,
            "created_at": now,
            "updated_at": now,
        }]
        return self.post_repo.save(post, "comments")

    def _find_comment(self, post: models.Post, comment_id: str) -> dict:
        for c in post.comments:
            if c.get("id") == comment_id:
                return c
        raise NotFoundError("Comment not found")

    def edit_comment(self, post_id: int, comment_id: str, user: models.User, text: str) -> models.Post:
        """Replace the text of a comment. Only its author may do this."""
        post = self.get(post_id)
        target = self._find_comment(post, comment_id)
        if target.get("user") != user.id:
            raise NotAuthorizedError("Not authorized to edit this comment")
        text = (text or "").strip()
        if not text:
            raise ValueError("Comment text is required")
        now = _now_iso()
        post.comments = [
            {**c, "text": text, "updated_at": now} if c.get("id") == comment_id else c
            for c in post.comments
        ]
        return self.post_repo.save(post, "comments")

    def delete_comment(self, post_id: int, comment_id: str, user: models.User) -> models.Post:
        """Remove a comment; allowed for the comment's author and the post's author."""
        post = self.get(post_id)
        target = self._find_comment(post, comment_id)
        if user.id not in (target.get("user"), post.author_id):
            raise NotAuthorizedError("Not authorized to delete this comment")
        post.comments = [c for c in post.comments if c.get("id") != comment_id]
        return self.post_repo.save(post, "comments")

    def delete(self, post_id: int, user: models.User) -> None:
        """Delete a post owned by `user` and decrement their post count."""
        post = self.get(post_id)
        if post.author_id != user.id:
            raise NotAuthorizedError("Not authorized")
        image = post.image
        self.post_repo.delete(post)
        user.posts_count = max(0, (user.posts_count or 0) - 1)
        self.user_repo.save(user)
        logger.info("post_deleted post_id=%s author_id=%s", post_id, user.id)
        if image:
            try:
                images.remove_image(image, settings.UPLOAD_DIR)
            except OSError:
                logger.exception("image_remove_failed post_id=%s image=%s", post_id, image)


class UserService:
    """Search, profiles, follow relationships and profile edits."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)
        self.post_repo = repositories.PostRepository(session)

    def get(self, user_id: int) -> models.User:
        user = self.user_repo.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def list_users(self, search: Optional[str] = None, sort: str = "newest",
                   page: int = 1, limit: int = 20) -> List[dict]:
        """Filter users by a name/email substring and order them by `sort`."""
        if sort not in USER_SORT_KEYS:
            raise ValueError(f"Invalid sort key: {sort}")
        users = self.user_repo.search((search or "").strip() or None)
        if sort == "newest":
            users.sort(key=lambda u: (u.created_at, u.id), reverse=True)
        elif sort == "oldest":
            users.sort(key=lambda u: (u.created_at, u.id))
        elif sort == "name":
            users.sort(key=lambda u: (u.name.lower(), u.id))
        elif sort == "followers":
            users.sort(key=lambda u: (-len(u.followers), u.id))
        else:
            users.sort(key=lambda u: (-(u.posts_count or 0), u.id))
        start = (page - 1) * limit
        return [serializers.user_public(u) for u in users[start:start + limit]]

    def profile(self, user_id: int, viewer: models.User) -> dict:
        """Public profile with follower/following summaries and the user's posts."""
        user = self.get(user_id)
        users = self.user_repo.get_many([*user.followers, *user.following])
        out = serializers.user_public(user)
        out.update({
            "followers": serializers.summaries(user.followers, users),
            "following": serializers.summaries(user.following, users),
            "isFollowing": viewer.id in user.followers,
            "posts": [serializers.post_summary(p) for p in self.post_repo.list_by_author(user.id)],
        })
        return out

    def posts(self, user_id: int) -> List[models.Post]:
        user = self.get(user_id)
        return self.post_repo.list_by_author(user.id)

    def connections(self, user_id: int, kind: str) -> List[dict]:
        """Summaries of a user's `followers` or `following` list."""
        user = self.get(user_id)
        ids = user.followers if kind == "followers" else user.following
        return serializers.summaries(ids, self.user_repo.get_many(ids))

    def toggle_follow(self, viewer: models.User, target_id: int) -> dict:
        """Follow `target_id`, or unfollow if already following.

        The relationship is recorded on both documents: the viewer's
        `following` and the target's `followers`.
        """
        if viewer.id == target_id:
            raise ValueError("You cannot follow yourself")
        target = self.get(target_id)
        following = target.id in viewer.following
        if following:
            viewer.following = [uid for uid in viewer.following if uid != target.id]
            target.followers = [uid for uid in target.followers if uid != viewer.id]
        else:
            viewer.following = [*viewer.following, target.id]
            target.followers = [*target.followers, viewer.id]
        self.user_repo.save_all([(viewer, "following"), (target, "followers")])
        logger.info("follow_toggled follower=%s target=%s following=%s", viewer.id, target.id, not following)
        return {
            "message": "User unfollowed" if following else "User followed",
            "isFollowing": not following,
            "followersCount": len(target.followers),
        }

    def update_profile(self, user: models.User, name: Optional[str] = None, bio: Optional[str] = None,
                       profile_picture: Optional[str] = None) -> models.User:
        """Apply a partial profile update to the caller's own document."""
        if name is not None:
            name = name.strip()
            if not name:
                raise ValueError("Name cannot be empty")
            user.name = name
        if bio is not None:
            user.bio = bio.strip()
        if profile_picture is not None:
            user.profile_picture = profile_picture.strip()
        return self.user_repo.save(user)
