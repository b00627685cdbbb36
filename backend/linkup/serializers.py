"""Conversion of stored documents into the JSON shapes returned by the API.

Posts reference their author, likers and commenters by id; the functions here
resolve those ids against a `{id: User}` map fetched in one query (see
`UserRepository.get_many`) and return plain dicts with camelCase keys.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from . import models


def isoformat(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def user_summary(user: models.User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profilePicture": user.profile_picture,
    }


def user_public(user: models.User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "bio": user.bio,
        "profilePicture": user.profile_picture,
        "followersCount": len(user.followers or []),
        "followingCount": len(user.following or []),
        "postsCount": user.posts_count,
        "createdAt": isoformat(user.created_at),
    }


def auth_user(user: models.User) -> dict:
    """The caller's own record as returned by register/login/profile edits."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "bio": user.bio,
        "profilePicture": user.profile_picture,
        "followers": list(user.followers or []),
        "following": list(user.following or []),
        "postsCount": user.posts_count,
    }


def summaries(user_ids: Iterable[int], users: Dict[int, models.User]) -> List[dict]:
    """Resolve ids to summaries in order, skipping ids whose user is gone."""
    return [user_summary(users[uid]) for uid in user_ids if uid in users]


def current_user(user: models.User, users: Dict[int, models.User]) -> dict:
    """`GET /auth/me` shape: like `auth_user` with the reference lists populated."""
    out = auth_user(user)
    out["followers"] = summaries(user.followers or [], users)
    out["following"] = summaries(user.following or [], users)
    out["createdAt"] = isoformat(user.created_at)
    return out


def post_user_ids(post: models.Post) -> set:
    """Every user id a populated post needs."""
    ids = {post.author_id}
    ids.update(post.likes or [])
    ids.update(c.get("user") for c in post.comments or [])
    return ids


def comment(c: dict, users: Dict[int, models.User]) -> dict:
    author = users.get(c.get("user"))
    return {
        "id": c.get("id"),
        "user": {
            "id": c.get("user"),
            "name": author.name if author else None,
            "profilePicture": author.profile_picture if author else "",
        },
        "text": c.get("text"),
        "createdAt": c.get("created_at"),
        "updatedAt": c.get("updated_at"),
    }


def post(p: models.Post, users: Dict[int, models.User]) -> dict:
    author = users.get(p.author_id)
    likes = [{"id": uid, "name": users[uid].name} for uid in p.likes or [] if uid in users]
    return {
        "id": p.id,
        "content": p.content,
        "image": p.image,
        "author": user_summary(author) if author else {"id": p.author_id},
        "likes": likes,
        "likesCount": len(p.likes or []),
        "comments": [comment(c, users) for c in p.comments or []],
        "createdAt": isoformat(p.created_at),
        "updatedAt": isoformat(p.updated_at),
    }


def post_summary(p: models.Post) -> dict:
    return {
        "id": p.id,
        "content": p.content,
        "image": p.image,
        "likesCount": len(p.likes or []),
        "commentsCount": len(p.comments or []),
        "createdAt": isoformat(p.created_at),
    }
