"""User directory, profiles, follow relationships and profile edits."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from .. import models, serializers, services
from ..auth import get_current_user
from ..database import get_session
from ..schemas import ProfileUpdateIn
from . import service_errors

router = APIRouter()


@router.get("")
def list_users(
    search: Optional[str] = Query(None, max_length=100),
    sort: str = Query("newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """List users, optionally filtered by a name/email substring.

    `sort` is one of `newest`, `oldest`, `name`, `followers` or `posts`.
    """
    with service_errors():
        return services.UserService(db).list_users(search, sort, page, limit)


@router.put("/profile")
def update_profile(payload: ProfileUpdateIn, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    """Update the caller's own name, bio or profile picture URL."""
    with service_errors():
        updated = services.UserService(db).update_profile(
            user, name=payload.name, bio=payload.bio, profile_picture=payload.profile_picture,
        )
    return serializers.auth_user(updated)


@router.get("/{user_id}")
def get_profile(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    with service_errors():
        return services.UserService(db).profile(user_id, user)


@router.get("/{user_id}/posts")
def get_user_posts(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Every post by `user_id`, newest first, fully populated."""
    with service_errors():
        posts = services.UserService(db).posts(user_id)
    return services.PostService(db).populate(posts)


@router.get("/{user_id}/followers")
def list_followers(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    with service_errors():
        return {"followers": services.UserService(db).connections(user_id, "followers")}


@router.get("/{user_id}/following")
def list_following(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    with service_errors():
        return {"following": services.UserService(db).connections(user_id, "following")}


@router.post("/{user_id}/follow")
def toggle_follow(user_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Follow the user, or unfollow if the caller already follows them."""
    with service_errors():
        return services.UserService(db).toggle_follow(user, user_id)
