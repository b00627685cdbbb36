"""Feed and post endpoints.

All routes require a bearer token. Handlers delegate to `PostService` and
return posts populated with author, liker and commenter details.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlmodel import Session

from .. import models, services
from ..auth import get_current_user
from ..config import settings
from ..database import get_session
from ..schemas import CommentIn
from . import service_errors

router = APIRouter()


@router.get("")
def get_feed(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Return one page of posts, newest first, with paging metadata."""
    with service_errors():
        return services.PostService(db).feed(page, limit)


@router.post("", status_code=201)
def create_post(
    content: str = Form(...),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_session),
    user: models.User = Depends(get_current_user),
):
    """Create a post from a multipart form with an optional image file.

    The image must be PNG, JPEG, GIF or WEBP and no larger than
    `MAX_UPLOAD_BYTES`.
    """
    payload = None
    filename = None
    if image is not None and image.filename:
        payload = image.file.read(settings.MAX_UPLOAD_BYTES + 1)
        if len(payload) > settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=400, detail="file too large")
        filename = image.filename
    svc = services.PostService(db)
    with service_errors():
        post = svc.create(user, content, payload, filename)
    return svc.populate_one(post)


@router.get("/{post_id}")
def get_post(post_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    svc = services.PostService(db)
    with service_errors():
        return svc.populate_one(svc.get(post_id))


@router.post("/{post_id}/like")
def toggle_like(post_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Like the post, or remove the like if the caller already liked it."""
    svc = services.PostService(db)
    with service_errors():
        post, liked = svc.toggle_like(post_id, user)
    return {
        "message": "Post liked" if liked else "Post unliked",
        "liked": liked,
        "post": svc.populate_one(post),
    }


@router.post("/{post_id}/comment", status_code=201)
def add_comment(post_id: int, payload: CommentIn, db: Session = Depends(get_session),
                user: models.User = Depends(get_current_user)):
    svc = services.PostService(db)
    with service_errors():
        post = svc.add_comment(post_id, user, payload.text)
    return svc.populate_one(post)


@router.put("/{post_id}/comment/{comment_id}")
def edit_comment(post_id: int, comment_id: str, payload: CommentIn, db: Session = Depends(get_session),
                 user: models.User = Depends(get_current_user)):
    """Edit a comment's text. Only the comment's author may do this."""
    svc = services.PostService(db)
    with service_errors():
        post = svc.edit_comment(post_id, comment_id, user, payload.text)
    return svc.populate_one(post)


@router.delete("/{post_id}/comment/{comment_id}")
def delete_comment(post_id: int, comment_id: str, db: Session = Depends(get_session),
                   user: models.User = Depends(get_current_user)):
    """Remove a comment. Allowed for the comment's author and the post's author."""
    svc = services.PostService(db)
    with service_errors():
        post = svc.delete_comment(post_id, comment_id, user)
    return svc.populate_one(post)


@router.delete("/{post_id}")
def delete_post(post_id: int, db: Session = Depends(get_session), user: models.User = Depends(get_current_user)):
    """Delete one of the caller's own posts."""
    with service_errors():
        services.PostService(db).delete(post_id, user)
    return {"message": "Post deleted successfully"}
