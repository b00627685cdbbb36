"""HTTP routers, one module per resource (auth, posts, users)."""

from contextlib import contextmanager

from fastapi import HTTPException

from ..services import NotAuthorizedError, NotFoundError
from ..utils.images import UnsupportedImageError


@contextmanager
def service_errors():
    """Translate service exceptions raised inside the block into HTTP errors."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except NotAuthorizedError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except UnsupportedImageError as e:
        raise HTTPException(status_code=415, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
