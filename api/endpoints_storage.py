"""Signed URL download endpoint for stored photos."""
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from storage import InvalidObjectPath, ObjectNotFound, ObjectStorage, get_storage

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/signed/{token}")
def download_signed(token: str, store: ObjectStorage = Depends(get_storage)):
    """Serve the object named by a signed URL token; no bearer auth needed."""
    try:
        path = store.resolve_signed(token)
    except InvalidObjectPath as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ObjectNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(path, media_type=media_type)
