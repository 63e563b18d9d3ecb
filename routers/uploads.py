# routers/uploads.py
import logging
import os
import uuid

from fastapi import APIRouter, Depends, File, UploadFile, status

from core import config
from core.access import CallerContext, require_authenticated
from core.errors import ValidationError
from routers.common import ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["upload"])

ALLOWED_EXTENSIONS = {
    ".jpg", ".jpeg", ".png", ".gif", ".webp",
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".txt",
}
CHUNK = 1024 * 1024


@router.post("", status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    caller: CallerContext = Depends(require_authenticated),
):
    ext = os.path.splitext(file.filename or "")[1].lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(f"File type {ext or '(none)'} is not allowed")

    os.makedirs(config.UPLOAD_DIR, exist_ok=True)
    name = f"{uuid.uuid4().hex}{ext}"
    path = os.path.join(config.UPLOAD_DIR, name)

    size = 0
    try:
        with open(path, "wb") as out:
            while True:
                chunk = file.file.read(CHUNK)
                if not chunk:
                    break
                size += len(chunk)
                if size > config.MAX_UPLOAD_BYTES:
                    raise ValidationError(
                        f"File too large (max {config.MAX_UPLOAD_BYTES // (1024 * 1024)}MB)"
                    )
                out.write(chunk)
    except ValidationError:
        os.remove(path)
        raise

    logger.info("Stored upload %s (%d bytes) from %s", name, size, caller.id)
    return ok({
        "url": f"/uploads/{name}",
        "filename": file.filename,
        "size": size,
        "contentType": file.content_type,
    })
