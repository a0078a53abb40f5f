import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from emporium.config import Settings
from emporium.deps import get_app_settings, get_db
from emporium.models import UploadedFile
from emporium.schemas.upload import UploadedFileOut, UploadListOut, UploadOut
from emporium.utils.security import Identity, require_admin
from emporium.utils.storage import delete_upload, public_url, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter()


def to_uploaded_file_out(f: UploadedFile) -> UploadedFileOut:
    return UploadedFileOut(
        id=f.id,
        filename=f.filename,
        url=f.url,
        mimetype=f.mimetype,
        size=f.size,
        createdAt=f.created_at,
        updatedAt=f.updated_at,
    )


@router.post("/upload", status_code=201, response_model=UploadOut)
def upload_file(
    image: UploadFile = File(...),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: Identity = Depends(require_admin),
):
    filename, size = save_upload_file(image, settings)
    record = UploadedFile(
        filename=filename,
        url=public_url(filename, settings),
        mimetype=(image.content_type or "").split(";")[0].strip().lower(),
        size=size,
    )
    db.add(record)
    try:
        db.commit()
    except Exception:
        db.rollback()
        delete_upload(filename, settings)
        raise
    db.refresh(record)
    logger.info("Admin %s uploaded %s (%s bytes)", admin.id, filename, size)
    return UploadOut(message="File uploaded successfully", file=to_uploaded_file_out(record))


@router.get("/uploads", response_model=UploadListOut)
def list_uploads(db: Session = Depends(get_db), admin: Identity = Depends(require_admin)):
    files = db.query(UploadedFile).order_by(UploadedFile.created_at.desc(), UploadedFile.id.desc()).all()
    return UploadListOut(message="Files retrieved successfully", files=[to_uploaded_file_out(f) for f in files])
