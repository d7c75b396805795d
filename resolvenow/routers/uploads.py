"""Evidence upload router."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from resolvenow.core.config import settings
from resolvenow.core.deps import get_broadcaster, get_current_principal, get_db
from resolvenow.core.errors import ValidationFailed
from resolvenow.schemas.auth import Principal
from resolvenow.schemas.case_file import CaseFileDownload, CaseFileRead, CaseFileUploadResponse
from resolvenow.services import case_events, case_file_service
from resolvenow.services.broadcast import BroadcastRouter
from resolvenow.services.case_file_service import IncomingFile
from resolvenow.utils.file_upload import content_length_exceeds_limit, upload_file_size

router = APIRouter()


@router.post("/case/{case_id}", response_model=CaseFileUploadResponse, status_code=201)
def upload_case_files(
    request: Request,
    case_id: UUID,
    background: BackgroundTasks,
    files: list[UploadFile] = File(...),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    """
    Attach evidence to a case (owner only).

    Up to MAX_FILES_PER_UPLOAD files per request, each at most MAX_UPLOAD_BYTES.
    """
    if content_length_exceeds_limit(
        request.headers.get("content-length"),
        max_total_bytes=settings.MAX_UPLOAD_BYTES * settings.MAX_FILES_PER_UPLOAD,
    ):
        raise ValidationFailed("Upload too large", code="FILE_TOO_LARGE")

    incoming = [
        IncomingFile(
            file_name=f.filename or "upload",
            mime_type=f.content_type or "application/octet-stream",
            size=upload_file_size(f),
            stream=f.file,
        )
        for f in files
    ]
    case, stored = case_file_service.upload_files(db, principal, case_id, incoming)
    case_events.case_changed(background, broadcaster, db, case, principal)
    return CaseFileUploadResponse(files=[CaseFileRead.model_validate(r) for r in stored])


@router.get("/case/{case_id}", response_model=list[CaseFileRead])
def list_case_files(
    case_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    files = case_file_service.list_files(db, principal, case_id)
    return [CaseFileRead.model_validate(f) for f in files]


@router.get("/file/{file_id}/download", response_model=CaseFileDownload)
def get_download(
    file_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    case_file = case_file_service.get_file(db, principal, file_id)
    return CaseFileDownload(
        file=CaseFileRead.model_validate(case_file),
        download_url=case_file_service.download_url(case_file),
    )


@router.get("/file/{file_id}/content")
def get_content(
    file_id: UUID,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    """Serve bytes for the local storage backend."""
    case_file = case_file_service.get_file(db, principal, file_id)
    path = case_file_service.local_file_path(case_file)
    return FileResponse(path, media_type=case_file.mime_type, filename=case_file.file_name)


@router.delete("/file/{file_id}", status_code=204)
def delete_file(
    file_id: UUID,
    background: BackgroundTasks,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    broadcaster: BroadcastRouter = Depends(get_broadcaster),
):
    case = case_file_service.delete_file(db, principal, file_id)
    case_events.case_changed(background, broadcaster, db, case, principal)
