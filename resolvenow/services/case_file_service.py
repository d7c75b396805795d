"""Case file service - evidence uploads with local or S3 storage."""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import BinaryIO
from uuid import UUID

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from resolvenow.core.case_access import can_view_case, get_authorized_case, is_department_admin, is_owner
from resolvenow.core.config import settings
from resolvenow.core.errors import AuthorizationDenied, NotFound, TransientStoreError, ValidationFailed
from resolvenow.core.structured_logging import build_log_context
from resolvenow.db.enums import CaseUpdateType
from resolvenow.db.models import Case, CaseFile, CaseUpdate
from resolvenow.schemas.auth import Principal

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

EXTENSION_FOR_MIME_TYPE = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "text/plain": ".txt",
}
ALLOWED_MIME_TYPES = frozenset(EXTENSION_FOR_MIME_TYPE)
SIGNED_URL_EXPIRY_SECONDS = 300  # 5 minutes


@dataclass
class IncomingFile:
    """One part of a multipart upload, already sized."""
    file_name: str
    mime_type: str
    size: int
    stream: BinaryIO


def _file_not_found() -> NotFound:
    return NotFound("File not found", code="FILE_NOT_FOUND")


# =============================================================================
# Storage Backend
# =============================================================================

def _get_s3_client():
    """Get boto3 S3 client."""
    return boto3.client("s3", region_name=settings.S3_REGION)


def _local_path(storage_key: str) -> str:
    root = os.path.abspath(settings.LOCAL_STORAGE_PATH)
    path = os.path.abspath(os.path.join(root, storage_key))
    if not path.startswith(root + os.sep):
        raise ValidationFailed("Invalid storage key")
    return path


def store_object(storage_key: str, stream: BinaryIO) -> None:
    """Store bytes to the configured backend."""
    stream.seek(0)
    if settings.STORAGE_BACKEND == "s3":
        try:
            _get_s3_client().upload_fileobj(stream, settings.S3_BUCKET, storage_key)
        except (BotoCoreError, ClientError) as exc:
            logger.exception("S3 upload failed for %s", storage_key)
            raise TransientStoreError("File storage temporarily unavailable") from exc
        return

    path = _local_path(storage_key)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        for chunk in iter(lambda: stream.read(64 * 1024), b""):
            f.write(chunk)


def delete_object(storage_key: str) -> None:
    if settings.STORAGE_BACKEND == "s3":
        try:
            _get_s3_client().delete_object(Bucket=settings.S3_BUCKET, Key=storage_key)
        except (BotoCoreError, ClientError):
            logger.warning("S3 delete failed for %s", storage_key, exc_info=True)
        return

    path = _local_path(storage_key)
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError:
        logger.warning("Local delete failed for %s", storage_key, exc_info=True)


def download_url(case_file: CaseFile) -> str:
    """Presigned S3 URL, or the API content route for local storage."""
    if settings.STORAGE_BACKEND == "s3":
        try:
            return _get_s3_client().generate_presigned_url(
                "get_object",
                Params={"Bucket": settings.S3_BUCKET, "Key": case_file.storage_path},
                ExpiresIn=SIGNED_URL_EXPIRY_SECONDS,
            )
        except (BotoCoreError, ClientError) as exc:
            raise TransientStoreError("File storage temporarily unavailable") from exc
    return f"/api/upload/file/{case_file.id}/content"


# =============================================================================
# Validation
# =============================================================================

def validate_files(files: list[IncomingFile]) -> None:
    """
    Check count, type and size of every part before anything is stored.

    Raises:
        ValidationFailed: TOO_MANY_FILES / INVALID_FILE_TYPE / FILE_TOO_LARGE
    """
    if not files:
        raise ValidationFailed("No files uploaded", code="NO_FILES")
    if len(files) > settings.MAX_FILES_PER_UPLOAD:
        raise ValidationFailed(
            f"Too many files. Maximum is {settings.MAX_FILES_PER_UPLOAD} files.",
            code="TOO_MANY_FILES",
        )
    for f in files:
        if f.mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationFailed(
                f"Invalid file type: {f.mime_type}. Only images, PDFs, Word documents "
                "and text files are allowed.",
                code="INVALID_FILE_TYPE",
            )
        if f.size > settings.MAX_UPLOAD_BYTES:
            max_mb = settings.MAX_UPLOAD_BYTES / (1024 * 1024)
            raise ValidationFailed(
                f"File {f.file_name} exceeds {max_mb:.0f} MB limit",
                code="FILE_TOO_LARGE",
            )


# =============================================================================
# Service Functions
# =============================================================================

def _discard_upload(db: Session, storage_keys: list[str]) -> None:
    """Roll back a failed upload and remove objects already written."""
    db.rollback()
    for storage_key in storage_keys:
        delete_object(storage_key)


def upload_files(
    db: Session, principal: Principal, case_id: UUID, files: list[IncomingFile]
) -> tuple[Case, list[CaseFile]]:
    """Owner upload of evidence to an existing case."""
    case = get_authorized_case(db, principal, case_id)
    if not is_owner(principal, case):
        raise AuthorizationDenied("Only the case owner can upload files")
    validate_files(files)

    stored: list[CaseFile] = []
    stored_keys: list[str] = []
    now = datetime.now(timezone.utc)
    try:
        for f in files:
            file_id = uuid.uuid4()
            ext = EXTENSION_FOR_MIME_TYPE[f.mime_type]
            storage_key = f"cases/{case.id}/{file_id}{ext}"
            stored_keys.append(storage_key)
            store_object(storage_key, f.stream)
            record = CaseFile(
                id=file_id,
                case_id=case.id,
                file_name=os.path.basename(f.file_name) or f"upload{ext}",
                size=f.size,
                mime_type=f.mime_type,
                storage_path=storage_key,
                uploaded_by=principal.principal_id,
                uploaded_at=now,
            )
            db.add(record)
            db.add(CaseUpdate(
                case_id=case.id,
                updated_by=principal.principal_id,
                update_type=CaseUpdateType.FILE_UPLOADED.value,
                new_value=record.file_name,
            ))
            stored.append(record)

        case.updated_at = now
        db.commit()
    except OperationalError as exc:
        _discard_upload(db, stored_keys)
        logger.exception(
            "Upload commit failed", extra=build_log_context(case_id=str(case_id))
        )
        raise TransientStoreError() from exc
    except Exception:
        _discard_upload(db, stored_keys)
        raise

    for record in stored:
        db.refresh(record)
    db.refresh(case)
    logger.info(
        "Uploaded %d file(s)", len(stored),
        extra=build_log_context(principal_id=str(principal.principal_id), case_id=str(case.id)),
    )
    return case, stored


def list_files(db: Session, principal: Principal, case_id: UUID) -> list[CaseFile]:
    case = get_authorized_case(db, principal, case_id)
    stmt = (
        select(CaseFile)
        .where(CaseFile.case_id == case.id)
        .order_by(CaseFile.uploaded_at.desc())
    )
    return list(db.scalars(stmt))


def get_file(db: Session, principal: Principal, file_id: UUID) -> CaseFile:
    """Raises FILE_NOT_FOUND unless the principal may view the parent case."""
    case_file = db.get(CaseFile, file_id)
    if case_file is None or not can_view_case(principal, case_file.case):
        raise _file_not_found()
    return case_file


def local_file_path(case_file: CaseFile) -> str:
    if settings.STORAGE_BACKEND != "local":
        raise _file_not_found()
    path = _local_path(case_file.storage_path)
    if not os.path.exists(path):
        raise _file_not_found()
    return path


def delete_file(db: Session, principal: Principal, file_id: UUID) -> Case:
    """Owner, uploader or department admin may delete."""
    case_file = get_file(db, principal, file_id)
    case = case_file.case
    allowed = (
        is_owner(principal, case)
        or case_file.uploaded_by == principal.principal_id
        or is_department_admin(principal, case)
    )
    if not allowed:
        raise AuthorizationDenied("Not allowed to delete this file")

    storage_key = case_file.storage_path
    case_id = case.id
    db.add(CaseUpdate(
        case_id=case.id,
        updated_by=principal.principal_id,
        update_type=CaseUpdateType.FILE_DELETED.value,
        old_value=case_file.file_name,
    ))
    db.delete(case_file)
    case.updated_at = datetime.now(timezone.utc)
    try:
        db.commit()
    except OperationalError as exc:
        db.rollback()
        logger.exception(
            "File delete commit failed", extra=build_log_context(case_id=str(case_id))
        )
        raise TransientStoreError() from exc

    # Object removal runs after the commit; delete_object logs its own failures
    delete_object(storage_key)
    db.refresh(case)
    return case
