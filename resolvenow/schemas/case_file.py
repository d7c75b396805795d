"""Pydantic schemas for case evidence files."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class CaseFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    case_id: UUID
    file_name: str
    size: int
    mime_type: str
    uploaded_by: UUID
    uploaded_at: datetime


class CaseFileUploadResponse(BaseModel):
    files: list[CaseFileRead]


class CaseFileDownload(BaseModel):
    file: CaseFileRead
    download_url: str
