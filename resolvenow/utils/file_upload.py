"""Helpers for safe upload size checks."""

from os import SEEK_END

from fastapi import UploadFile


MULTIPART_OVERHEAD_BYTES = 64 * 1024


def content_length_exceeds_limit(
    content_length_header: str | None,
    *,
    max_total_bytes: int,
    overhead_bytes: int = MULTIPART_OVERHEAD_BYTES,
) -> bool:
    """Return True when Content-Length clearly exceeds what the request may carry."""
    if not content_length_header:
        return False
    try:
        content_length = int(content_length_header)
    except (TypeError, ValueError):
        return False
    return content_length > (max_total_bytes + overhead_bytes)


def upload_file_size(file: UploadFile) -> int:
    """Size of a spooled upload without reading it into memory."""
    stream = file.file
    original_pos = stream.tell()
    try:
        stream.seek(0, SEEK_END)
        return stream.tell()
    finally:
        stream.seek(original_pos)
