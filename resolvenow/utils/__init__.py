"""Utility modules."""

from resolvenow.utils.file_upload import content_length_exceeds_limit, upload_file_size
from resolvenow.utils.pagination import (
    PaginationParams,
    get_pagination,
    page_payload,
    paginate_select,
)

__all__ = [
    # Uploads
    "content_length_exceeds_limit",
    "upload_file_size",
    # Pagination
    "PaginationParams",
    "get_pagination",
    "page_payload",
    "paginate_select",
]
