"""Utility modules."""

from app.utils.normalization import (
    normalize_email,
    normalize_name,
    normalize_text,
)
from app.utils.pagination import (
    PaginationParams,
    get_pagination,
    paginate_query,
)

__all__ = [
    # Normalization
    "normalize_email",
    "normalize_name",
    "normalize_text",
    # Pagination
    "PaginationParams",
    "get_pagination",
    "paginate_query",
]
