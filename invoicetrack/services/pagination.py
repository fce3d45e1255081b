from typing import Optional, Tuple

from invoicetrack.config import InvoiceTrackConfig
from invoicetrack.exceptions import InvalidInputError


def resolve_page(config: InvoiceTrackConfig, page: Optional[int], page_size: Optional[int]) -> Tuple[int, int]:
    """
    Apply pagination defaults and bounds

    Returns:
        (page, page_size), page being 1-based

    Raises:
        InvalidInputError: page below 1, or page_size outside 1..pagination.max_page_size
    """
    page = 1 if page is None else page
    page_size = config.get('pagination.default_page_size', 10) if page_size is None else page_size
    max_page_size = config.get('pagination.max_page_size', 100)
    if page < 1:
        raise InvalidInputError(f"page must be at least 1, got {page}")
    if page_size < 1 or page_size > max_page_size:
        raise InvalidInputError(f"page_size must be between 1 and {max_page_size}, got {page_size}")
    return page, page_size
