"""
InvoiceTrack errors

Every failure the core reports to a caller is one of these. None of them is
raised after a partial write: the enclosing transaction is rolled back first.
"""

from typing import Any, Dict, List, Optional


class InvoiceTrackError(Exception):
    """Base class for all InvoiceTrack errors"""


class NotFoundError(InvoiceTrackError):
    """An invoice or a referenced user does not exist"""

    def __init__(self, entity: str, entity_id: Optional[str]):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ForbiddenError(InvoiceTrackError):
    """The authorization policy denied the request"""

    def __init__(self, reason, message: str):
        self.reason = reason
        self.message = message
        super().__init__(message)


class InvalidInputError(InvoiceTrackError):
    """Malformed request: bad status value, missing field, bad attachment..."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_validation_error(cls, exc) -> 'InvalidInputError':
        """Build from a pydantic ValidationError, keeping field-level detail"""
        errors = [
            {
                'field': '.'.join(str(part) for part in err.get('loc', ())),
                'message': err.get('msg', ''),
            }
            for err in exc.errors()
        ]
        summary = '; '.join(f"{e['field']}: {e['message']}" if e['field'] else e['message'] for e in errors)
        return cls(f"Invalid input: {summary}", errors)


class ConflictError(InvoiceTrackError):
    """The request conflicts with the current state of the record"""


class LockTimeoutError(ConflictError):
    """Another operation held the invoice lock for longer than allowed"""

    def __init__(self, invoice_id: str, timeout: float):
        self.invoice_id = invoice_id
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for invoice {invoice_id}")
