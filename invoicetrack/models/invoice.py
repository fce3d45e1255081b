"""
Invoice Workflow Data Models with Pydantic Validation

Input payloads (InvoiceCreate, InvoiceUpdate, FileReference) are validated
here before the engine touches the store. Records (InvoiceRecord,
ActionLogRecord, UserRecord) are the read models returned to callers, built
from ORM rows with from_attributes.
"""

import re
import unicodedata
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class InvoiceStatus(str, Enum):
    """Invoice lifecycle status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ActionType(str, Enum):
    """Kinds of action log entries"""
    CREATED = "created"
    ASSIGNED = "assigned"
    REASSIGNED = "reassigned"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class Role(str, Enum):
    """User roles"""
    USER = "user"
    ADMIN = "admin"


CONTENT_TYPES = {
    'jpeg': {'image/jpeg', 'image/jpg'},
    'jpg': {'image/jpeg', 'image/jpg'},
    'png': {'image/png'},
    'pdf': {'application/pdf'},
}


AMOUNT_MAX_DIGITS = 14
AMOUNT_DECIMAL_PLACES = 2
CENT = Decimal('0.01')

AMOUNT_PATTERN = re.compile(r'-?(\d+\.?\d*|\.\d+)')


def parse_amount(v: Any) -> Any:
    """
    Parse decimal amounts from various formats

    Strings may carry currency symbols, thousands separators and spaces.
    Any other character makes the amount invalid.
    """
    if v is None or isinstance(v, Decimal):
        return v
    if isinstance(v, bool):
        raise ValueError('amount must be a number')
    if isinstance(v, (int, float)):
        return Decimal(str(v))
    if isinstance(v, str):
        # Remove currency symbols, commas, spaces
        cleaned = ''.join(
            ch for ch in v if not (ch.isspace() or ch == ',' or unicodedata.category(ch) == 'Sc')
        )
        if not AMOUNT_PATTERN.fullmatch(cleaned):
            raise ValueError(f'amount is not a number: {v!r}')
        return Decimal(cleaned)
    return v


class FileReference(BaseModel):
    """
    Reference to an uploaded attachment

    The upload collaborator stores the bytes; only the name and retrievable
    URL are kept on the invoice. Type and size are checked against the
    configured limits with check_limits().
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1024)
    content_type: Optional[str] = Field(None, max_length=100)
    size_bytes: Optional[int] = Field(None, ge=0)

    @property
    def extension(self) -> str:
        return PurePosixPath(self.file_name).suffix.lstrip('.').lower()

    def check_limits(self, allowed_types: List[str], max_size_mb: float) -> None:
        """
        Check file type and size

        Raises:
            ValueError: if the extension (or declared content type) is not allowed
                or the file is larger than max_size_mb
        """
        allowed = [t.lower() for t in allowed_types]
        if self.extension not in allowed:
            raise ValueError(f"File type '{self.extension or 'none'}' is not allowed; expected one of {', '.join(allowed)}")
        if self.content_type:
            expected = CONTENT_TYPES.get(self.extension, set())
            if self.content_type.lower() not in expected:
                raise ValueError(f"Content type {self.content_type} does not match file extension .{self.extension}")
        if self.size_bytes is not None and self.size_bytes > max_size_mb * 1024 * 1024:
            raise ValueError(f"File is {self.size_bytes} bytes; the limit is {max_size_mb} MB")


class InvoiceCreate(BaseModel):
    """Fields supplied when an invoice is submitted"""
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    vendor_name: str = Field(..., min_length=1, max_length=255)
    amount: Decimal = Field(..., ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES)
    due_date: date
    category: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None
    attachment: Optional[FileReference] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_decimal(cls, v: Any) -> Any:
        return parse_amount(v)

    @field_validator('amount')
    @classmethod
    def to_cents(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v if v is None else v.quantize(CENT)


class InvoiceUpdate(BaseModel):
    """
    Partial update of the descriptive fields of a pending invoice

    Only fields present in the payload are applied. Required columns cannot be
    cleared; notes and attachment can be cleared by passing None.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra='forbid')

    vendor_name: Optional[str] = Field(None, min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES)
    due_date: Optional[date] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None
    attachment: Optional[FileReference] = None

    @field_validator('amount', mode='before')
    @classmethod
    def parse_decimal(cls, v: Any) -> Any:
        return parse_amount(v)

    @field_validator('amount')
    @classmethod
    def to_cents(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        return v if v is None else v.quantize(CENT)

    @model_validator(mode='after')
    def reject_cleared_required_fields(self) -> 'InvoiceUpdate':
        for name in ('vendor_name', 'amount', 'due_date', 'category'):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f'{name} cannot be cleared')
        return self

    def changes(self) -> Dict[str, Any]:
        """Column values to write, keyed by invoice column name"""
        provided = self.model_dump(exclude_unset=True, exclude={'attachment'})
        if 'attachment' in self.model_fields_set:
            provided['file_name'] = self.attachment.file_name if self.attachment else None
            provided['file_url'] = self.attachment.file_url if self.attachment else None
        return provided


def as_utc(v: Any) -> Any:
    """Attach UTC to the naive UTC timestamps the store returns"""
    if isinstance(v, datetime) and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    role: Role
    created_at: datetime

    @field_validator('created_at', mode='before')
    @classmethod
    def created_at_utc(cls, v: Any) -> Any:
        return as_utc(v)


class InvoiceRecord(BaseModel):
    """An invoice as returned to callers"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    vendor_name: str
    amount: Decimal
    due_date: date
    category: str
    notes: Optional[str] = None
    file_name: Optional[str] = None
    file_url: Optional[str] = None
    status: InvoiceStatus
    submitted_by: str
    assigned_to: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def timestamps_utc(cls, v: Any) -> Any:
        return as_utc(v)


class ActionLogRecord(BaseModel):
    """An action log entry as returned to callers"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    invoice_id: str
    sequence: int
    performed_by: str
    action: ActionType
    previous_status: Optional[InvoiceStatus] = None
    new_status: Optional[InvoiceStatus] = None
    reason: Optional[str] = None
    message: Optional[str] = None
    assigned_to: Optional[str] = None
    previous_assignee: Optional[str] = None
    timestamp: datetime

    @field_validator('timestamp', mode='before')
    @classmethod
    def timestamp_utc(cls, v: Any) -> Any:
        return as_utc(v)


T = TypeVar('T')


class Page(BaseModel, Generic[T]):
    """One page of a newest-first listing"""
    items: List[T]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return (self.total_count + self.page_size - 1) // self.page_size
