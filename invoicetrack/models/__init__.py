from invoicetrack.models.invoice import (
    ActionLogRecord,
    ActionType,
    FileReference,
    InvoiceCreate,
    InvoiceRecord,
    InvoiceStatus,
    InvoiceUpdate,
    Page,
    Role,
    UserRecord,
)

__all__ = [
    'ActionLogRecord',
    'ActionType',
    'FileReference',
    'InvoiceCreate',
    'InvoiceRecord',
    'InvoiceStatus',
    'InvoiceUpdate',
    'Page',
    'Role',
    'UserRecord',
]
