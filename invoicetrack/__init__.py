"""
InvoiceTrack - Invoice Review Workflow Library

Tracks vendor invoices through submission, reviewer assignment,
approval/rejection and payment, with an append-only action log kept in step
with every status and assignment change.

Basic usage:
    from invoicetrack import InvoiceTrack, InvoiceTrackConfig

    app = InvoiceTrack(InvoiceTrackConfig.from_dict({
        'database': {'type': 'sqlite', 'sqlite': {'path': 'invoices.db'}}
    }))

    alice = app.users.actor_for(app.users.register('Alice', 'alice@example.com').id)
    invoice = app.engine.create_invoice(alice, {
        'vendor_name': 'Acme', 'amount': 100, 'due_date': '2024-07-01', 'category': 'Office'
    })
    print(app.engine.list_invoice_actions(alice, invoice.id))
"""

from invoicetrack.config import InvoiceTrackConfig
from invoicetrack.context import Actor
from invoicetrack.core import InvoiceTrack
from invoicetrack.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvoiceTrackError,
    LockTimeoutError,
    NotFoundError,
)
from invoicetrack.services.transition_engine import TransitionEngine

__all__ = [
    'Actor',
    'ConflictError',
    'ForbiddenError',
    'InvalidInputError',
    'InvoiceTrack',
    'InvoiceTrackConfig',
    'InvoiceTrackError',
    'LockTimeoutError',
    'NotFoundError',
    'TransitionEngine',
]

__version__ = '1.0.0'
