"""
Invoice Listing Service

Read-only, filtered and paginated view over the invoice store. It is not part
of any transition's atomic unit and may trail in-flight writes.
"""

import logging
from datetime import date
from typing import Optional, Union

from sqlalchemy import select, func, or_

from invoicetrack.config import InvoiceTrackConfig
from invoicetrack.context import Actor
from invoicetrack.db.connection import Database
from invoicetrack.db.models import Invoice
from invoicetrack.exceptions import InvalidInputError
from invoicetrack.models.invoice import InvoiceRecord, InvoiceStatus, Page
from invoicetrack.services.pagination import resolve_page

logger = logging.getLogger(__name__)


class InvoiceQueryService:
    """Lists the invoices an actor may see"""

    def __init__(self, db: Database, config: Optional[InvoiceTrackConfig] = None):
        self.db = db
        self.config = config or db.config

    def list_invoices(
        self,
        actor: Actor,
        status: Optional[Union[InvoiceStatus, str]] = None,
        vendor: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        assigned_to: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Page[InvoiceRecord]:
        """
        List invoices, newest first

        Non-admins only see invoices they submitted or are assigned to.

        Args:
            actor: The caller
            status: Exact status
            vendor: Case-insensitive substring of the vendor name
            category: Exact category
            start_date: Earliest due date, inclusive
            end_date: Latest due date, inclusive
            assigned_to: Reviewer user id
            page: 1-based page number
            page_size: Invoices per page

        Returns:
            Page of invoices
        """
        page, page_size = resolve_page(self.config, page, page_size)

        conditions = []
        if status:
            try:
                conditions.append(Invoice.status == InvoiceStatus(status).value)
            except ValueError:
                raise InvalidInputError(f"Invalid status: {status!r}")
        if vendor:
            conditions.append(func.lower(Invoice.vendor_name).contains(vendor.strip().lower(), autoescape=True))
        if category:
            conditions.append(Invoice.category == category)
        if start_date:
            conditions.append(Invoice.due_date >= start_date)
        if end_date:
            conditions.append(Invoice.due_date <= end_date)
        if assigned_to:
            conditions.append(Invoice.assigned_to == assigned_to)
        if not actor.is_admin:
            conditions.append(or_(Invoice.submitted_by == actor.id, Invoice.assigned_to == actor.id))

        with self.db.transaction() as session:
            total = session.execute(
                select(func.count()).select_from(Invoice).where(*conditions)
            ).scalar_one()
            invoices = session.execute(
                select(Invoice)
                .where(*conditions)
                .order_by(Invoice.created_at.desc(), Invoice.id)
                .offset((page - 1) * page_size)
                .limit(page_size)
            ).scalars()
            items = [InvoiceRecord.model_validate(invoice) for invoice in invoices]

        logger.debug(f"Listed {len(items)} of {total} invoices for {actor.id}")
        return Page[InvoiceRecord](items=items, total_count=total, page=page, page_size=page_size)
