"""
Invoice Transition Engine

Single writer of invoice status, assignment and the action log. Each mutating
operation runs load -> decide -> mutate -> append under the invoice's lock and
inside one database transaction, so a status or assignment change is never
visible without its log entry.

Usage:
    engine = TransitionEngine(db)

    invoice = engine.create_invoice(submitter, {'vendor_name': 'Acme', ...})
    engine.assign(admin, invoice.id, reviewer.id)
    engine.request_transition(reviewer_actor, invoice.id, 'approved')
    history = engine.list_invoice_actions(admin, invoice.id)
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from invoicetrack.config import InvoiceTrackConfig
from invoicetrack.context import Actor
from invoicetrack.db.connection import Database
from invoicetrack.db.models import Invoice, ActionLog
from invoicetrack.db.repository import InvoiceRepository, ActionLogRepository, UserRepository
from invoicetrack.exceptions import ConflictError, ForbiddenError, InvalidInputError, NotFoundError
from invoicetrack.models.invoice import (
    ActionLogRecord,
    ActionType,
    FileReference,
    InvoiceCreate,
    InvoiceRecord,
    InvoiceStatus,
    InvoiceUpdate,
    Page,
)
from invoicetrack.policy import PolicyAction, decide, decide_history_access
from invoicetrack.services.locks import InvoiceLockRegistry
from invoicetrack.services.pagination import resolve_page

logger = logging.getLogger(__name__)


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class TransitionEngine:
    """
    Orchestrates every state-affecting operation on invoices.

    Args:
        db: Database the invoice store and action log live in
        config: Configuration; defaults to the database's configuration
        locks: Lock registry; share one between engines serving the same database
    """

    def __init__(self, db: Database, config: Optional[InvoiceTrackConfig] = None,
                 locks: Optional[InvoiceLockRegistry] = None):
        self.db = db
        self.config = config or db.config
        self.locks = locks or InvoiceLockRegistry(timeout=self.config.get('locking.timeout_seconds', 10))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self) -> Generator[Session, None, None]:
        try:
            with self.db.transaction() as session:
                yield session
        except StaleDataError as e:
            raise ConflictError(f"Invoice was modified concurrently: {str(e)}") from e
        except IntegrityError as e:
            raise ConflictError(f"Write rejected by the store: {str(e.orig)}") from e

    @contextmanager
    def _locked(self, invoice_id: str) -> Generator[Session, None, None]:
        # Commit happens before the lock is released
        with self.locks.hold(invoice_id):
            with self._unit_of_work() as session:
                yield session

    def _invoices(self, session: Session) -> InvoiceRepository:
        return InvoiceRepository(session, row_locks=self.db.supports_row_locks)

    def _load(self, session: Session, invoice_id: str, for_update: bool = False) -> Invoice:
        invoices = self._invoices(session)
        invoice = invoices.get_for_update(invoice_id) if for_update else invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError('Invoice', invoice_id)
        return invoice

    @staticmethod
    def _require_user(session: Session, user_id: str) -> None:
        if not UserRepository(session).exists(user_id):
            raise NotFoundError('User', user_id)

    def _authorize(self, actor: Actor, invoice: Invoice, action: PolicyAction,
                   target: Optional[InvoiceStatus] = None) -> None:
        decision = decide(actor, invoice, action, target)
        if decision:
            return
        logger.warning(f"Denied {action.value} on invoice {invoice.id} for {actor.id}: {decision.reason.value}")
        if decision.reason.is_conflict:
            raise ConflictError(decision.message)
        raise ForbiddenError(decision.reason, decision.message)

    def _validate(self, model, fields: Union[Dict[str, Any], Any]):
        if isinstance(fields, model):
            return fields
        if not isinstance(fields, dict):
            raise InvalidInputError(f"Expected a mapping of invoice fields, got {type(fields).__name__}")
        try:
            return model.model_validate(fields)
        except ValidationError as e:
            raise InvalidInputError.from_validation_error(e) from e

    def _check_attachment(self, attachment: Optional[FileReference]) -> None:
        if attachment is None:
            return
        try:
            attachment.check_limits(
                self.config.get('uploads.allowed_types', ['jpeg', 'jpg', 'png', 'pdf']),
                self.config.get('uploads.max_size_mb', 10),
            )
        except ValueError as e:
            raise InvalidInputError(str(e), [{'field': 'attachment', 'message': str(e)}]) from e

    @staticmethod
    def _parse_status(target_status: Union[InvoiceStatus, str]) -> InvoiceStatus:
        try:
            return InvoiceStatus(target_status)
        except ValueError:
            raise InvalidInputError(
                f"Invalid status: {target_status!r}",
                [{'field': 'status', 'message': 'must be one of pending, approved, rejected, paid'}],
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_invoice(self, submitter: Actor, fields: Union[Dict[str, Any], InvoiceCreate],
                       assigned_to: Optional[str] = None) -> InvoiceRecord:
        """
        Submit a new invoice in pending status

        Args:
            submitter: The submitting user
            fields: vendor_name, amount, due_date, category, optional notes and attachment
            assigned_to: Optional reviewer to assign right away

        Returns:
            The created invoice

        Raises:
            InvalidInputError: missing or malformed fields, disallowed attachment
            NotFoundError: submitter or reviewer not in the user directory
        """
        data = self._validate(InvoiceCreate, fields)
        self._check_attachment(data.attachment)
        assigned_to = _clean_text(assigned_to)

        with self._unit_of_work() as session:
            self._require_user(session, submitter.id)
            if assigned_to is not None:
                self._require_user(session, assigned_to)

            invoice = Invoice(
                vendor_name=data.vendor_name,
                amount=data.amount,
                due_date=data.due_date,
                category=data.category,
                notes=_clean_text(data.notes),
                file_name=data.attachment.file_name if data.attachment else None,
                file_url=data.attachment.file_url if data.attachment else None,
                status=InvoiceStatus.PENDING.value,
                submitted_by=submitter.id,
                assigned_to=assigned_to,
            )
            self._invoices(session).save(invoice)
            ActionLogRepository(session).append(ActionLog(
                invoice_id=invoice.id,
                performed_by=submitter.id,
                action=ActionType.CREATED.value,
                new_status=InvoiceStatus.PENDING.value,
                assigned_to=assigned_to,
            ))
            record = InvoiceRecord.model_validate(invoice)

        logger.info(f"Invoice {record.id} created by {submitter.id} ({record.vendor_name}, {record.amount})")
        return record

    def request_transition(self, actor: Actor, invoice_id: str, target_status: Union[InvoiceStatus, str],
                           reason: Optional[str] = None) -> InvoiceRecord:
        """
        Move an invoice to approved, rejected or paid

        The current status is not restricted: an approved invoice can be paid,
        and asking for the status the invoice already has is logged again.

        Raises:
            InvalidInputError: target is not a known status
            NotFoundError: no such invoice, or the actor is not a registered user
            ForbiddenError: the policy denied the transition
        """
        target = self._parse_status(target_status)

        with self._locked(invoice_id) as session:
            invoice = self._load(session, invoice_id, for_update=True)
            self._require_user(session, actor.id)
            self._authorize(actor, invoice, PolicyAction.TRANSITION, target)

            previous_status = invoice.status
            invoice.status = target.value
            self._invoices(session).save(invoice)
            ActionLogRepository(session).append(ActionLog(
                invoice_id=invoice.id,
                performed_by=actor.id,
                action=ActionType(target.value).value,
                previous_status=previous_status,
                new_status=target.value,
                reason=_clean_text(reason),
            ))
            record = InvoiceRecord.model_validate(invoice)

        logger.info(f"Invoice {invoice_id} {previous_status} -> {target.value} by {actor.id}")
        return record

    def assign(self, actor: Actor, invoice_id: str, reviewer_id: str,
               message: Optional[str] = None) -> InvoiceRecord:
        """
        Assign or reassign the reviewer of an invoice

        Raises:
            InvalidInputError: no reviewer id given
            NotFoundError: no such invoice, reviewer or acting user
            ForbiddenError: actor is not an admin
        """
        reviewer_id = _clean_text(reviewer_id)
        if reviewer_id is None:
            raise InvalidInputError("Please provide a user ID", [{'field': 'reviewer_id', 'message': 'required'}])

        with self._locked(invoice_id) as session:
            invoice = self._load(session, invoice_id, for_update=True)
            self._require_user(session, actor.id)
            self._authorize(actor, invoice, PolicyAction.ASSIGN)
            self._require_user(session, reviewer_id)

            previous_assignee = invoice.assigned_to
            invoice.assigned_to = reviewer_id
            self._invoices(session).save(invoice)
            action = ActionType.REASSIGNED if previous_assignee else ActionType.ASSIGNED
            ActionLogRepository(session).append(ActionLog(
                invoice_id=invoice.id,
                performed_by=actor.id,
                action=action.value,
                previous_assignee=previous_assignee,
                assigned_to=reviewer_id,
                message=_clean_text(message),
            ))
            record = InvoiceRecord.model_validate(invoice)

        logger.info(f"Invoice {invoice_id} {action.value} to {reviewer_id} by {actor.id}")
        return record

    def update_descriptive_fields(self, actor: Actor, invoice_id: str,
                                  fields: Union[Dict[str, Any], InvoiceUpdate]) -> InvoiceRecord:
        """
        Edit vendor, amount, due date, category, notes or attachment of a pending invoice

        Descriptive edits are not written to the action log.

        Raises:
            InvalidInputError: malformed fields
            NotFoundError: no such invoice
            ForbiddenError: actor is neither the submitter nor an admin
            ConflictError: the invoice is no longer pending
        """
        changes = self._validate(InvoiceUpdate, fields)
        self._check_attachment(changes.attachment)

        with self._locked(invoice_id) as session:
            invoice = self._load(session, invoice_id, for_update=True)
            self._authorize(actor, invoice, PolicyAction.EDIT)

            for column, value in changes.changes().items():
                setattr(invoice, column, _clean_text(value) if column == 'notes' else value)
            self._invoices(session).save(invoice)
            record = InvoiceRecord.model_validate(invoice)

        logger.info(f"Invoice {invoice_id} fields {sorted(changes.model_fields_set)} updated by {actor.id}")
        return record

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_invoice(self, actor: Actor, invoice_id: str) -> InvoiceRecord:
        """Get one invoice the actor is allowed to see"""
        with self.db.transaction() as session:
            invoice = self._load(session, invoice_id)
            self._authorize(actor, invoice, PolicyAction.VIEW)
            return InvoiceRecord.model_validate(invoice)

    def list_invoice_actions(self, actor: Actor, invoice_id: str) -> List[ActionLogRecord]:
        """The action history of an invoice, newest first"""
        with self.db.transaction() as session:
            invoice = self._load(session, invoice_id)
            self._authorize(actor, invoice, PolicyAction.VIEW)
            entries = ActionLogRepository(session).list_by_invoice(invoice_id)
            return [ActionLogRecord.model_validate(entry) for entry in entries]

    def list_actor_actions(self, actor: Actor, page: Optional[int] = None, page_size: Optional[int] = None,
                           actor_id: Optional[str] = None) -> Page[ActionLogRecord]:
        """
        Actions performed by a user, newest first

        Args:
            actor: The caller
            page: 1-based page number
            page_size: Entries per page, defaults to pagination.default_page_size
            actor_id: Whose actions to list; defaults to the caller. Only admins
                may list someone else's.
        """
        subject_id = actor_id or actor.id
        decision = decide_history_access(actor, subject_id)
        if not decision:
            logger.warning(f"Denied action history of {subject_id} for {actor.id}")
            raise ForbiddenError(decision.reason, decision.message)
        page, page_size = resolve_page(self.config, page, page_size)

        with self.db.transaction() as session:
            entries, total = ActionLogRepository(session).list_by_actor(subject_id, page, page_size)
            return Page[ActionLogRecord](
                items=[ActionLogRecord.model_validate(entry) for entry in entries],
                total_count=total,
                page=page,
                page_size=page_size,
            )
