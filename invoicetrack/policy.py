"""
Authorization policy for the invoice workflow

decide() is the only place that answers "may this actor do this to this
invoice". It reads nothing but the actor's id and role and the invoice's
submitted_by, assigned_to and status, so the same inputs always give the same
Decision and any past decision can be replayed from the action log.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from invoicetrack.context import Actor
from invoicetrack.models.invoice import InvoiceStatus


class PolicyAction(str, Enum):
    """What the actor wants to do with the invoice"""
    VIEW = "view"
    EDIT = "edit"
    TRANSITION = "transition"
    ASSIGN = "assign"


class DenyReason(str, Enum):
    NOT_ADMIN = "not_admin"
    NOT_SUBMITTER = "not_submitter"
    NOT_ASSIGNED_REVIEWER = "not_assigned_reviewer"
    NO_REVIEWER_ASSIGNED = "no_reviewer_assigned"
    NOT_PARTICIPANT = "not_participant"
    PENDING_NOT_A_TARGET = "pending_not_a_target"
    INVOICE_NOT_PENDING = "invoice_not_pending"

    @property
    def is_conflict(self) -> bool:
        """The denial is about the invoice's state rather than who is asking"""
        return self is DenyReason.INVOICE_NOT_PENDING


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ''

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: DenyReason, message: str) -> Decision:
    return Decision(False, reason, message)


def decide_history_access(actor: Actor, subject_id: str) -> Decision:
    """Decide whether an actor may read the actions performed by subject_id"""
    if actor.is_admin or actor.id == subject_id:
        return ALLOW
    return deny(DenyReason.NOT_ADMIN, "Only admin can view another user's actions")


def decide(actor: Actor, invoice, action: Union[PolicyAction, str],
           target_status: Optional[Union[InvoiceStatus, str]] = None) -> Decision:
    """
    Decide whether an actor may perform an action on an invoice

    Admins are allowed everything except two things, which hold for them as
    for everyone else: pending is never the target of a transition, and an
    invoice that is no longer pending cannot be edited.

    Args:
        actor: The caller
        invoice: Anything with submitted_by, assigned_to and status attributes
        action: PolicyAction (or its value)
        target_status: Destination status, required for TRANSITION

    Returns:
        Decision; falsy when denied, with the reason set
    """
    action = PolicyAction(action)
    status = InvoiceStatus(invoice.status)
    is_submitter = invoice.submitted_by == actor.id
    is_assignee = invoice.assigned_to is not None and invoice.assigned_to == actor.id

    if action is PolicyAction.TRANSITION:
        if target_status is None:
            raise ValueError("target_status is required for a transition")
        target = InvoiceStatus(target_status)
        # Pending is only ever an initial state, for admins too
        if target is InvoiceStatus.PENDING:
            return deny(DenyReason.PENDING_NOT_A_TARGET, "An invoice cannot be moved back to pending")

    if action is PolicyAction.EDIT:
        if not actor.is_admin and not is_submitter:
            return deny(DenyReason.NOT_SUBMITTER, "Not authorized to update this invoice")
        if status is not InvoiceStatus.PENDING:
            return deny(DenyReason.INVOICE_NOT_PENDING, f"Cannot update invoice with status {status.value}")
        return ALLOW

    if actor.is_admin:
        return ALLOW

    if action is PolicyAction.VIEW:
        if is_submitter or is_assignee:
            return ALLOW
        return deny(DenyReason.NOT_PARTICIPANT, "Not authorized to access this invoice")

    if action is PolicyAction.ASSIGN:
        return deny(DenyReason.NOT_ADMIN, "Only admin can assign/reassign invoices")

    # TRANSITION to approved, rejected or paid
    if target is InvoiceStatus.PAID:
        if is_submitter:
            return ALLOW
        return deny(DenyReason.NOT_SUBMITTER, "Only the submitter or admin can mark as paid")

    if invoice.assigned_to is None:
        return deny(DenyReason.NO_REVIEWER_ASSIGNED, "No reviewer is assigned to this invoice")
    if not is_assignee:
        return deny(DenyReason.NOT_ASSIGNED_REVIEWER, "Only the assigned reviewer or admin can approve/reject")
    return ALLOW
