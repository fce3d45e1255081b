from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import BigInteger, Column, String, Integer, Date, DateTime, Text, ForeignKey, UniqueConstraint, Index, event
from sqlalchemy.orm import relationship

from invoicetrack.db.connection import get_base


def generate_id(model_class=None) -> str:
    """Generate a unique ID for a model"""
    if model_class is None:
        return str(uuid4())

    # Map model classes to their three-letter prefixes
    prefix_map = {
        'User': 'usr',
        'Invoice': 'inv',
        'ActionLog': 'act',
    }
    prefix = prefix_map.get(model_class.__name__, '')
    return f"{prefix}_{uuid4().hex}"


def utcnow() -> datetime:
    """Current UTC time, naive. All timestamp columns hold naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Get base class from connection
Base = get_base()


class User(Base):
    """
    Model for users of the invoice workflow

    Role is either 'user' or 'admin'. Reviewers are not a role: a user reviews
    an invoice by being its assignee.
    """
    __tablename__ = 'users'
    __table_args__ = (
        UniqueConstraint('email', name='uq_users_email'),
    )

    id = Column(String(36), primary_key=True, default=lambda: generate_id(User))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default='user')
    created_at = Column(DateTime, nullable=False, default=utcnow)


class Invoice(Base):
    """
    Model for invoices

    Status is stored as the InvoiceStatus value string. The amount is stored
    as a whole number of cents and read and written through the amount
    property as a Decimal with two places. The version column is bumped on
    every flush so a write based on a stale read fails.
    """
    __tablename__ = 'invoices'
    __table_args__ = (
        Index('ix_invoices_status', 'status'),
        Index('ix_invoices_vendor_name', 'vendor_name'),
        Index('ix_invoices_due_date', 'due_date'),
        Index('ix_invoices_submitted_by', 'submitted_by'),
        Index('ix_invoices_assigned_to', 'assigned_to'),
    )

    id = Column(String(36), primary_key=True, default=lambda: generate_id(Invoice))
    vendor_name = Column(String(255), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    due_date = Column(Date, nullable=False)
    category = Column(String(100), nullable=False)
    notes = Column(Text, nullable=True)
    file_name = Column(String(255), nullable=True)
    file_url = Column(String(1024), nullable=True)
    status = Column(String(20), nullable=False, default='pending')
    submitted_by = Column(String(36), ForeignKey('users.id'), nullable=False)
    assigned_to = Column(String(36), ForeignKey('users.id'), nullable=True)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {'version_id_col': version}

    # Relationships
    actions = relationship('ActionLog', back_populates='invoice', order_by='ActionLog.sequence')

    @property
    def amount(self):
        if self.amount_cents is None:
            return None
        return Decimal(self.amount_cents).scaleb(-2)

    @amount.setter
    def amount(self, value):
        self.amount_cents = None if value is None else int(Decimal(value).quantize(Decimal('0.01')).scaleb(2))


class ActionLog(Base):
    """
    Append-only record of lifecycle events on an invoice

    sequence counts entries per invoice starting at 1. Two writers that both
    read the same last sequence collide on uq_action_log_invoice_sequence.
    """
    __tablename__ = 'action_log'
    __table_args__ = (
        UniqueConstraint('invoice_id', 'sequence', name='uq_action_log_invoice_sequence'),
        Index('ix_action_log_performed_by', 'performed_by'),
        Index('ix_action_log_timestamp', 'timestamp'),
    )

    id = Column(String(36), primary_key=True, default=lambda: generate_id(ActionLog))
    invoice_id = Column(String(36), ForeignKey('invoices.id'), nullable=False)
    sequence = Column(Integer, nullable=False)
    performed_by = Column(String(36), ForeignKey('users.id'), nullable=False)
    action = Column(String(20), nullable=False)
    previous_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    reason = Column(Text, nullable=True)
    message = Column(Text, nullable=True)
    assigned_to = Column(String(36), ForeignKey('users.id'), nullable=True)
    previous_assignee = Column(String(36), ForeignKey('users.id'), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow)

    # Relationships
    invoice = relationship('Invoice', back_populates='actions')


@event.listens_for(ActionLog, 'before_update')
def _reject_action_log_update(mapper, connection, target):
    raise RuntimeError(f"Action log entries are append-only; refusing to update {target.id}")


@event.listens_for(ActionLog, 'before_delete')
def _reject_action_log_delete(mapper, connection, target):
    raise RuntimeError(f"Action log entries are append-only; refusing to delete {target.id}")
