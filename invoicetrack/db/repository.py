from typing import Type, TypeVar, Generic, Optional, List, Tuple

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from .models import User, Invoice, ActionLog
from .connection import Base

T = TypeVar('T', bound=Base)


class BaseRepository(Generic[T]):
    """
    Base repository class for common database operations

    Repositories work inside a session owned by the caller, so several of them
    can take part in one transaction.
    """

    def __init__(self, model_class: Type[T], session: Session):
        self.model_class = model_class
        self.session = session

    def get(self, id: str) -> Optional[T]:
        """Get a record by ID"""
        return self.session.get(self.model_class, id)

    def list(self, **filters) -> List[T]:
        """List records with optional filters"""
        query = select(self.model_class)
        for key, value in filters.items():
            query = query.where(getattr(self.model_class, key) == value)
        return list(self.session.execute(query).scalars())


class UserRepository(BaseRepository[User]):
    """Repository for the user directory"""

    def __init__(self, session: Session):
        super().__init__(User, session)

    def get_by_email(self, email: str) -> Optional[User]:
        query = select(User).where(User.email == email)
        return self.session.execute(query).scalar_one_or_none()

    def add(self, user: User) -> User:
        self.session.add(user)
        self.session.flush()
        return user

    def exists(self, user_id: str) -> bool:
        return self.get(user_id) is not None


class InvoiceRepository(BaseRepository[Invoice]):
    """Repository for invoices. Invoices are never deleted."""

    def __init__(self, session: Session, row_locks: bool = False):
        super().__init__(Invoice, session)
        self.row_locks = row_locks

    def get_for_update(self, id: str) -> Optional[Invoice]:
        """Get an invoice, locking its row until the transaction ends where the database supports it"""
        query = select(Invoice).where(Invoice.id == id)
        if self.row_locks:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one_or_none()

    def save(self, invoice: Invoice) -> Invoice:
        """Write the full record; a stale version raises StaleDataError on flush"""
        self.session.add(invoice)
        self.session.flush()
        return invoice


class ActionLogRepository:
    """
    Repository for the action log

    Only appends and reads; entries are never updated or deleted.
    """

    def __init__(self, session: Session):
        self.session = session

    def next_sequence(self, invoice_id: str) -> int:
        query = select(func.coalesce(func.max(ActionLog.sequence), 0)).where(ActionLog.invoice_id == invoice_id)
        return self.session.execute(query).scalar_one() + 1

    def append(self, entry: ActionLog) -> ActionLog:
        """Add an entry, numbering it after the invoice's latest entry"""
        if entry.sequence is None:
            entry.sequence = self.next_sequence(entry.invoice_id)
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_by_invoice(self, invoice_id: str) -> List[ActionLog]:
        """All entries for an invoice, newest first"""
        query = (
            select(ActionLog)
            .where(ActionLog.invoice_id == invoice_id)
            .order_by(ActionLog.sequence.desc())
        )
        return list(self.session.execute(query).scalars())

    def list_by_actor(self, actor_id: str, page: int, page_size: int) -> Tuple[List[ActionLog], int]:
        """One page of entries performed by a user, newest first, plus the total count"""
        total = self.session.execute(
            select(func.count()).select_from(ActionLog).where(ActionLog.performed_by == actor_id)
        ).scalar_one()
        query = (
            select(ActionLog)
            .where(ActionLog.performed_by == actor_id)
            .order_by(ActionLog.timestamp.desc(), ActionLog.sequence.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(self.session.execute(query).scalars()), total
