import logging
import re
from typing import List, Optional, Union

from invoicetrack.context import Actor
from invoicetrack.db.connection import Database
from invoicetrack.db.models import User
from invoicetrack.db.repository import UserRepository
from invoicetrack.exceptions import ConflictError, InvalidInputError, NotFoundError
from invoicetrack.models.invoice import Role, UserRecord

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


class UserDirectory:
    """Service for registering and looking up workflow users"""

    def __init__(self, db: Database):
        """
        Initialize the user directory

        Args:
            db: Database instance
        """
        self.db = db

    def register(self, name: str, email: str, role: Union[Role, str] = Role.USER) -> UserRecord:
        """
        Add a user

        Raises:
            InvalidInputError: empty name, malformed email or unknown role
            ConflictError: the email is already registered
        """
        name = (name or '').strip()
        email = (email or '').strip().lower()
        if not name:
            raise InvalidInputError("Name is required")
        if not EMAIL_PATTERN.match(email):
            raise InvalidInputError(f"Invalid email address: {email!r}")
        try:
            role = Role(role)
        except ValueError:
            raise InvalidInputError(f"Invalid role: {role!r}")

        with self.db.transaction() as session:
            users = UserRepository(session)
            if users.get_by_email(email) is not None:
                raise ConflictError(f"A user with email {email} already exists")
            user = users.add(User(name=name, email=email, role=role.value))
            record = UserRecord.model_validate(user)

        logger.info(f"Registered {role.value} {record.id} <{email}>")
        return record

    def get(self, user_id: str) -> UserRecord:
        with self.db.transaction() as session:
            user = UserRepository(session).get(user_id)
            if user is None:
                raise NotFoundError('User', user_id)
            return UserRecord.model_validate(user)

    def list(self, role: Optional[Union[Role, str]] = None) -> List[UserRecord]:
        with self.db.transaction() as session:
            repo = UserRepository(session)
            users = repo.list(role=Role(role).value) if role else repo.list()
            return [UserRecord.model_validate(user) for user in sorted(users, key=lambda u: u.created_at)]

    def actor_for(self, user_id: str) -> Actor:
        """Build the Actor for a registered user"""
        user = self.get(user_id)
        return Actor(id=user.id, role=user.role.value)
