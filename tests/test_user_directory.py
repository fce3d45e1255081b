import shutil
import tempfile
from pathlib import Path

import pytest

from invoicetrack import InvoiceTrack
from invoicetrack.exceptions import ConflictError, InvalidInputError, NotFoundError
from invoicetrack.models.invoice import Role


class TestUserDirectory:

    def setup_method(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.app = InvoiceTrack.from_dict({
            'database': {'type': 'sqlite', 'sqlite': {'path': str(self.test_dir / 'invoicetrack.db')}},
        })
        self.users = self.app.users

    def teardown_method(self):
        self.app.close()
        if self.test_dir.exists():
            shutil.rmtree(self.test_dir)

    def test_register_and_get(self):
        user = self.users.register('  Alice  ', 'Alice@Example.com')
        assert user.id.startswith('usr_')
        assert user.name == 'Alice'
        assert user.email == 'alice@example.com'
        assert user.role is Role.USER
        fetched = self.users.get(user.id)
        assert (fetched.id, fetched.email, fetched.role) == (user.id, user.email, Role.USER)

    def test_register_admin(self):
        assert self.users.register('Ada', 'ada@example.com', 'admin').role is Role.ADMIN

    def test_duplicate_email_is_conflict(self):
        self.users.register('Alice', 'alice@example.com')
        with pytest.raises(ConflictError):
            self.users.register('Other Alice', 'ALICE@example.com')

    @pytest.mark.parametrize('name,email,role', [
        ('', 'a@example.com', 'user'),
        ('Alice', 'not-an-email', 'user'),
        ('Alice', 'a@example.com', 'superuser'),
    ])
    def test_invalid_registration(self, name, email, role):
        with pytest.raises(InvalidInputError):
            self.users.register(name, email, role)

    def test_unknown_user(self):
        with pytest.raises(NotFoundError) as excinfo:
            self.users.get('usr_missing')
        assert excinfo.value.entity_id == 'usr_missing'

    def test_list_by_role(self):
        alice = self.users.register('Alice', 'alice@example.com')
        ada = self.users.register('Ada', 'ada@example.com', Role.ADMIN)
        assert [u.id for u in self.users.list()] == [alice.id, ada.id]
        assert [u.id for u in self.users.list(role='admin')] == [ada.id]

    def test_actor_for(self):
        ada = self.users.register('Ada', 'ada@example.com', 'admin')
        actor = self.users.actor_for(ada.id)
        assert actor.id == ada.id
        assert actor.is_admin
