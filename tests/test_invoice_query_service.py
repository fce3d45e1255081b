"""
Tests for InvoiceQueryService
"""

import shutil
import tempfile
from datetime import date
from pathlib import Path

import pytest

from invoicetrack import InvoiceTrack
from invoicetrack.context import Actor
from invoicetrack.exceptions import InvalidInputError
from invoicetrack.models.invoice import InvoiceStatus


class TestInvoiceQueryService:

    def setup_method(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.app = InvoiceTrack.from_dict({
            'database': {'type': 'sqlite', 'sqlite': {'path': str(self.test_dir / 'invoicetrack.db')}},
            'pagination': {'default_page_size': 2, 'max_page_size': 5},
        })
        self.engine = self.app.engine
        self.query = self.app.invoices

        def register(name, email, role='user'):
            record = self.app.users.register(name, email, role)
            return Actor(record.id, record.role.value)

        self.admin = register('Ada Admin', 'admin@example.com', 'admin')
        self.alice = register('Alice', 'alice@example.com')
        self.bob = register('Bob', 'bob@example.com')
        self.rita = register('Rita', 'rita@example.com')

        def create(submitter, vendor, category, due):
            return self.engine.create_invoice(submitter, {
                'vendor_name': vendor,
                'amount': 10,
                'due_date': due,
                'category': category,
            })

        self.acme = create(self.alice, 'Acme Corp', 'Office', '2024-01-15')
        self.globex = create(self.alice, 'Globex', 'Travel', '2024-02-15')
        self.initech = create(self.bob, 'Initech 100%', 'Office', '2024-03-15')
        self.engine.assign(self.admin, self.initech.id, self.rita.id)
        self.engine.request_transition(self.rita, self.initech.id, 'approved')

    def teardown_method(self):
        self.app.close()
        if self.test_dir.exists():
            shutil.rmtree(self.test_dir)

    def ids(self, page):
        return [invoice.id for invoice in page.items]

    def test_admin_sees_everything_newest_first(self):
        page = self.query.list_invoices(self.admin, page_size=5)
        assert page.total_count == 3
        assert self.ids(page) == [self.initech.id, self.globex.id, self.acme.id]

    def test_default_page_size_from_config(self):
        first = self.query.list_invoices(self.admin)
        assert first.page_size == 2
        assert first.total_pages == 2
        second = self.query.list_invoices(self.admin, page=2)
        assert self.ids(first) + self.ids(second) == [self.initech.id, self.globex.id, self.acme.id]

    def test_page_past_the_end_is_empty(self):
        page = self.query.list_invoices(self.admin, page=4)
        assert page.items == []
        assert page.total_count == 3

    def test_users_see_submitted_and_assigned_only(self):
        assert set(self.ids(self.query.list_invoices(self.alice, page_size=5))) == {self.acme.id, self.globex.id}
        assert self.ids(self.query.list_invoices(self.bob)) == [self.initech.id]
        assert self.ids(self.query.list_invoices(self.rita)) == [self.initech.id]

    def test_status_filter(self):
        page = self.query.list_invoices(self.admin, status=InvoiceStatus.APPROVED)
        assert self.ids(page) == [self.initech.id]
        assert self.query.list_invoices(self.admin, status='pending').total_count == 2

    def test_vendor_filter_is_case_insensitive_substring(self):
        assert self.ids(self.query.list_invoices(self.admin, vendor='acme')) == [self.acme.id]
        assert self.ids(self.query.list_invoices(self.admin, vendor='EX')) == [self.globex.id]

    def test_vendor_filter_treats_wildcards_literally(self):
        assert self.ids(self.query.list_invoices(self.admin, vendor='100%')) == [self.initech.id]
        assert self.query.list_invoices(self.admin, vendor='%').total_count == 1
        assert self.query.list_invoices(self.admin, vendor='_').total_count == 0

    def test_category_filter(self):
        page = self.query.list_invoices(self.admin, category='Office', page_size=5)
        assert set(self.ids(page)) == {self.acme.id, self.initech.id}

    def test_due_date_range_is_inclusive(self):
        page = self.query.list_invoices(
            self.admin, start_date=date(2024, 1, 15), end_date=date(2024, 2, 15), page_size=5
        )
        assert set(self.ids(page)) == {self.acme.id, self.globex.id}

    def test_assigned_to_filter(self):
        assert self.ids(self.query.list_invoices(self.admin, assigned_to=self.rita.id)) == [self.initech.id]

    def test_filters_combine_with_visibility(self):
        page = self.query.list_invoices(self.bob, category='Office', page_size=5)
        assert self.ids(page) == [self.initech.id]

    def test_invalid_status(self):
        with pytest.raises(InvalidInputError):
            self.query.list_invoices(self.admin, status='archived')

    @pytest.mark.parametrize('page,page_size', [(0, 2), (-1, 2), (1, 0), (1, 6)])
    def test_page_bounds(self, page, page_size):
        with pytest.raises(InvalidInputError):
            self.query.list_invoices(self.admin, page=page, page_size=page_size)
