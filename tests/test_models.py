from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from invoicetrack.exceptions import InvalidInputError
from invoicetrack.models.invoice import (
    ActionLogRecord,
    FileReference,
    InvoiceCreate,
    InvoiceUpdate,
    Page,
    parse_amount,
)

ALLOWED = ['jpeg', 'jpg', 'png', 'pdf']


class TestParseAmount:

    @pytest.mark.parametrize('raw,expected', [
        (100, Decimal('100')),
        (12.5, Decimal('12.5')),
        ('1,234.56', Decimal('1234.56')),
        ('$ 99.90', Decimal('99.90')),
        ('\u20ac 1 000', Decimal('1000')),
        ('-.5', Decimal('-0.5')),
        (Decimal('3.10'), Decimal('3.10')),
    ])
    def test_formats(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize('raw', ['twelve', True, '1e5', '12abc34', '1.2.3', '', '$'])
    def test_rejects(self, raw):
        with pytest.raises(ValueError):
            parse_amount(raw)


class TestInvoiceCreate:

    def test_valid(self):
        data = InvoiceCreate(vendor_name='  Acme ', amount='10.00', due_date='2024-07-01', category='Office')
        assert data.vendor_name == 'Acme'
        assert data.due_date == date(2024, 7, 1)
        assert data.notes is None and data.attachment is None

    def test_unknown_fields_rejected(self):
        with pytest.raises(ValidationError):
            InvoiceCreate(vendor_name='Acme', amount=1, due_date='2024-07-01', category='Office', status='paid')

    def test_validation_error_conversion(self):
        with pytest.raises(ValidationError) as excinfo:
            InvoiceCreate(amount=-1, due_date='2024-07-01', category='Office')
        error = InvalidInputError.from_validation_error(excinfo.value)
        fields = {e['field'] for e in error.errors}
        assert fields == {'vendor_name', 'amount'}
        assert error.message.startswith('Invalid input:')

    def test_amount_is_held_to_cents(self):
        data = InvoiceCreate(vendor_name='Acme', amount='5', due_date='2024-07-01', category='Office')
        assert str(data.amount) == '5.00'

    @pytest.mark.parametrize('amount', ['12.345', '0.001', '1234567890123.45', '1e5'])
    def test_amount_out_of_range(self, amount):
        with pytest.raises(ValidationError):
            InvoiceCreate(vendor_name='Acme', amount=amount, due_date='2024-07-01', category='Office')


class TestInvoiceUpdate:

    def test_changes_only_include_provided_fields(self):
        update = InvoiceUpdate(amount='5', notes=None)
        assert update.changes() == {'amount': Decimal('5'), 'notes': None}

    def test_attachment_maps_to_columns(self):
        update = InvoiceUpdate(attachment={'file_name': 'a.png', 'file_url': 'http://x/a.png'})
        assert update.changes() == {'file_name': 'a.png', 'file_url': 'http://x/a.png'}
        assert InvoiceUpdate(attachment=None).changes() == {'file_name': None, 'file_url': None}

    @pytest.mark.parametrize('field', ['vendor_name', 'amount', 'due_date', 'category'])
    def test_required_fields_cannot_be_cleared(self, field):
        with pytest.raises(ValidationError):
            InvoiceUpdate(**{field: None})


class TestFileReference:

    def test_extension(self):
        assert FileReference(file_name='Scan.JPG', file_url='u').extension == 'jpg'
        assert FileReference(file_name='README', file_url='u').extension == ''

    def test_within_limits(self):
        FileReference(file_name='a.pdf', file_url='u', content_type='application/pdf', size_bytes=1024).check_limits(
            ALLOWED, 10)

    @pytest.mark.parametrize('reference', [
        {'file_name': 'a.docx', 'file_url': 'u'},
        {'file_name': 'README', 'file_url': 'u'},
        {'file_name': 'a.pdf', 'file_url': 'u', 'content_type': 'image/png'},
        {'file_name': 'a.png', 'file_url': 'u', 'size_bytes': 2 * 1024 * 1024 + 1},
    ])
    def test_outside_limits(self, reference):
        with pytest.raises(ValueError):
            FileReference(**reference).check_limits(ALLOWED, 2)


class TestPage:

    @pytest.mark.parametrize('total,size,pages', [(0, 10, 0), (10, 10, 1), (11, 10, 2)])
    def test_total_pages(self, total, size, pages):
        assert Page[ActionLogRecord](items=[], total_count=total, page=1, page_size=size).total_pages == pages
