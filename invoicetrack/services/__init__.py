from invoicetrack.services.invoice_query_service import InvoiceQueryService
from invoicetrack.services.locks import InvoiceLockRegistry
from invoicetrack.services.transition_engine import TransitionEngine
from invoicetrack.services.user_directory import UserDirectory

__all__ = ['InvoiceQueryService', 'InvoiceLockRegistry', 'TransitionEngine', 'UserDirectory']
