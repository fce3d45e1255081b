from invoicetrack.db.connection import Database
from invoicetrack.db.models import User, Invoice, ActionLog

__all__ = ['Database', 'User', 'Invoice', 'ActionLog']
