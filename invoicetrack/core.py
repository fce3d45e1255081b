import logging
from typing import Any, Dict, Optional

from invoicetrack.config import InvoiceTrackConfig
from invoicetrack.db.connection import Database
from invoicetrack.services.invoice_query_service import InvoiceQueryService
from invoicetrack.services.transition_engine import TransitionEngine
from invoicetrack.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)


class InvoiceTrack:
    """
    Wires the database and the services for one configuration

    Attributes:
        config: The configuration in use
        db: Database handle shared by the services
        engine: TransitionEngine for all state-affecting operations
        invoices: InvoiceQueryService for filtered listings
        users: UserDirectory
    """

    def __init__(self, config: Optional[InvoiceTrackConfig] = None, create_tables: bool = True):
        self.config = config if config is not None else InvoiceTrackConfig()
        self.db = Database(self.config)
        if create_tables:
            self.db.create_tables()
        self.engine = TransitionEngine(self.db, self.config)
        self.invoices = InvoiceQueryService(self.db, self.config)
        self.users = UserDirectory(self.db)

    @classmethod
    def from_dict(cls, config: Dict[str, Any], create_tables: bool = True) -> 'InvoiceTrack':
        return cls(InvoiceTrackConfig.from_dict(config), create_tables=create_tables)

    def close(self) -> None:
        self.db.dispose()
