from invoicetrack.config.invoicetrack_config import InvoiceTrackConfig, configure_logging

__all__ = ['InvoiceTrackConfig', 'configure_logging']
