from .branches import Branch
from .workers import Worker
from .catalog import CatalogItem
from .invoices import SalesReceipt, SalesReceiptLine, ExpenseInvoice, ExpenseInvoiceLine
from .notifications import NotificationOutbox
from .security import SecurityEvent

__all__ = [
    'Branch', 'Worker', 'CatalogItem',
    'SalesReceipt', 'SalesReceiptLine', 'ExpenseInvoice', 'ExpenseInvoiceLine',
    'NotificationOutbox', 'SecurityEvent',
]
