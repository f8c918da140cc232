from .account import Account
from .auditlog import AuditLog
from .bill import Bill, BillLine
from .company import Company, Currency
from .configuration import PostingConfiguration
from .credit_memo import CreditMemo, CreditMemoLine
from .customer import Customer
from .fixed_asset import FixedAsset
from .inventory import InventoryItem, StockMovement
from .invoice import Invoice, InvoiceLine
from .journal import JournalEntry, JournalLine
from .payment import Payment
from .vendor import Vendor
