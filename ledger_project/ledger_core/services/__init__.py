from .accounts import (AccountTree, create_account, deactivate,
                       get_balance_sign, reactivate, resolve_tree, set_parent)
from .balances import (account_ledger, balance_of, hierarchy_balance,
                       net_totals, trial_balance_rows)
from .costing import compute_in, item_history, record_movement, set_count
from .fixed_assets import create_fixed_asset, depreciate_asset, dispose_asset
from .orchestrator import (OperationResult, adjust_stock, create_credit_memo,
                           create_inventory_item, create_invoice,
                           physical_count, record_purchase,
                           return_to_supplier)
from .payment import record_bill_payment, record_invoice_payment
from .posting import (JournalLineSpec, build_journal, post_journal,
                      post_lines, reverse_journal)
from .reports import (balance_sheet, cash_flow, inventory_valuation,
                      profit_and_loss, trial_balance)

__all__ = [
    "AccountTree", "create_account", "deactivate", "get_balance_sign",
    "reactivate", "resolve_tree", "set_parent",
    "account_ledger", "balance_of", "hierarchy_balance", "net_totals",
    "trial_balance_rows",
    "compute_in", "item_history", "record_movement", "set_count",
    "create_fixed_asset", "depreciate_asset", "dispose_asset",
    "OperationResult", "adjust_stock", "create_credit_memo",
    "create_inventory_item", "create_invoice", "physical_count",
    "record_purchase", "return_to_supplier",
    "record_bill_payment", "record_invoice_payment",
    "JournalLineSpec", "build_journal", "post_journal", "post_lines",
    "reverse_journal",
    "balance_sheet", "cash_flow", "inventory_valuation", "profit_and_loss",
    "trial_balance",
]
