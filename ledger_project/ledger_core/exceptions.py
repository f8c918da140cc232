from decimal import Decimal


class LedgerError(Exception):
    """Base class for errors raised by the ledger and costing engine."""
    pass


class UnbalancedJournal(LedgerError):
    """Raised when a JournalEntry fails double-entry balance check."""

    def __init__(self, message, imbalance=Decimal("0.00")):
        super().__init__(message)
        # debits - credits, in currency units
        self.imbalance = imbalance


class AlreadyPostedDifferentPayload(LedgerError):
    """Raised when a JournalEntry already posted with different payload """
    pass


class DuplicateJournalNumber(LedgerError):
    pass


class DuplicateCode(LedgerError):
    """Account code already used inside the same company."""
    pass


class AccountInUse(LedgerError):
    """System account or account referenced by journal lines."""
    pass


class AccountCycleError(LedgerError):
    """Account hierarchy contains a cycle (internal error)."""
    pass


class InsufficientStock(LedgerError):

    def __init__(self, message, available=None, requested=None):
        super().__init__(message)
        self.available = available
        self.requested = requested


class ReturnExceedsOriginal(LedgerError):
    pass


class AlreadyVoided(LedgerError):
    pass


class TenantMismatch(LedgerError):
    """A record of one company referenced from another company."""
    pass


class MissingAccountMapping(LedgerError):
    """Company posting configuration lacks an account for a role."""
    pass


class ConcurrentUpdateConflict(LedgerError):
    """Serialization conflicts persisted after bounded retries."""
    pass
