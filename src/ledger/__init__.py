from .service import PaymentLedgerService
from .store import InMemoryLedgerStore, LedgerStore

__all__ = ["LedgerStore", "InMemoryLedgerStore", "PaymentLedgerService"]
