"""Ledger package.

Public API:
- Ledger: catalog, per-buyer order log, balance and withdrawal under one writer lock.
- Item, Order: value types returned by the accessors.
- Errors: Unauthorized, ItemNotFound, InsufficientOrWrongPayment, TransferFailure.
"""

from .ledger import Ledger  # re-export
from .model import Item, Order
from .errors import (
    LedgerError,
    Unauthorized,
    ItemNotFound,
    InsufficientOrWrongPayment,
    TransferFailure,
)
