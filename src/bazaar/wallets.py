"""External account balances.

The ledger only ever pushes funds out to these accounts (on withdraw). An
address can be marked as rejecting inbound transfers to model a receiving
endpoint that refuses payment.
"""
from __future__ import annotations

import threading
from typing import Dict, Set


class TransferRejected(Exception):
    def __init__(self, address: str, amount: int):
        super().__init__(f"{address!r} rejected a transfer of {amount}")
        self.address = address
        self.amount = amount


class WalletBook:
    def __init__(self, balances: Dict[str, int] | None = None):
        self._balances: Dict[str, int] = dict(balances or {})
        self._rejecting: Set[str] = set()
        self._lock = threading.Lock()

    def balance_of(self, address: str) -> int:
        with self._lock:
            return self._balances.get(address, 0)

    def credit(self, address: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"amount must be non-negative, got {amount}")
        with self._lock:
            if address in self._rejecting:
                raise TransferRejected(address, amount)
            self._balances[address] = self._balances.get(address, 0) + amount

    def reject(self, address: str) -> None:
        with self._lock:
            self._rejecting.add(address)

    def accept(self, address: str) -> None:
        with self._lock:
            self._rejecting.discard(address)
