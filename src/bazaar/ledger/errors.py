"""Errors raised by the ledger. Every one of them aborts the call with no state change."""

from __future__ import annotations


class LedgerError(Exception):
    reason = "ledger_error"


class Unauthorized(LedgerError):
    reason = "unauthorized"

    def __init__(self, caller: str, operation: str):
        super().__init__(f"{caller!r} is not allowed to {operation}")
        self.caller = caller
        self.operation = operation


class ItemNotFound(LedgerError):
    reason = "item_not_found"

    def __init__(self, item_id: int):
        super().__init__(f"item {item_id} has not been listed")
        self.item_id = item_id


class InsufficientOrWrongPayment(LedgerError):
    reason = "wrong_payment"

    def __init__(self, item_id: int, expected: int, received: int):
        super().__init__(f"item {item_id} costs {expected}, got {received}")
        self.item_id = item_id
        self.expected = expected
        self.received = received


class TransferFailure(LedgerError):
    reason = "transfer_failed"

    def __init__(self, recipient: str, amount: int):
        super().__init__(f"transfer of {amount} to {recipient!r} was rejected")
        self.recipient = recipient
        self.amount = amount
