from __future__ import annotations

from typing import Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_items_listed: Optional[Counter] = None
_purchases: Optional[Counter] = None
_payments_received: Optional[Counter] = None
_withdrawals: Optional[Counter] = None
_withdrawn_amount: Optional[Counter] = None
_rejections: Optional[Counter] = None
_balance_gauge: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _disabled() -> bool:
    return os.getenv("DISABLE_PROMETHEUS", "0") == "1"


def _registered(name: str, kind):
    # prometheus_client strips the _total suffix from counter names internally
    try:
        coll = getattr(REGISTRY, "_names_to_collectors", {}).get(name)
        if isinstance(coll, kind):
            return coll
        for coll in list(getattr(REGISTRY, "_collector_to_names", {}).keys()):  # type: ignore[attr-defined]
            if isinstance(coll, kind) and getattr(coll, "_name", None) in (name, name.removesuffix("_total")):
                return coll
    except Exception:
        pass
    return None


def _safe_counter(name: str, doc: str, labelnames=()):
    if _disabled():
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        return _registered(name, Counter) or _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if _disabled():
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        return _registered(name, Gauge) or _NoOp()


def get_items_listed_total():
    global _items_listed
    if _items_listed is None:
        _items_listed = _safe_counter("items_listed_total", "Catalog listings written", ["item"])
    return _items_listed


def get_purchases_total():
    global _purchases
    if _purchases is None:
        _purchases = _safe_counter("purchases_total", "Orders recorded", ["item"])
    return _purchases


def get_payments_received_total():
    """Counter: sum of accepted payments, in base currency units.

    Prometheus samples are floats; the ledger's own balance stays exact.
    """
    global _payments_received
    if _payments_received is None:
        _payments_received = _safe_counter("payments_received_total", "Accepted payment amount")
    return _payments_received


def get_withdrawals_total():
    global _withdrawals
    if _withdrawals is None:
        _withdrawals = _safe_counter("withdrawals_total", "Successful withdrawals")
    return _withdrawals


def get_withdrawn_amount_total():
    global _withdrawn_amount
    if _withdrawn_amount is None:
        _withdrawn_amount = _safe_counter("withdrawn_amount_total", "Amount transferred to the owner")
    return _withdrawn_amount


def get_rejections_total():
    global _rejections
    if _rejections is None:
        _rejections = _safe_counter(
            "ledger_rejections_total", "Ledger calls rejected", ["operation", "reason"]
        )
    return _rejections


def get_balance_gauge():
    global _balance_gauge
    if _balance_gauge is None:
        _balance_gauge = _safe_gauge("ledger_balance", "Undistributed ledger balance", ["ledger"])
    return _balance_gauge
