from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple
import logging
import os
import threading
import pandas as pd

from .model import Item, Order, OrderRow, new_id, now_ms
from .errors import LedgerError, Unauthorized, ItemNotFound, InsufficientOrWrongPayment, TransferFailure
from ..wallets import WalletBook, TransferRejected
from ..events.schema import BaseEvent, EventEnvelope, Listed, Purchased, Withdrawn
from ..events.bus import publish as publish_event
from ..metrics.ledger import (
    get_items_listed_total,
    get_purchases_total,
    get_payments_received_total,
    get_withdrawals_total,
    get_withdrawn_amount_total,
    get_rejections_total,
    get_balance_gauge,
)


logger = logging.getLogger(__name__)


def _check_uint(field: str, value, positive: bool = False) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer, got {type(value).__name__}")
    if value < 0 or (positive and value == 0):
        raise ValueError(f"{field} must be {'positive' if positive else 'non-negative'}, got {value}")


def _check_str(field: str, value) -> None:
    if not isinstance(value, str):
        raise ValueError(f"{field} must be a string, got {type(value).__name__}")


class Ledger:
    """Catalog, order log and balance of a single marketplace.

    Every mutation runs under one writer lock, so a call either commits fully
    or raises with the state untouched. Events are appended to `events` inside
    the lock and handed to the publisher after it is released.
    """

    def __init__(
        self,
        owner: str,
        wallets: Optional[WalletBook] = None,
        publisher: Optional[Callable[[EventEnvelope], None]] = None,
        clock: Callable[[], int] = now_ms,
        name: str = "main",
    ):
        _check_str("owner", owner)
        self._owner = owner
        self.wallets = wallets if wallets is not None else WalletBook()
        self._publisher = publisher
        self._clock = clock
        self.name = name
        self._items: Dict[int, Item] = {}
        self._orders: Dict[Tuple[str, int], Order] = {}
        self._order_count: Dict[str, int] = {}
        self._balance = 0
        self.events: List[EventEnvelope] = []
        self._lock = threading.RLock()
        # Metrics
        self._listed_counter = get_items_listed_total()
        self._purchases_counter = get_purchases_total()
        self._payments_counter = get_payments_received_total()
        self._withdrawals_counter = get_withdrawals_total()
        self._withdrawn_counter = get_withdrawn_amount_total()
        self._rejections = get_rejections_total()
        self._balance_gauge = get_balance_gauge()

    # ---- mutations ----

    def list_item(
        self,
        caller: str,
        item_id: int,
        name: str,
        category: str,
        image: str,
        cost: int,
        rating: int,
        stock: int,
        correlation_id: Optional[str] = None,
    ) -> EventEnvelope:
        """Insert or fully overwrite the catalog entry at `item_id` (owner only)."""
        # owner is immutable, so the check needs no lock
        self._authorize(caller, "list")
        _check_uint("item_id", item_id, positive=True)
        for field, value in (("name", name), ("category", category), ("image", image)):
            _check_str(field, value)
        _check_uint("cost", cost)
        _check_uint("stock", stock)
        if isinstance(rating, bool) or not isinstance(rating, int):
            raise ValueError(f"rating must be an integer, got {type(rating).__name__}")

        item = Item(id=item_id, name=name, category=category, image=image, cost=cost, rating=rating, stock=stock)
        with self._lock:
            event = Listed(ts=self._clock(), ledger=self.name, item_id=item_id, name=name, cost=cost, stock=stock)
            self._items[item_id] = item
            env = self._record(event, correlation_id)
        self._observe("listed", lambda: self._listed_counter.labels(str(item_id)).inc())
        logger.info(f"listed item {item_id} ({name}) cost={cost} stock={stock}")
        self._publish(env)
        return env

    def buy(self, caller: str, item_id: int, payment: int, correlation_id: Optional[str] = None) -> EventEnvelope:
        """Record an order for `caller` if `payment` equals the item's cost exactly.

        Stock is not checked or decremented.
        """
        _check_str("caller", caller)
        _check_uint("item_id", item_id, positive=True)
        _check_uint("payment", payment)
        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise self._rejected("buy", ItemNotFound(item_id))
            if payment != item.cost:
                raise self._rejected("buy", InsufficientOrWrongPayment(item_id, item.cost, payment))
            ts = self._clock()
            order_no = self._order_count.get(caller, 0) + 1
            event = Purchased(ts=ts, ledger=self.name, buyer=caller, item_id=item_id, order_no=order_no)
            self._order_count[caller] = order_no
            self._orders[(caller, order_no)] = Order(timestamp=ts, item=item.copy())
            self._balance += payment
            env = self._record(event, correlation_id)
            self._observe("balance", lambda: self._balance_gauge.labels(self.name).set(self._balance))
        self._observe("purchases", lambda: self._purchases_counter.labels(str(item_id)).inc())
        self._observe("payments", lambda: self._payments_counter.inc(payment))
        logger.info(f"order {order_no} for {caller}: item {item_id} paid {payment}")
        self._publish(env)
        return env

    def withdraw(self, caller: str, correlation_id: Optional[str] = None) -> EventEnvelope:
        """Transfer the whole balance to the owner and zero it (owner only).

        The transfer happens under the lock; if the recipient rejects it the
        balance is left as it was.
        """
        self._authorize(caller, "withdraw")
        with self._lock:
            amount = self._balance
            event = Withdrawn(ts=self._clock(), ledger=self.name, owner=self._owner, amount=amount)
            try:
                self.wallets.credit(self._owner, amount)
            except TransferRejected as e:
                raise self._rejected("withdraw", TransferFailure(self._owner, amount)) from e
            self._balance = 0
            env = self._record(event, correlation_id)
            self._observe("balance", lambda: self._balance_gauge.labels(self.name).set(0))
        self._observe("withdrawals", lambda: self._withdrawals_counter.inc())
        self._observe("withdrawn", lambda: self._withdrawn_counter.inc(amount))
        logger.info(f"withdrew {amount} to {self._owner}")
        self._publish(env)
        return env

    # ---- accessors ----

    def get_item(self, item_id: int) -> Item:
        with self._lock:
            item = self._items.get(item_id)
            return item.copy() if item is not None else Item.empty()

    def get_order_count(self, buyer: str) -> int:
        with self._lock:
            return self._order_count.get(buyer, 0)

    def get_order(self, buyer: str, order_no: int) -> Order:
        with self._lock:
            order = self._orders.get((buyer, order_no))
            return order.copy() if order is not None else Order.empty()

    def get_owner(self) -> str:
        return self._owner

    def get_balance(self) -> int:
        with self._lock:
            return self._balance

    # ---- export ----

    def write_parquet(self, base_dir: str = "data") -> None:
        """Write catalog.parquet and orders.parquet. Amounts are stored as decimal strings."""
        with self._lock:
            items = [item.copy() for _, item in sorted(self._items.items())]
            rows = [
                OrderRow(
                    buyer=buyer,
                    order_no=n,
                    timestamp=o.timestamp,
                    item_id=o.item.id,
                    name=o.item.name,
                    category=o.item.category,
                    cost=str(o.item.cost),
                    rating=o.item.rating,
                    stock=o.item.stock,
                )
                for (buyer, n), o in sorted(self._orders.items())
            ]
        os.makedirs(base_dir, exist_ok=True)
        catalog_df = pd.DataFrame([{**i.__dict__, "cost": str(i.cost)} for i in items], columns=list(Item.__dataclass_fields__))
        orders_df = pd.DataFrame([r.__dict__ for r in rows], columns=list(OrderRow.__dataclass_fields__))
        catalog_df.to_parquet(os.path.join(base_dir, "catalog.parquet"))
        orders_df.to_parquet(os.path.join(base_dir, "orders.parquet"))

    # ---- internals ----

    def _authorize(self, caller: str, operation: str) -> None:
        if caller != self._owner:
            raise self._rejected(operation, Unauthorized(caller, operation))

    def _rejected(self, operation: str, err: LedgerError) -> LedgerError:
        self._observe("rejections", lambda: self._rejections.labels(operation, err.reason).inc())
        logger.warning(f"{operation} rejected: {err}")
        return err

    def _observe(self, metric: str, update: Callable[[], None]) -> None:
        # Metrics see floats; amounts past the float range raise OverflowError.
        try:
            update()
        except Exception as e:
            logger.warning(f"metric update {metric} skipped: {e!r}")

    def _record(self, event: BaseEvent, correlation_id: Optional[str]) -> EventEnvelope:
        env = EventEnvelope(correlation_id=correlation_id or new_id(), sequence=len(self.events) + 1, event=event)
        self.events.append(env)
        return env

    def _publish(self, env: EventEnvelope) -> None:
        try:
            (self._publisher or publish_event)(env)
        except Exception:
            logger.exception(f"failed to publish {env.event.event_type} #{env.sequence}")
