from __future__ import annotations

from dataclasses import dataclass, field, replace
import time
import uuid


def new_id() -> str:
    return uuid.uuid4().hex


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Item:
    id: int
    name: str
    category: str
    image: str
    cost: int
    rating: int
    stock: int

    @classmethod
    def empty(cls) -> "Item":
        return cls(id=0, name="", category="", image="", cost=0, rating=0, stock=0)

    def copy(self) -> "Item":
        return replace(self)


@dataclass
class Order:
    timestamp: int
    item: Item = field(default_factory=Item.empty)

    @classmethod
    def empty(cls) -> "Order":
        return cls(timestamp=0)

    def copy(self) -> "Order":
        return Order(timestamp=self.timestamp, item=self.item.copy())


@dataclass
class OrderRow:
    buyer: str
    order_no: int
    timestamp: int
    item_id: int
    name: str
    category: str
    cost: str
    rating: int
    stock: int
