from __future__ import annotations

from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field


# ---- Base ----

class BaseEvent(BaseModel):
    event_type: str
    ts: int
    ledger: str = "main"


# ---- Event types ----

class Listed(BaseEvent):
    event_type: Literal["listed"] = "listed"
    item_id: int
    name: str
    cost: int
    stock: int


class Purchased(BaseEvent):
    event_type: Literal["purchased"] = "purchased"
    buyer: str
    item_id: int
    order_no: int


class Withdrawn(BaseEvent):
    event_type: Literal["withdrawn"] = "withdrawn"
    owner: str
    amount: int


AnyEvent = Annotated[
    Union[
        Listed,
        Purchased,
        Withdrawn,
    ],
    Field(discriminator="event_type"),
]


# ---- Envelope ----

class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: AnyEvent
