"""Ledger events: pydantic schema plus the Redis Streams bus."""

from .schema import EventEnvelope, Listed, Purchased, Withdrawn

__all__ = ["EventEnvelope", "Listed", "Purchased", "Withdrawn"]
