from __future__ import annotations

import json
import os
import logging
from typing import Iterator, Optional, Tuple

import redis
from pydantic import ValidationError

from .schema import EventEnvelope
from .metrics import get_events_total


log = logging.getLogger("bazaar.events")


def _stream_events() -> str:
    return os.getenv("EVENTS_STREAM", "bazaar.events")


def _stream_dlq() -> str:
    return os.getenv("EVENTS_DLQ", "bazaar.dlq")


def _maxlen() -> int:
    return int(os.getenv("EVENTS_MAXLEN", "100000"))


def _get_redis():
    return redis.Redis.from_url(os.getenv("REDIS_URL", "redis://localhost:6379/0"), decode_responses=True)


def to_line(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def _xadd(r, stream: str, line: str) -> None:
    r.xadd(stream, {"json": line}, maxlen=_maxlen(), approximate=True)


def publish(env: EventEnvelope) -> None:
    """Append a ledger event to the events stream, or the DLQ if that fails.

    The JSON line is logged either way, at WARNING when it did not reach the
    events stream. Never raises: the ledger has already committed the change.
    """
    try:
        get_events_total().labels(env.event.event_type).inc()
    except Exception:
        pass

    line = to_line(env)
    target = None
    try:
        r = _get_redis()
        for stream in (_stream_events(), _stream_dlq()):
            try:
                _xadd(r, stream, line)
            except Exception as e:
                log.debug(f"xadd to {stream} failed: {e!r}")
                continue
            target = stream
            break
    except Exception as e:
        log.debug(f"redis unavailable: {e!r}")
    if target == _stream_events():
        log.info(line)
    else:
        log.warning(f"undelivered({target or 'dropped'}) {line}")


def ensure_group(group: str) -> None:
    try:
        _get_redis().xgroup_create(name=_stream_events(), groupname=group, id="$", mkstream=True)
    except redis.ResponseError as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def ack(group: str, *msg_ids: str) -> int:
    if not msg_ids:
        return 0
    return _get_redis().xack(_stream_events(), group, *msg_ids)


def consume(group: str, consumer: str, block_ms: int = 15000) -> Iterator[Optional[Tuple[str, EventEnvelope]]]:
    """Yield (msg_id, EventEnvelope) from the events stream via a consumer group.

    Yields None after a block with no messages. Entries that do not parse as
    an envelope are copied to the DLQ and acknowledged here; parsed ones must
    be acknowledged by the caller with `ack`.
    """
    r = _get_redis()
    ensure_group(group)
    stream = _stream_events()
    while True:
        resp = r.xreadgroup(group, consumer, {stream: ">"}, count=100, block=block_ms)
        if not resp:
            yield None
            continue
        for _stream, entries in resp:
            for msg_id, fields in entries:
                raw = fields.get("json", "")
                try:
                    env = EventEnvelope.model_validate_json(raw)
                except ValidationError:
                    log.warning(f"malformed event {msg_id} moved to DLQ")
                    _xadd(r, _stream_dlq(), raw)
                    r.xack(stream, group, msg_id)
                    continue
                yield (msg_id, env)
