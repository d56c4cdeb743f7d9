from __future__ import annotations

import os
import json
from typing import AsyncGenerator, Optional, List
from fastapi import FastAPI, Request
from fastapi.responses import StreamingResponse
import redis.asyncio as aioredis
from redis.exceptions import ResponseError

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
STREAM = os.getenv("EVENTS_STREAM", "bazaar.events")
GROUP = os.getenv("SSE_GROUP", "sse_gateway")

app = FastAPI(title="Bazaar Ledger Event Gateway")


async def ensure_group(r):
    try:
        await r.xgroup_create(name=STREAM, groupname=GROUP, id="$", mkstream=True)
    except ResponseError as e:
        if "BUSYGROUP" in str(e):
            return
        raise


def _match_filters(js: str, types: Optional[List[str]], items: Optional[List[str]], buyers: Optional[List[str]]) -> bool:
    try:
        data = json.loads(js)
    except ValueError:
        return False
    ev = data.get("event", {})
    ok_t = not types or ev.get("event_type") in types
    ok_i = not items or str(ev.get("item_id")) in items
    # buyer filter only applies to purchases
    ok_b = not buyers or ev.get("buyer") in buyers
    return ok_t and ok_i and ok_b


def _split(value: Optional[str]) -> Optional[List[str]]:
    return [v.strip() for v in value.split(",") if v.strip()] if value else None


async def event_stream(
    types: Optional[List[str]], items: Optional[List[str]], buyers: Optional[List[str]]
) -> AsyncGenerator[bytes, None]:
    r = aioredis.from_url(REDIS_URL, decode_responses=True)
    await ensure_group(r)
    consumer = os.getenv("SSE_CONSUMER", os.uname().nodename)
    try:
        while True:
            resp = await r.xreadgroup(GROUP, consumer, {STREAM: ">"}, count=100, block=15000)
            if resp:
                for _stream, entries in resp:
                    for msg_id, fields in entries:
                        js = fields.get("json", "")
                        if _match_filters(js, types, items, buyers):
                            yield f"event: ledger\ndata: {js}\n\n".encode()
                        await r.xack(STREAM, GROUP, msg_id)
            else:
                yield b": keep-alive\n\n"
    finally:
        await r.aclose()


@app.get("/events")
async def sse(request: Request, types: Optional[str] = None, items: Optional[str] = None, buyers: Optional[str] = None):
    generator = event_stream(_split(types), _split(items), _split(buyers))
    return StreamingResponse(generator, media_type="text/event-stream")
