"""Import endpoint with Server-Sent Events (SSE) streaming.

Routes
------
POST /imports    Body: {"urls": ["https://...", ...]}

The pipeline runs in a background thread; each pipeline event is pushed to
the client as soon as it is produced, so log lines and progress arrive in
address-processing order.

SSE event format
----------------
Each event is a JSON-encoded object on the ``data:`` line::

    data: {"event": "log", "message": "[FETCH] ✓ HTTP 200, 51234 chars"}

    data: {"event": "progress", "state": "running", "current_index": 1, ...}

    data: {"event": "done", "progress": {...}, "outcomes": [...]}

    data: {"event": "error", "detail": "..."}

Closing the stream cancels the run before its next address.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, AsyncIterator, Optional

import httpx
from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from catalog_import.db import open_catalog
from catalog_import.pipeline.orchestrator import build_pipeline

router = APIRouter()
logger = logging.getLogger(__name__)

# Single worker: a second import waits until the running one finishes, so
# only one page fetch is ever in flight against the source site.
_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="import")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ImportRequest(BaseModel):
    urls: list[str]
    delay: Optional[float] = None


# ---------------------------------------------------------------------------
# SSE helpers
# ---------------------------------------------------------------------------

def _sse(payload: dict[str, Any]) -> str:
    """Format a payload dict as a single SSE ``data:`` line."""
    return f"data: {json.dumps(payload)}\n\n"


# ---------------------------------------------------------------------------
# Background runner
# ---------------------------------------------------------------------------

def _run_import(
    body: ImportRequest,
    queue: "asyncio.Queue[str | None]",
    loop: asyncio.AbstractEventLoop,
    cancel: threading.Event,
) -> None:
    """Execute one import run and push SSE-formatted strings into *queue*.

    Runs in a ThreadPoolExecutor.  A ``None`` sentinel is enqueued when the
    thread finishes (success or error) so the async generator knows to stop.
    """
    def _put(payload: dict[str, Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, _sse(payload))

    try:
        with open_catalog() as conn, httpx.Client() as client:
            pipeline = build_pipeline(conn, client, delay=body.delay)
            run = pipeline.run(body.urls, cancel=cancel)
            for event in run:
                if event.log:
                    _put({"event": "log", "message": event.log})
                if event.progress:
                    _put({"event": "progress", **event.progress.to_dict()})

            _put(
                {
                    "event": "done",
                    "progress": run.progress.to_dict(),
                    "outcomes": [o.to_dict() for o in run.outcomes],
                }
            )

    except Exception as exc:  # noqa: BLE001
        logger.exception("Import run failed")
        _put({"event": "error", "detail": str(exc)})

    finally:
        loop.call_soon_threadsafe(queue.put_nowait, None)  # sentinel


# ---------------------------------------------------------------------------
# Async SSE generator
# ---------------------------------------------------------------------------

async def _import_sse_generator(body: ImportRequest) -> AsyncIterator[str]:
    """Yield SSE-formatted strings for the duration of an import run."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    cancel = threading.Event()

    future = loop.run_in_executor(_executor, _run_import, body, queue, loop, cancel)

    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            yield item
    finally:
        # Client went away (or the run ended): stop before the next address.
        cancel.set()
        await asyncio.shield(future)


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@router.post("")
async def start_import(body: ImportRequest) -> StreamingResponse:
    """Import the given product page addresses and stream progress as SSE.

    - ``log``      — one human-readable line per pipeline stage reached.
    - ``progress`` — counters after each address.
    - ``done``     — final counters and the per-address outcomes.
    - ``error``    — the run could not start (e.g. missing API key).
    """
    if not body.urls:
        raise HTTPException(status_code=422, detail="No URLs provided.")

    return StreamingResponse(
        _import_sse_generator(body),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",   # disable nginx proxy buffering
        },
    )
