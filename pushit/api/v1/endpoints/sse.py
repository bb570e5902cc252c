"""Server-Sent Events endpoints."""
import asyncio
import json
from typing import Any, Callable

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError, DatabaseError

from pushit.api.deps import get_db_context
from pushit.core import config
from pushit.core.cache import get_or_fetch, global_cache, poll_tallies_key
from pushit.core.constants import CACHE_KEY_ACTIVE_HOLDERS, TABLE_BUTTON_HOLDS, TABLE_USER_VOTES
from pushit.core.events import Subscription, change_hub
from pushit.core.exceptions import PushItError
from pushit.services.holds import count_live_holds
from pushit.services.votes import get_vote_tallies

logger = structlog.get_logger(__name__)
router = APIRouter()

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable buffering in nginx
}


async def event_generator(
    request: Request,
    data_func: Callable[[], Any],
    subscription: Subscription,
    interval: float = 5.0,
):
    """
    SSE event generator driven by change events.

    Sends the current data, then waits for either a matching change event or
    the reconcile interval, whichever comes first, and recomputes. Unchanged
    data is not resent; a comment line keeps the connection alive instead.
    The reconcile pass also catches holds that lapse without any write.

    Args:
        request: FastAPI request object to check for client disconnect
        data_func: Function that returns the data to send
        subscription: Change-hub subscription that wakes the stream
        interval: Seconds between reconcile passes
    """
    consecutive_errors = 0
    max_consecutive_errors = 3  # Terminate after 3 consecutive failures
    last_data = None

    try:
        while True:
            if await request.is_disconnected():
                break

            try:
                data = data_func()
                if data != last_data:
                    yield f"data: {json.dumps(data)}\n\n"
                    last_data = data
                else:
                    yield ": keep-alive\n\n"
                consecutive_errors = 0
            except (SQLAlchemyError, DatabaseError) as e:
                consecutive_errors += 1
                logger.warning(
                    "sse_database_error",
                    attempt=consecutive_errors,
                    max_attempts=max_consecutive_errors,
                    error=str(e),
                )
                if consecutive_errors >= max_consecutive_errors:
                    yield f"event: error\ndata: {json.dumps({'error': 'Service temporarily unavailable'})}\n\n"
                    break
            except PushItError as e:
                # e.g. the poll was deleted; nothing left to stream
                yield f"event: error\ndata: {json.dumps({'error': e.message})}\n\n"
                break
            except Exception as e:
                logger.exception("sse_unexpected_error", error=str(e))
                yield f"event: error\ndata: {json.dumps({'error': 'Internal error'})}\n\n"
                break

            event = await subscription.get(timeout=interval)
            if event is not None:
                # Coalesce a burst of changes into one recompute
                subscription.drain()

    except asyncio.CancelledError:
        pass
    finally:
        subscription.close()


@router.get("/sse/holds")
async def sse_holds(request: Request):
    """
    Stream the number of live global-button holders.

    Each message is {"active_count": N}. Reads go through the shared cache,
    which hold writes invalidate, so many open streams cost one query per
    change.
    """
    subscription = change_hub.subscribe(table=TABLE_BUTTON_HOLDS)

    def get_data():
        def fetch():
            with get_db_context() as db:
                return count_live_holds(db)

        count = get_or_fetch(
            global_cache, CACHE_KEY_ACTIVE_HOLDERS, fetch,
            ttl_seconds=config.settings.LIVE_COUNT_CACHE_TTL,
        )
        return {"active_count": count}

    return StreamingResponse(
        event_generator(request, get_data, subscription, interval=config.settings.SSE_RECONCILE_INTERVAL),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/sse/polls/{poll_id}")
async def sse_poll_tallies(request: Request, poll_id: int):
    """
    Stream vote tallies for one poll.

    Messages have the shape of GET /polls/{poll_id}/tallies. A poll that does
    not exist ends the stream with an error event.
    """
    subscription = change_hub.subscribe(
        table=TABLE_USER_VOTES,
        predicate=lambda event: event.payload.get("poll_id") in (None, poll_id),
    )

    def get_data():
        def fetch():
            with get_db_context() as db:
                return get_vote_tallies(db, poll_id)

        return get_or_fetch(
            global_cache, poll_tallies_key(poll_id), fetch,
            ttl_seconds=config.settings.LIVE_COUNT_CACHE_TTL,
        )

    return StreamingResponse(
        event_generator(request, get_data, subscription, interval=config.settings.SSE_RECONCILE_INTERVAL),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
