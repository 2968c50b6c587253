from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..core.errors import InvalidCredential, TransportFailure

logger = logging.getLogger(__name__)


class StaleFetch(Exception):
    """The request that started a fetch is gone; its results must not be rendered."""


async def fetch_concurrently(
    *calls: Awaitable[Any],
    timeout: Optional[float] = None,
    is_current: Optional[Callable[[], Awaitable[bool]]] = None,
) -> list[Any]:
    """Run independent backend calls together and return their outcomes in order.

    Each slot holds either the call's result or the exception it raised, so a
    page can show one failed panel next to a working one. ``InvalidCredential``
    is the exception: it is re-raised because the whole page must go back to
    login. When ``is_current`` reports the initiating request has gone away,
    ``StaleFetch`` is raised instead of handing back results.
    """

    tasks = [asyncio.ensure_future(call) for call in calls]
    try:
        outcomes = await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout)
    except asyncio.TimeoutError as exc:
        raise TransportFailure("backend calls timed out", user_message="The backend took too long to answer.") from exc
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    for outcome in outcomes:
        if isinstance(outcome, InvalidCredential):
            raise outcome

    if is_current is not None and not await is_current():
        logger.info("fetch.discarded", extra={"extra_data": {"calls": len(tasks)}})
        raise StaleFetch()
    return list(outcomes)
