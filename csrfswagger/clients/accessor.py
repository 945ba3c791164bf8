from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import csrfswagger.config as config
from csrfswagger.clients.swagger_api import SwaggerClient, get_client_from_spec


logger = logging.getLogger(__name__)

T = TypeVar("T")


class ClientCache(Generic[T]):
    """
    Single-assignment cache around an async factory.

    The first get() schedules the factory before awaiting anything, so
    concurrent first callers share one invocation. Success and failure are both
    kept; only reset() (tests) clears them.
    """

    def __init__(self, factory: Callable[[], Awaitable[T]]):
        self._factory = factory
        self._task: Optional[asyncio.Future] = None

    @property
    def started(self) -> bool:
        return self._task is not None

    async def get(self) -> T:
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return await asyncio.shield(self._task)

    async def _run(self) -> T:
        try:
            return await self._factory()
        except Exception:
            logger.warning("client construction failed, keeping the failure", exc_info=True)
            raise

    def reset(self) -> None:
        self._task = None


async def _client_from_config() -> SwaggerClient:
    return await get_client_from_spec(
        config.SPEC_URL,
        config.CSRFTOKEN,
        cookies=config.COOKIES,
        timeout=config.SPEC_FETCH_TIMEOUT_SEC,
    )


CLIENT: ClientCache[SwaggerClient] = ClientCache(_client_from_config)


async def get_client() -> SwaggerClient:
    """Returns the process-wide swagger client built from the environment config."""
    return await CLIENT.get()
