"""One round trip to the ranking endpoint.

Two mechanisms, tried in order for fetches:
  1. side channel: GET {endpoint}?callback={token}&_={buster}, run the
     returned `token({...})` script against the callback registry
  2. direct: GET {endpoint}, parse the body as JSON

Submissions only use the side channel.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any
from urllib.parse import urlencode

import aiohttp

from leaderboard.config import ClientConfig
from leaderboard.errors import TransportError
from leaderboard.net.callbacks import CallbackRegistry

logger = logging.getLogger(__name__)


def _cache_buster() -> str:
    return str(int(time.time() * 1000))


def build_url(endpoint: str, params: list[tuple[str, Any]]) -> str:
    sep = "&" if "?" in endpoint else "?"
    return f"{endpoint}{sep}{urlencode([(k, str(v)) for k, v in params])}"


class Transport:
    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: ClientConfig,
        registry: CallbackRegistry | None = None,
    ):
        self.session = session
        self.config = config
        self.registry = registry if registry is not None else CallbackRegistry()
        # Loader tasks currently "injected", keyed by callback token.
        self._scripts: dict[str, asyncio.Task] = {}

    @property
    def active_scripts(self) -> int:
        return len(self._scripts)

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.config.request_timeout_sec)

    async def attempt_fetch(self) -> Any:
        try:
            return await self._side_channel([])
        except TransportError as e:
            if not self.config.direct_fallback:
                raise
            logger.info("side channel failed (%s), trying direct request", e)
        return await self._direct()

    async def attempt_post(self, score: int, name: str) -> Any:
        return await self._side_channel([("action", "post"), ("score", int(score)), ("name", name)])

    async def _side_channel(self, params: list[tuple[str, Any]]) -> Any:
        with self.registry.acquire() as (token, fut):
            url = build_url(
                self.config.endpoint_url,
                [("callback", token), *params, ("_", _cache_buster())],
            )
            logger.debug("side channel GET %s", url)
            self._scripts[token] = asyncio.create_task(self._load_script(token, url))
            try:
                return await asyncio.wait_for(fut, timeout=self.config.request_timeout_sec)
            except asyncio.TimeoutError:
                raise TransportError("timeout", f"no callback within {self.config.request_timeout_sec}s")
            finally:
                await self._remove_script(token)

    async def _load_script(self, token: str, url: str) -> None:
        try:
            async with self.session.get(url) as resp:
                if resp.status >= 400:
                    raise TransportError("script_error", f"script load failed with HTTP {resp.status}")
                text = await resp.text()
            self.registry.execute(text)
        except TransportError as e:
            self.registry.reject(token, e)
        except (aiohttp.ClientError, UnicodeDecodeError) as e:
            self.registry.reject(token, TransportError("script_error", f"script load failed: {e}"))

    async def _remove_script(self, token: str) -> None:
        task = self._scripts.pop(token, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _direct(self) -> Any:
        url = self.config.endpoint_url
        logger.debug("direct GET %s", url)
        try:
            async with self.session.get(url, timeout=self._timeout()) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise TransportError("http_error", f"HTTP {resp.status}")
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise TransportError("parse_error", f"invalid json: {e}")
        except asyncio.TimeoutError:
            raise TransportError("timeout", f"no response within {self.config.request_timeout_sec}s")
        except aiohttp.ClientError as e:
            raise TransportError("http_error", str(e))
