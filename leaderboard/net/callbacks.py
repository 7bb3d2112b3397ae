"""Correlation registry for callback-style (JSONP) responses.

Each side-channel attempt acquires a unique token, the endpoint wraps its
JSON in a call to that token, and executing the returned script resolves
the matching future. Entries are removed when the attempt ends, however
it ends.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from leaderboard.errors import TransportError

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "lbCallback_"

# `name(...)` with an optional trailing semicolon. Apps Script prefixes nothing,
# other JSONP servers emit `/**/name(...)` or `typeof name === 'function' && name(...)`.
_CALL_RE = re.compile(
    r"^\s*(?:/\*\*/)?\s*(?:typeof\s+[\w$.]+\s*===?\s*['\"]function['\"]\s*&&\s*)?"
    r"([A-Za-z_$][\w$]*)\s*\((.*)\)\s*;?\s*$",
    re.DOTALL,
)


def new_token() -> str:
    return f"{TOKEN_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def parse_callback_script(text: str) -> tuple[str, Any]:
    m = _CALL_RE.match(text or "")
    if not m:
        raise TransportError("script_error", "response is not a callback invocation")
    name, body = m.group(1), m.group(2).strip()
    try:
        payload = json.loads(body) if body else None
    except ValueError as e:
        raise TransportError("parse_error", f"invalid json in callback: {e}")
    return name, payload


class CallbackRegistry:
    def __init__(self):
        self._pending: dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, token: str) -> bool:
        return token in self._pending

    @contextmanager
    def acquire(self) -> Iterator[tuple[str, asyncio.Future]]:
        token = new_token()
        while token in self._pending:
            token = new_token()
        fut = asyncio.get_running_loop().create_future()
        self._pending[token] = fut
        logger.debug("registered callback %s", token)
        try:
            yield token, fut
        finally:
            self._pending.pop(token, None)
            if not fut.done():
                fut.cancel()
            logger.debug("released callback %s", token)

    def resolve(self, token: str, payload: Any) -> bool:
        fut = self._pending.get(token)
        if fut is None or fut.done():
            logger.debug("dropped payload for unknown callback %s", token)
            return False
        fut.set_result(payload)
        return True

    def reject(self, token: str, error: BaseException) -> bool:
        fut = self._pending.get(token)
        if fut is None or fut.done():
            return False
        fut.set_exception(error)
        return True

    def execute(self, script: str) -> bool:
        """Run a callback script: dispatch its payload to the named callback."""
        name, payload = parse_callback_script(script)
        return self.resolve(name, payload)
