from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer


class StubEndpoint:
    """Local stand-in for the spreadsheet-backed ranking endpoint.

    Modes:
      ok           answer callback and direct requests
      script_error callback requests get HTTP 500, direct requests work
      http_error   every request gets HTTP 500
      bad_json     bodies are not valid JSON
      wrong_name   callback script invokes some other function
      stall        sleep `stall_sec` before answering anything
    """

    def __init__(self):
        self.mode = "ok"
        self.shape = "top5"
        self.with_header = True
        self.stall_sec = 0.6
        self.fail_next = 0
        self.scores: list[dict[str, Any]] = []
        self.submission_reply: dict[str, Any] | None = None
        self.requests: list[dict[str, str]] = []

    def ranking_body(self) -> dict[str, Any]:
        rows = sorted(self.scores, key=lambda r: r["score"], reverse=True)
        if self.shape == "ranking":
            return {"ranking": [{"rank": i + 1, **r} for i, r in enumerate(rows)]}
        header = [{"score": "Score", "name": "Name", "date": "Date"}] if self.with_header else []
        return {"top5": header + rows[:5]}

    def _submit(self, query) -> dict[str, Any]:
        if self.submission_reply is not None:
            return self.submission_reply
        score = int(query["score"])
        self.scores.append({"score": score, "name": query["name"], "date": "2024-05-01T12:00:00"})
        rank = 1 + sum(1 for r in self.scores if r["score"] > score)
        return {"success": True, "rank": rank, "message": "ok"}

    async def handle(self, request: web.Request) -> web.StreamResponse:
        query = dict(request.query)
        self.requests.append(query)
        callback = query.get("callback")

        if self.mode == "stall":
            await asyncio.sleep(self.stall_sec)
        if self.fail_next > 0:
            self.fail_next -= 1
            raise web.HTTPInternalServerError(text="flaky")
        if self.mode == "http_error" or (self.mode == "script_error" and callback):
            raise web.HTTPInternalServerError(text="broken")

        body = self._submit(query) if query.get("action") == "post" else self.ranking_body()
        text = "{not json" if self.mode == "bad_json" else json.dumps(body)

        if callback:
            name = "somethingElse" if self.mode == "wrong_name" else callback
            return web.Response(text=f"{name}({text});", content_type="application/javascript")
        return web.Response(text=text, content_type="application/json")

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/exec", self.handle)
        return app

    @asynccontextmanager
    async def serve(self):
        server = TestServer(self.app())
        await server.start_server()
        try:
            yield str(server.make_url("/exec"))
        finally:
            await server.close()


@pytest.fixture
def stub() -> StubEndpoint:
    return StubEndpoint()
