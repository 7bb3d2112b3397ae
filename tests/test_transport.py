from __future__ import annotations

import asyncio

import aiohttp
import pytest

from leaderboard.config import ClientConfig
from leaderboard.errors import TransportError
from leaderboard.net.transport import Transport, build_url


def _config(url: str, **overrides) -> ClientConfig:
    cfg = ClientConfig(endpoint_url=url, request_timeout_sec=0.2)
    for k, v in overrides.items():
        setattr(cfg, k, v)
    return cfg


async def _with_transport(stub, fn, **overrides):
    async with stub.serve() as url:
        async with aiohttp.ClientSession() as session:
            transport = Transport(session, _config(url, **overrides))
            try:
                return await fn(transport)
            finally:
                assert len(transport.registry) == 0
                assert transport.active_scripts == 0


def test_build_url() -> None:
    assert build_url("https://x/exec", [("callback", "cb"), ("_", 1)]) == "https://x/exec?callback=cb&_=1"
    assert build_url("https://x/exec?id=7", [("name", "a b&c")]) == "https://x/exec?id=7&name=a+b%26c"


def test_side_channel_fetch(stub) -> None:
    stub.scores = [{"score": 500, "name": "ann", "date": "2024-01-01"}]

    raw = asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch()))

    assert raw["top5"][1] == {"score": 500, "name": "ann", "date": "2024-01-01"}
    assert len(stub.requests) == 1
    q = stub.requests[0]
    assert q["callback"].startswith("lbCallback_")
    assert q["_"].isdigit()


def test_falls_back_to_direct_request(stub) -> None:
    stub.mode = "script_error"
    stub.scores = [{"score": 10, "name": "bo", "date": "2024-01-01"}]

    raw = asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch()))

    assert raw["top5"][-1]["name"] == "bo"
    assert len(stub.requests) == 2
    assert "callback" in stub.requests[0]
    assert stub.requests[1] == {}


def test_no_fallback_when_disabled(stub) -> None:
    stub.mode = "script_error"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch(), direct_fallback=False))
    assert info.value.kind == "script_error"
    assert len(stub.requests) == 1


def test_http_error_on_both_mechanisms(stub) -> None:
    stub.mode = "http_error"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch()))
    assert info.value.kind == "http_error"
    assert len(stub.requests) == 2


def test_bad_json_is_parse_error(stub) -> None:
    stub.mode = "bad_json"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch()))
    assert info.value.kind == "parse_error"


def test_timeout_cleans_up(stub) -> None:
    stub.mode = "stall"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch(), direct_fallback=False))
    assert info.value.kind == "timeout"


def test_script_for_other_callback_times_out(stub) -> None:
    stub.mode = "wrong_name"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_fetch(), direct_fallback=False))
    assert info.value.kind == "timeout"


def test_direct_timeout(stub) -> None:
    stub.mode = "stall"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t._direct()))
    assert info.value.kind == "timeout"


def test_post_uses_side_channel_only(stub) -> None:
    raw = asyncio.run(_with_transport(stub, lambda t: t.attempt_post(1200, "Ann42")))

    assert raw == {"success": True, "rank": 1, "message": "ok"}
    q = stub.requests[0]
    assert q["action"] == "post"
    assert q["score"] == "1200"
    assert q["name"] == "Ann42"
    assert "callback" in q and "_" in q


def test_post_has_no_direct_fallback(stub) -> None:
    stub.mode = "script_error"

    with pytest.raises(TransportError) as info:
        asyncio.run(_with_transport(stub, lambda t: t.attempt_post(10, "ann")))
    assert info.value.kind == "script_error"
    assert len(stub.requests) == 1


def test_repeated_attempts_do_not_leak(stub) -> None:
    async def many(transport):
        for _ in range(5):
            await transport.attempt_fetch()
        return len(transport.registry)

    assert asyncio.run(_with_transport(stub, many)) == 0
