import json

import pytest
import pytest_asyncio
from aiohttp import web

from ember_cache.application.cache import Cache
from ember_cache.application.service import CacheApplicationService
from ember_cache.cli import run
from ember_cache.infrastructure.persistence import KeyValuePersistence, MemoryKeyValueStore
from ember_cache.transport.http.app import create_app

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]


@pytest_asyncio.fixture
async def http_target():
    cache: Cache = Cache(10, persistence_adapter=KeyValuePersistence("cli", MemoryKeyValueStore()))
    runner = web.AppRunner(create_app(CacheApplicationService(cache)), access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = site._server.sockets[0].getsockname()[1]
    try:
        yield f"http://127.0.0.1:{port}"
    finally:
        await runner.cleanup()
        cache.stop()


async def test_cli_put_get_delete_stats_roundtrip(http_target, capsys):
    assert await run(["--target", http_target, "put", "k1", "hello"]) == 0
    assert capsys.readouterr().out.strip() == "OK"

    assert await run(["--target", http_target, "get", "k1"]) == 0
    assert json.loads(capsys.readouterr().out) == "hello"

    assert await run(["--target", http_target, "put", "k2", '{"a": [1, 2]}', "--json", "--ttl", "60"]) == 0
    capsys.readouterr()
    assert await run(["--target", http_target, "get", "k2"]) == 0
    assert json.loads(capsys.readouterr().out) == {"a": [1, 2]}

    assert await run(["--target", http_target, "stats"]) == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["size"] == 2
    assert payload["hits"] == 2

    assert await run(["--target", http_target, "delete", "k1"]) == 0
    assert capsys.readouterr().out.strip() == "OK"

    assert await run(["--target", http_target, "get", "k1"]) == 1


async def test_cli_persist_clear_restore(http_target, capsys):
    assert await run(["--target", http_target, "put", "k1", "v1"]) == 0
    assert await run(["--target", http_target, "persist"]) == 0
    assert await run(["--target", http_target, "clear"]) == 0
    assert await run(["--target", http_target, "get", "k1"]) == 1
    assert await run(["--target", http_target, "restore"]) == 0
    capsys.readouterr()

    assert await run(["--target", http_target, "get", "k1"]) == 0
    assert json.loads(capsys.readouterr().out) == "v1"


async def test_cli_reports_bad_requests(http_target, capsys):
    assert await run(["--target", http_target, "put", "k" * 300, "v"]) == 2
    assert "too long" in capsys.readouterr().err


async def test_cli_show_request_id_prints_response_request_id(http_target, capsys):
    assert (
        await run(
            [
                "--target",
                http_target,
                "--request-id",
                "rid-123",
                "--show-request-id",
                "stats",
            ]
        )
        == 0
    )
    stderr = capsys.readouterr().err
    assert "x-request-id=rid-123" in stderr


async def test_cli_unreachable_target(capsys):
    assert await run(["--target", "http://127.0.0.1:1", "--timeout", "2", "stats"]) == 2
    assert "request failed" in capsys.readouterr().err
