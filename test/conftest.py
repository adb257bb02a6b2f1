import asyncio
from unittest.mock import Mock

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

HITS = web.AppKey("hits", dict)
COUNTER = web.AppKey("counter", list)


async def status_handler(request: web.Request) -> web.Response:
    code = int(request.match_info["code"])
    return web.json_response({"status": code}, status=code)


async def echo_handler(request: web.Request) -> web.Response:
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": request.path,
            "query": request.query_string,
            "headers": dict(request.headers),
            "content_type": request.headers.get("Content-Type"),
            "body": body.decode("utf-8", errors="replace"),
        }
    )


async def form_handler(request: web.Request) -> web.Response:
    post = await request.post()
    fields = {}
    for key, value in post.items():
        if isinstance(value, web.FileField):
            fields[key] = {"filename": value.filename, "content": value.file.read().decode()}
        else:
            fields[key] = value
    return web.json_response({"method": request.method, "content_type": request.content_type, "fields": fields})


async def header_handler(request: web.Request) -> web.Response:
    name = request.match_info["name"]
    return web.json_response({name: request.headers.get(name)})


async def slow_handler(request: web.Request) -> web.Response:
    await asyncio.sleep(float(request.query.get("delay", "1")))
    return web.Response(text="done")


async def flaky_handler(request: web.Request) -> web.Response:
    # The first `fail` hits hang long enough to trip a short timeout
    hits = request.app[HITS]
    hits[request.path] = hits.get(request.path, 0) + 1
    if hits[request.path] <= int(request.query.get("fail", "1")):
        await asyncio.sleep(2)
    return web.json_response({"hits": hits[request.path]})


async def counter_handler(request: web.Request) -> web.Response:
    counter = request.app[COUNTER]
    counter.append(request.query.get("page"))
    return web.json_response({"count": len(counter), "page": request.query.get("page")})


def create_app() -> web.Application:
    app = web.Application()
    app[HITS] = {}
    app[COUNTER] = []
    app.router.add_route("*", "/status/{code}", status_handler)
    app.router.add_route("*", "/echo", echo_handler)
    app.router.add_route("*", "/form", form_handler)
    app.router.add_get("/header/{name}", header_handler)
    app.router.add_get("/slow", slow_handler)
    app.router.add_get("/flaky", flaky_handler)
    app.router.add_get("/counter", counter_handler)
    return app


@pytest_asyncio.fixture
async def server():
    srv = TestServer(create_app())
    await srv.start_server()
    try:
        yield srv
    finally:
        await srv.close()


@pytest.fixture
def base_url(server) -> str:
    return f"http://{server.host}:{server.port}"


@pytest.fixture
def mock_logger() -> Mock:
    return Mock(spec=["info", "warning", "error"])
