#!/usr/bin/env python3
"""
fch - send HTTP requests with retries, timeouts and logging from the shell

Usage:
    python main.py https://api.example.com/users
    python main.py https://api.example.com/users -X POST --json '{"name": "ann"}'
    python main.py https://api.example.com/users -q page=2 -H "Accept: application/json"
    python main.py https://api.example.com/users --stream --count 5 --page-param page
"""

import asyncio
import json
import sys

import click

from fch import Fch, FchResponse, client_from_config, load_config
from fch.errors import FchError
from utils.helpers import parse_key_value
from utils.logger import setup_logger


def merge_cli_overrides(config: dict, **kwargs) -> dict:
    request = config["request"] = config.get("request") or {}

    if kwargs.get("method"):
        request["method"] = kwargs["method"].upper()

    for key in ("retries", "retry_timeout", "timeout"):
        if kwargs.get(key) is not None:
            request[key] = kwargs[key]

    if kwargs.get("headers"):
        request["headers"] = {**(request.get("headers") or {}), **dict(kwargs["headers"])}

    stream = config["stream"] = config.get("stream") or {}
    if kwargs.get("interval") is not None:
        stream["interval"] = kwargs["interval"]
    if kwargs.get("count") is not None:
        stream["count"] = kwargs["count"]
    if kwargs.get("page_param"):
        stream["page_param"] = kwargs["page_param"]

    if kwargs.get("verbose"):
        logging_cfg = config["logging"] = config.get("logging") or {}
        logging_cfg["level"] = "DEBUG"
        logging_cfg["debug"] = True

    return config


def _pairs(sep: str):
    def callback(ctx, param, values):
        try:
            return [parse_key_value(value, sep) for value in values]
        except ValueError as e:
            raise click.BadParameter(str(e), ctx=ctx, param=param)

    return callback


def dict_of_lists(pairs) -> dict[str, list[str]]:
    result: dict[str, list[str]] = {}
    for key, value in pairs:
        result.setdefault(key, []).append(value)
    return result


def _json_value(ctx, param, value):
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"invalid JSON: {e}", ctx=ctx, param=param)


def apply_body(request: Fch, json_body=None, form=(), multipart=(), data=None, content_type=None) -> Fch:
    chosen = [name for name, value in (
        ("--json", json_body is not None),
        ("--form", bool(form)),
        ("--multipart", bool(multipart)),
        ("--data", data is not None),
    ) if value]
    if len(chosen) > 1:
        raise click.UsageError(f"Only one body option may be used, got {', '.join(chosen)}")

    if json_body is not None:
        request.set_json_body(json_body)
    elif form:
        request.set_form_urlencoded_body(dict_of_lists(form))
    elif multipart:
        for key, value in multipart:
            request.append_to_form_data(key, value)
    elif data is not None:
        request.set_body(data, content_type)

    if content_type and data is None:
        request.set_headers({"Content-Type": content_type})
    return request


def print_response(response: FchResponse, include: bool = False):
    if include:
        click.echo(click.style(f"HTTP {response.status} {response.reason}", fg="green" if response.ok else "red", bold=True))
        for key, value in response.headers.items():
            click.echo(f"{key}: {value}")
        click.echo()
    click.echo(response.text())


async def run_once(request: Fch, include: bool = False) -> int:
    try:
        response = await request.make_request()
    except FchError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        return 1

    print_response(response, include)
    return 0 if response.status < 400 else 1


async def run_stream(
    request: Fch,
    interval: float = 0.3,
    count: int | None = None,
    page_param: str | None = None,
    include: bool = False,
) -> int:
    failures = 0
    rounds = 0
    page = 1
    if page_param:
        request.set_search_params({page_param: page})

    async for result in request.stream(delay=interval):
        rounds += 1
        if isinstance(result, Exception):
            failures += 1
            click.echo(click.style(f"Error: {result}", fg="red"), err=True)
        else:
            if result.status >= 400:
                failures += 1
            print_response(result, include)

        if count and rounds >= count:
            request.abort()
        elif page_param:
            page += 1
            request.set_search_params({page_param: page})

    return 1 if failures else 0


@click.command()
@click.argument("url")
@click.option("--method", "-X", default=None, help="HTTP method (default: GET)")
@click.option("--header", "-H", "headers", multiple=True, callback=_pairs(":"), help="Header as 'Name: value'")
@click.option("--query", "-q", multiple=True, callback=_pairs("="), help="Query parameter as key=value")
@click.option("--json", "json_body", default=None, callback=_json_value, help="JSON request body")
@click.option("--form", multiple=True, callback=_pairs("="), help="Form-urlencoded field as key=value")
@click.option("--multipart", multiple=True, callback=_pairs("="), help="Multipart field as key=value")
@click.option("--data", "-d", default=None, help="Raw request body")
@click.option("--content-type", default=None, help="Content-Type for the request body")
@click.option("--bearer", default=None, help="Bearer token for the Authorization header")
@click.option("--user", "-u", default=None, help="Basic auth credentials as user:password")
@click.option("--retries", "-r", default=None, type=click.IntRange(min=0), help="Number of attempts (default: 1)")
@click.option("--retry-timeout", default=None, type=click.FloatRange(min=0), help="Seconds between attempts (default: 0)")
@click.option("--timeout", "-t", default=None, type=click.FloatRange(min=0), help="Seconds per attempt (default: 5)")
@click.option("--config", "-c", "config_path", default=None, help="Path to config YAML file")
@click.option("--stream", "stream_mode", is_flag=True, help="Send the request repeatedly")
@click.option("--interval", default=None, type=click.FloatRange(min=0), help="Seconds between streamed requests (default: 0.3)")
@click.option("--count", default=None, type=click.IntRange(min=1), help="Stop streaming after this many requests")
@click.option("--page-param", default=None, help="Query parameter incremented on every streamed request")
@click.option("--include", "-i", is_flag=True, help="Print status line and response headers")
@click.option("--verbose", "-v", is_flag=True, help="Enable request lifecycle logging")
def main(url, method, headers, query, json_body, form, multipart, data, content_type, bearer, user,
         retries, retry_timeout, timeout, config_path, stream_mode, interval, count, page_param,
         include, verbose):
    """fch - HTTP requests with retries, timeouts and logging.

    Prints the response body. Exits with 1 when the request fails or the
    server answers with an error status.
    """
    if not url.startswith(("http://", "https://")):
        url = f"https://{url}"

    config = load_config(config_path)
    config = merge_cli_overrides(
        config,
        method=method,
        headers=headers,
        retries=retries,
        retry_timeout=retry_timeout,
        timeout=timeout,
        interval=interval,
        count=count,
        page_param=page_param,
        verbose=verbose,
    )

    logging_cfg = config.get("logging") or {}
    logger = setup_logger("fch", level=logging_cfg.get("level", "INFO"), log_file=logging_cfg.get("file"))

    try:
        request = client_from_config(url, config, logger=logger)
    except ValueError as e:
        raise click.UsageError(str(e))

    if query:
        request.append_search_params(dict_of_lists(query))
    if bearer:
        request.set_auth_token(bearer)
    if user:
        username, _, password = user.partition(":")
        request.set_basic_auth(username, password)
    apply_body(request, json_body, form, multipart, data, content_type)
    if method:
        request.set_method(method)

    if stream_mode:
        stream_cfg = config.get("stream") or {}
        exit_code = asyncio.run(run_stream(
            request,
            interval=float(stream_cfg.get("interval", 0.3)),
            count=stream_cfg.get("count"),
            page_param=stream_cfg.get("page_param"),
            include=include,
        ))
    else:
        exit_code = asyncio.run(run_once(request, include))

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
