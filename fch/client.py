import asyncio
import inspect
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Union

import aiohttp
from aiohttp import BasicAuth, hdrs
from multidict import CIMultiDict
from yarl import URL

from utils.helpers import split_url, build_url, stringify

from .abort import AbortController
from .body import FormData, FORM_URLENCODED, JSON, encode_form_urlencoded, encode_json
from .errors import RequestAbortedError, RequestError, RequestTimeoutError
from .logger import GatedLogger, Logger, adapt_logger
from .response import FchResponse

RequestInterceptor = Callable[["Fch"], Union[None, Awaitable[None]]]
ResponseInterceptor = Callable[[FchResponse], Union[FchResponse, Awaitable[FchResponse]]]

# Options consumed by Fch itself rather than forwarded to aiohttp
_OWN_OPTIONS = ("method", "body")


def _describe(error: BaseException) -> str:
    return str(error) or error.__class__.__name__


class Fch:
    """Request builder with retries, timeouts, interceptors and logging.

    Every setter returns the instance, so a request reads as one chain::

        response = await (
            Fch("https://api.example.com/users", timeout=3)
            .set_headers({"Accept": "application/json"})
            .append_search_params({"page": "2"})
        )

    Awaiting the instance sends it. ``retries`` is the total number of
    attempts and ``timeout``/``retry_timeout`` are in seconds. Only raised
    exceptions are retried; an HTTP error status is a normal response.
    """

    def __init__(
        self,
        url: "str | URL | Fch",
        *,
        retries: int = 1,
        retry_timeout: float = 0.0,
        timeout: float | None = 5.0,
        abort_controller: AbortController | None = None,
        logger: Logger | None = None,
        debug: bool = False,
        headers=None,
        method: str = "GET",
        session: aiohttp.ClientSession | None = None,
        **options: Any,
    ):
        if isinstance(url, Fch):
            url = url.href
        self._scheme, self._netloc, self._path, self.search_params, self._fragment = split_url(str(url))

        self.headers = CIMultiDict(headers or {})
        self.form_data: FormData | None = None
        self.fetch_options: dict = {**options, "method": (method or "GET").upper(), "body": None}

        self.retries = retries
        self.retry_timeout = retry_timeout
        self.timeout = timeout
        self.controller = abort_controller or AbortController()
        self.session = session

        self._logger = adapt_logger(logger)
        self.logging_enabled = debug

        self._request_interceptors: list[RequestInterceptor] = []
        self._response_interceptors: list[ResponseInterceptor] = []
        self._attempt_count = 0
        self._error_count = 0

    # -- URL -------------------------------------------------------------

    @property
    def href(self) -> str:
        return build_url(self._scheme, self._netloc, self._path, self.search_params, self._fragment)

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def host(self) -> str:
        return self._netloc

    @property
    def pathname(self) -> str:
        return self._path

    @property
    def search(self) -> str:
        query = self.href.partition("?")[2].partition("#")[0]
        return f"?{query}" if query else ""

    def set_search_params(self, params: dict):
        for key, value in params.items():
            self.search_params[key] = stringify(value)
        return self

    def append_search_params(self, params: dict):
        for key, value in params.items():
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.search_params.add(key, stringify(item))
            else:
                self.search_params.add(key, stringify(value))
        return self

    # -- headers ---------------------------------------------------------

    def set_headers(self, headers: dict):
        for key, value in headers.items():
            self.headers[key] = value
        return self

    def get_header(self, name: str) -> str | None:
        return self.headers.get(name)

    def delete_header(self, name: str):
        self.headers.popall(name, None)
        return self

    def set_auth_token(self, token: str):
        self.headers[hdrs.AUTHORIZATION] = f"Bearer {token}"
        return self

    def set_basic_auth(self, username: str, password: str):
        self.headers[hdrs.AUTHORIZATION] = BasicAuth(username, password).encode()
        return self

    def disable_cache(self):
        self.headers[hdrs.CACHE_CONTROL] = "no-store"
        return self

    # -- method and options ----------------------------------------------

    @property
    def method(self) -> str:
        return self.fetch_options.get("method") or "GET"

    @method.setter
    def method(self, value: str):
        self.fetch_options["method"] = value.upper()

    def set_method(self, method: str):
        self.method = method
        return self

    def set_fetch_options(self, **options: Any):
        if "method" in options:
            options["method"] = str(options["method"]).upper()
        self.fetch_options = {**self.fetch_options, **options}
        return self

    def set_timeout(self, timeout: float | None):
        self.timeout = timeout
        return self

    def set_retries(self, retries: int):
        self.retries = retries
        return self

    def set_retry_timeout(self, retry_timeout: float):
        self.retry_timeout = retry_timeout
        return self

    # -- body ------------------------------------------------------------

    @property
    def body(self):
        return self.fetch_options.get("body")

    def append_to_form_data(self, key: str, value, filename: str | None = None, content_type: str | None = None):
        if self.form_data is None:
            self.form_data = FormData()
        self.form_data.append(key, value, filename=filename, content_type=content_type)
        self.fetch_options["body"] = self.form_data
        if self.method != "PUT":
            self.method = "POST"
        return self

    def set_form_data(self, form_data: FormData):
        self.form_data = form_data
        self.fetch_options["body"] = form_data
        if self.method != "PUT":
            self.method = "POST"
        return self

    def set_body(self, body, content_type: str | None = None):
        self.form_data = None
        self.fetch_options["body"] = body
        if content_type:
            self.headers[hdrs.CONTENT_TYPE] = content_type
        return self

    def set_form_urlencoded_body(self, data: dict):
        return self.set_body(encode_form_urlencoded(data), FORM_URLENCODED)

    def set_json_body(self, data):
        return self.set_body(encode_json(data), JSON)

    # -- interceptors ----------------------------------------------------

    def add_request_interceptor(self, interceptor: RequestInterceptor):
        self._request_interceptors.append(interceptor)
        return self

    def add_response_interceptor(self, interceptor: ResponseInterceptor):
        self._response_interceptors.append(interceptor)
        return self

    # -- logging ---------------------------------------------------------

    @property
    def logger(self) -> Logger:
        return self._logger

    def set_logger(self, logger: Logger):
        self._logger = adapt_logger(logger)
        return self

    def get_logger(self) -> GatedLogger:
        return GatedLogger(self)

    def enable_logging(self):
        self.logging_enabled = True
        return self

    def disable_logging(self):
        self.logging_enabled = False
        return self

    # -- abort -----------------------------------------------------------

    @property
    def aborted(self) -> bool:
        return self.controller.aborted

    def abort(self):
        self.controller.abort()

    def _raise_if_aborted(self):
        if self.controller.aborted:
            raise RequestAbortedError(f"Request to {self} was aborted")

    # -- execution -------------------------------------------------------

    @asynccontextmanager
    async def _open_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        if self.session is not None:
            yield self.session
            return
        async with aiohttp.ClientSession() as session:
            yield session

    async def _send(self, session: aiohttp.ClientSession) -> FchResponse:
        headers = CIMultiDict(self.headers)
        body = self.body
        if isinstance(body, FormData):
            # aiohttp sets the multipart boundary itself
            headers.popall(hdrs.CONTENT_TYPE, None)
            body = body.to_payload()
        options = {k: v for k, v in self.fetch_options.items() if k not in _OWN_OPTIONS}
        # The per-attempt timeout in _attempt replaces the session default
        options.setdefault("timeout", aiohttp.ClientTimeout(total=None))

        start = time.monotonic()
        async with session.request(
            self.method,
            URL(self.href, encoded=True),
            headers=headers,
            data=body,
            **options,
        ) as resp:
            payload = await resp.read()
            return FchResponse(
                status=resp.status,
                reason=resp.reason or "",
                headers=CIMultiDict(resp.headers),
                body=payload,
                url=str(resp.url),
                elapsed=time.monotonic() - start,
                charset=resp.charset,
                redirect_chain=[str(r.url) for r in resp.history],
            )

    async def _attempt(self, session: aiohttp.ClientSession) -> FchResponse:
        self._attempt_count += 1
        task = self.controller.track(asyncio.ensure_future(self._send(session)))
        try:
            if self.timeout is not None and self.timeout > 0:
                response = await asyncio.wait_for(task, self.timeout)
            else:
                response = await task
        except asyncio.CancelledError:
            if self.controller.aborted and task.cancelled():
                raise RequestAbortedError(f"Request to {self} was aborted") from None
            raise
        except asyncio.TimeoutError as error:
            raise RequestTimeoutError(
                f"Request timed out after {self.timeout}s",
                url=self.href,
                method=self.method,
                timeout=self.timeout,
            ) from error

        for interceptor in self._response_interceptors:
            result = interceptor(response)
            response = await result if inspect.isawaitable(result) else result
        return response

    async def make_request(self, retries: int | None = None, retry_timeout: float | None = None) -> FchResponse:
        attempts = max(self.retries if retries is None else retries, 1)
        delay = self.retry_timeout if retry_timeout is None else retry_timeout
        log = self.get_logger()

        log.info(f"Making request to {self} with method {self.method}")
        self._raise_if_aborted()

        for interceptor in self._request_interceptors:
            result = interceptor(self)
            # Setters return the request itself, which is awaitable but must not be sent
            if inspect.isawaitable(result) and not isinstance(result, Fch):
                await result

        async with self._open_session() as session:
            attempt = 0
            while True:
                if attempt > 0 and delay and delay > 0:
                    await self.controller.sleep(delay)
                self._raise_if_aborted()

                try:
                    response = await self._attempt(session)
                except RequestAbortedError:
                    raise
                except Exception as error:
                    self._error_count += 1
                    log.error(f"Request failed: {_describe(error)}")
                    attempt += 1
                    if attempt < attempts:
                        log.warning(f"Retrying request to {self} ({attempt + 1}/{attempts})")
                        continue
                    if isinstance(error, aiohttp.ClientError):
                        raise RequestError(
                            f"{self.method} {self} failed: {_describe(error)}",
                            url=self.href,
                            method=self.method,
                        ) from error
                    raise

                log.info(f"Received response with status {response.status}")
                return response

    def __await__(self):
        return self.make_request().__await__()

    async def json(self) -> tuple[Any, FchResponse]:
        response = await self.make_request()
        return response.json(), response

    async def text(self) -> tuple[str, FchResponse]:
        response = await self.make_request()
        return response.text(), response

    async def read(self) -> tuple[bytes, FchResponse]:
        response = await self.make_request()
        return response.read(), response

    async def get(self) -> FchResponse:
        return await self.set_method("GET").make_request()

    async def post(self) -> FchResponse:
        return await self.set_method("POST").make_request()

    async def put(self) -> FchResponse:
        return await self.set_method("PUT").make_request()

    async def patch(self) -> FchResponse:
        return await self.set_method("PATCH").make_request()

    async def delete(self) -> FchResponse:
        return await self.set_method("DELETE").make_request()

    async def head(self) -> FchResponse:
        return await self.set_method("HEAD").make_request()

    async def options(self) -> FchResponse:
        return await self.set_method("OPTIONS").make_request()

    async def stream(
        self,
        delay: float = 0.3,
        abort_controller: AbortController | None = None,
    ) -> AsyncIterator[FchResponse | Exception]:
        """Send the request repeatedly, yielding each response or error.

        Stops once ``abort_controller`` (the request's own controller by
        default) is aborted. The request may be changed between rounds.
        """
        controller = abort_controller or self.controller
        while not controller.aborted:
            try:
                response = await self.make_request()
            except Exception as error:
                yield error
            else:
                yield response

            if controller.aborted:
                break
            await controller.sleep(delay)

    def clone(self) -> "Fch":
        """Copy the request with a fresh abort controller."""
        options = {k: v for k, v in self.fetch_options.items() if k not in _OWN_OPTIONS}
        clone = Fch(
            self.href,
            retries=self.retries,
            retry_timeout=self.retry_timeout,
            timeout=self.timeout,
            logger=self._logger,
            debug=self.logging_enabled,
            headers=self.headers,
            method=self.method,
            session=self.session,
            **options,
        )
        clone._request_interceptors = list(self._request_interceptors)
        clone._response_interceptors = list(self._response_interceptors)

        body = self.body
        if isinstance(body, FormData):
            clone.set_form_data(body.copy())
        elif isinstance(body, (str, bytes)):
            clone.set_body(body)
        elif body is not None:
            self._logger.warning("Cannot clone non-serializable body")
        clone.method = self.method

        return clone

    @property
    def stats(self) -> dict:
        return {
            "total_attempts": self._attempt_count,
            "errors": self._error_count,
            "error_rate": self._error_count / max(self._attempt_count, 1),
        }

    def __str__(self):
        return self.href

    def __repr__(self):
        return f"<Fch {self.method} {self.href}>"


def fch(url: "str | URL | Fch", **options: Any) -> Fch:
    return Fch(url, **options)
