class FchError(Exception):
    """Base class for errors raised while making a request."""


class RequestError(FchError):
    """The transport failed to deliver a response."""

    def __init__(self, message: str, url: str = "", method: str = ""):
        super().__init__(message)
        self.url = url
        self.method = method


class RequestTimeoutError(RequestError):
    def __init__(self, message: str, url: str = "", method: str = "", timeout: float | None = None):
        super().__init__(message, url=url, method=method)
        self.timeout = timeout


class RequestAbortedError(FchError):
    pass
