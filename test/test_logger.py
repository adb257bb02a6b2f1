import logging
from types import SimpleNamespace

import pytest

from fch import Fch, RequestError
from fch.logger import GatedLogger, adapt_logger, is_logger


def test_default_logger_when_none_provided(caplog):
    caplog.set_level(logging.INFO, logger="fch")
    request = Fch("https://api.example.com", debug=True)

    assert request.logger is logging.getLogger("fch")

    request.get_logger().info("test info")
    request.get_logger().warning("test warn")
    request.get_logger().error("test error")

    assert caplog.messages == ["test info", "test warn", "test error"]


def test_custom_logger(mock_logger):
    request = Fch("https://api.example.com", logger=mock_logger, debug=True)

    assert request.logger is mock_logger
    assert isinstance(request.get_logger(), GatedLogger)

    request.get_logger().info("custom info")
    request.get_logger().warning("custom warn")
    request.get_logger().error("custom error")

    mock_logger.info.assert_called_once_with("custom info")
    mock_logger.warning.assert_called_once_with("custom warn")
    mock_logger.error.assert_called_once_with("custom error")


def test_invalid_logger_falls_back_to_default():
    invalid = SimpleNamespace(info="not-a-function")

    assert not is_logger(invalid)
    assert adapt_logger(invalid) is logging.getLogger("fch")

    request = Fch("https://api.example.com", logger=invalid)
    assert request.logger is logging.getLogger("fch")


def test_set_logger(mock_logger):
    request = Fch("https://api.example.com", debug=True)

    request.set_logger(mock_logger).get_logger().info("hello")

    mock_logger.info.assert_called_once_with("hello")


def test_logging_gate(mock_logger):
    request = Fch("https://api.example.com", logger=mock_logger)

    request.get_logger().info("off by default")
    request.disable_logging().get_logger().info("disabled log")
    request.enable_logging().get_logger().warning("enabled log")

    mock_logger.info.assert_not_called()
    mock_logger.warning.assert_called_once_with("enabled log")


@pytest.mark.asyncio
async def test_request_lifecycle_is_logged(base_url, mock_logger):
    url = f"{base_url}/status/200"
    request = Fch(url, logger=mock_logger, debug=True)

    await request.make_request()

    assert [c.args[0] for c in mock_logger.info.call_args_list] == [
        f"Making request to {url} with method GET",
        "Received response with status 200",
    ]


@pytest.mark.asyncio
async def test_error_status_is_not_retried(base_url, mock_logger):
    request = Fch(f"{base_url}/status/500", logger=mock_logger, retries=2, debug=True)

    response = await request.make_request()

    assert response.status == 500
    assert mock_logger.info.call_count == 2
    mock_logger.error.assert_not_called()
    assert request.stats["total_attempts"] == 1


@pytest.mark.asyncio
async def test_failures_are_logged(mock_logger):
    request = Fch("http://127.0.0.1:1/", logger=mock_logger, retries=2, debug=True)

    with pytest.raises(RequestError):
        await request.make_request()

    assert mock_logger.error.call_count == 2
    assert mock_logger.error.call_args.args[0].startswith("Request failed: ")
    mock_logger.warning.assert_called_once()


@pytest.mark.asyncio
async def test_interceptors_with_logging(base_url, mock_logger):
    request = Fch(f"{base_url}/header/X-Test", logger=mock_logger, debug=True)

    def mark_processed(response):
        response.headers["X-Processed"] = "true"
        return response

    request.add_request_interceptor(lambda req: req.set_headers({"X-Test": "true"}))
    request.add_response_interceptor(mark_processed)

    response = await request.make_request()

    assert response.json() == {"X-Test": "true"}
    assert response.headers["X-Processed"] == "true"
    assert "Making request" in mock_logger.info.call_args_list[0].args[0]
    mock_logger.info.assert_called_with("Received response with status 200")


@pytest.mark.asyncio
async def test_no_lifecycle_logs_without_debug(base_url, mock_logger):
    request = Fch(f"{base_url}/status/204", logger=mock_logger)

    await request.make_request()

    mock_logger.info.assert_not_called()


def test_new_requests_keep_logger_level():
    fch_logger = logging.getLogger("fch")
    previous = fch_logger.level
    fch_logger.setLevel(logging.WARNING)
    try:
        Fch("https://api.example.com")
        Fch("https://api.example.com", logger=SimpleNamespace()).set_logger(None)

        assert fch_logger.level == logging.WARNING
    finally:
        fch_logger.setLevel(previous)
