import logging

from upqueue.logging_filters import (
    SuppressHealthCheckAccessLog,
    configure_logging,
    install_uvicorn_access_log_filters,
)


def _access_record(path: str, *, msg: str = '%s - "%s %s HTTP/%s" %s') -> logging.LogRecord:
    return logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=("127.0.0.1:12345", "GET", path, "1.1", 200),
        exc_info=None,
    )


def test_suppress_healthcheck_access_log_by_args() -> None:
    filt = SuppressHealthCheckAccessLog()

    assert filt.filter(_access_record("/health")) is False
    assert filt.filter(_access_record("/health?verbose=1")) is False


def test_suppress_healthcheck_access_log_by_message_fallback() -> None:
    filt = SuppressHealthCheckAccessLog()
    record = logging.LogRecord(
        name="uvicorn.access",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg='127.0.0.1:12345 - "GET /health HTTP/1.1" 200 OK',
        args=(),
        exc_info=None,
    )
    assert filt.filter(record) is False


def test_upload_routes_are_not_suppressed() -> None:
    filt = SuppressHealthCheckAccessLog()

    assert filt.filter(_access_record("/uploads/new")) is True
    assert filt.filter(_access_record("/uploads")) is True


def test_install_does_not_duplicate_filter() -> None:
    logger = logging.getLogger("uvicorn.access")
    logger.filters.clear()

    install_uvicorn_access_log_filters()
    install_uvicorn_access_log_filters()

    matches = [f for f in logger.filters if isinstance(f, SuppressHealthCheckAccessLog)]
    assert len(matches) == 1


def test_configure_logging_quiets_boto() -> None:
    configure_logging("debug")

    assert logging.getLogger("botocore").level == logging.WARNING
    assert logging.getLogger("boto3").level == logging.WARNING
