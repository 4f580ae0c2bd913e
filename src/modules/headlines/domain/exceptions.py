"""Headline domain exceptions."""

from fastapi import status

from src.core.domain.exceptions import DomainException, ValidationError


class HeadlineFetchError(DomainException):
    """Base class for failures while fetching an upstream feed."""

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "FETCH_ERROR"

    #: 是否值得重试（只有超时和连接层错误重试）
    retryable: bool = True

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


class FetchTimeoutError(HeadlineFetchError):
    """Upstream did not answer within the timeout."""

    http_status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "FETCH_TIMEOUT"

    def __init__(self, url: str, timeout_sec: float):
        self.timeout_sec = timeout_sec
        super().__init__(f"Timeout after {timeout_sec:g}s: {url}", url=url)


class UpstreamHttpError(HeadlineFetchError):
    """Upstream answered with a non-2xx status."""

    error_code = "UPSTREAM_HTTP_ERROR"
    retryable = False

    def __init__(self, url: str, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {url}", url=url)


class UpstreamNetworkError(HeadlineFetchError):
    """Connection-level failure (DNS, refused, reset, TLS...)."""

    error_code = "UPSTREAM_NETWORK_ERROR"


class FetchCancelledError(HeadlineFetchError):
    """The caller abandoned the fetch between retry attempts."""

    error_code = "FETCH_CANCELLED"
    retryable = False


class FeedParseError(DomainException):
    """Payload is not a feed we understand, or yielded no usable entries."""

    http_status_code = status.HTTP_502_BAD_GATEWAY
    error_code = "FEED_PARSE_ERROR"


class AllSourcesExhaustedError(DomainException):
    """Every source failed or ran out of unused headlines in one request."""

    http_status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "ALL_SOURCES_EXHAUSTED"

    def __init__(self, category: str, country: str, tried: list[str]):
        self.category = category
        self.country = country
        self.tried = tried
        super().__init__(
            f"Could not get a headline for {category}/{country} "
            f"from any source; try again shortly"
        )


class InvalidSourceCatalogError(ValidationError):
    """Raised when the source catalog file is malformed."""

    def __init__(self, message: str):
        super().__init__(f"Invalid source catalog: {message}")


class HeadlineRequestTimeoutError(DomainException):
    """The whole headline request took longer than the request budget."""

    http_status_code = status.HTTP_504_GATEWAY_TIMEOUT
    error_code = "HEADLINE_TIMEOUT"

    def __init__(self, timeout_sec: float):
        self.timeout_sec = timeout_sec
        super().__init__(f"No headline within {timeout_sec:g}s; try again shortly")
