"""Core exceptions for the gateway."""

from typing import Any, Optional

from fastapi import HTTPException


class GatewayError(Exception):
    """Base exception for gateway errors."""

    status_code = 500
    code = "internal_error"
    error_type = "gateway_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def error_body(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }

    def headers(self) -> Optional[dict[str, str]]:
        return None

    def to_http_exception(self) -> HTTPException:
        """Render the error the way the routes report it to callers."""
        return HTTPException(
            status_code=self.status_code,
            detail=self.error_body(),
            headers=self.headers(),
        )


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""
    pass


class InvalidRequestError(GatewayError):
    """Raised when an incoming request is invalid."""

    status_code = 400
    error_type = "invalid_request_error"

    def __init__(
        self,
        message: str,
        code: str = "invalid_request",
        param: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.param = param

    def error_body(self) -> dict[str, Any]:
        body = super().error_body()
        if self.param:
            body["error"]["param"] = self.param
        return body


class AuthenticationRequiredError(GatewayError):
    """No upstream token is available and none can be obtained."""

    status_code = 401
    code = "authentication_required"
    error_type = "authentication_error"


class AuthenticationFailedError(GatewayError):
    """The upstream token exchange failed."""

    status_code = 401
    code = "authentication_failed"
    error_type = "authentication_error"


class RateLimitExceededError(GatewayError):
    """A session exceeded one of the configured limits."""

    status_code = 429
    error_type = "rate_limit_error"

    def __init__(
        self,
        message: str,
        *,
        code: str = "rate_limit_exceeded",
        retry_after: int = 60,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.retry_after = max(1, int(retry_after))

    def error_body(self) -> dict[str, Any]:
        body = super().error_body()
        body["error"]["retry_after"] = self.retry_after
        return body

    def headers(self) -> Optional[dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class UpstreamError(GatewayError):
    """The upstream answered with an error before any output was produced."""

    code = "upstream_error"
    error_type = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status
        self.body = body
        if upstream_status is not None and upstream_status >= 400:
            self.status_code = upstream_status
        else:
            self.status_code = 502


class FrameParseError(GatewayError):
    """An upstream SSE frame carried data that is not valid JSON."""

    code = "frame_parse_error"
    error_type = "stream_error"

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class StreamTransportError(GatewayError):
    """The upstream connection failed while a stream was being read."""

    status_code = 502
    code = "stream_transport_error"
    error_type = "stream_error"
