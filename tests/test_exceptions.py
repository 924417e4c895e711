"""Tests for gateway exceptions and their HTTP rendering."""

from copilot_gateway.core.exceptions import (
    AuthenticationRequiredError,
    GatewayError,
    InvalidRequestError,
    RateLimitExceededError,
    UpstreamError,
)


class TestGatewayErrors:
    def test_base_error_body(self):
        error = GatewayError("boom")
        assert error.status_code == 500
        assert error.error_body() == {
            "error": {"message": "boom", "type": "gateway_error", "code": "internal_error"}
        }

    def test_invalid_request_carries_param(self):
        error = InvalidRequestError("Messages array is required", param="messages")
        body = error.error_body()["error"]
        assert error.status_code == 400
        assert body["type"] == "invalid_request_error"
        assert body["param"] == "messages"

    def test_rate_limit_has_retry_after(self):
        error = RateLimitExceededError("slow down", retry_after=0)
        assert error.retry_after == 1
        http_exc = error.to_http_exception()
        assert http_exc.status_code == 429
        assert http_exc.headers == {"Retry-After": "1"}
        assert http_exc.detail["error"]["retry_after"] == 1

    def test_upstream_status_is_propagated(self):
        assert UpstreamError("x", upstream_status=503).status_code == 503
        assert UpstreamError("x", upstream_status=200).status_code == 502
        assert UpstreamError("x").status_code == 502

    def test_authentication_required(self):
        http_exc = AuthenticationRequiredError("Authentication required").to_http_exception()
        assert http_exc.status_code == 401
        assert http_exc.detail["error"]["code"] == "authentication_required"
