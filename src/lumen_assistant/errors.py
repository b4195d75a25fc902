"""Error taxonomy shared by the gateway, dispatcher and HTTP layer."""

from __future__ import annotations

from typing import Any, Optional


class AssistantError(Exception):
    """Base class for errors that terminate a request with an HTTP status."""

    status_code: int = 500
    error: str = "Request failed. Please try again."

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.error
        self.message = message
        super().__init__(message or self.error)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        return payload


class Unauthorized(AssistantError):
    status_code = 401
    error = "Unauthorized"


class RateLimited(AssistantError):
    """Raised by the gateway counter or mapped from an upstream 429."""

    status_code = 429

    def __init__(self, layer: str = "gateway", max_requests: int = 100):
        self.layer = layer
        if layer == "upstream":
            super().__init__(
                "RATE_LIMIT",
                "AI is temporarily rate-limited. Please try again shortly.",
            )
        else:
            super().__init__(
                f"Rate limit exceeded. You can make up to {max_requests} AI requests per hour. "
                "Please try again later."
            )


class InvalidRequest(AssistantError):
    status_code = 400
    error = "Invalid request"


class UpstreamError(AssistantError):
    status_code = 502
    error = "UPSTREAM_ERROR"

    def __init__(self, message: str = "AI service error", status: Optional[int] = None):
        self.status = status
        super().__init__(message=message)


class InternalError(AssistantError):
    status_code = 500

    def __init__(self, error_id: str):
        self.error_id = error_id
        super().__init__(message=error_id)


class ToolExecutionError(Exception):
    """A single tool call failed; siblings in the same batch still run."""

    def __init__(self, tool_name: str, reason: str = ""):
        self.tool_name = tool_name
        self.reason = reason
        super().__init__(f"{tool_name}: {reason}" if reason else tool_name)
