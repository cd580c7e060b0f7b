"""
Errors raised by the chat client.

Local argument validation raises plain ValueError before any request is
sent. Everything the remote service rejects surfaces as StreamAPIError.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests


@dataclass(frozen=True)
class RateLimit:
    """Rate limit window reported by the service in X-Ratelimit-* headers."""
    limit: int
    remaining: int
    reset: datetime

    @classmethod
    def from_headers(cls, headers) -> Optional["RateLimit"]:
        try:
            limit = int(headers["X-Ratelimit-Limit"])
            remaining = int(headers["X-Ratelimit-Remaining"])
            reset = int(headers["X-Ratelimit-Reset"])
        except (KeyError, TypeError, ValueError):
            return None
        return cls(limit=limit, remaining=remaining,
                   reset=datetime.fromtimestamp(reset, tz=timezone.utc))

    def exhausted(self) -> bool:
        return self.remaining <= 0


class StreamAPIError(requests.HTTPError):
    """
    Non-2xx reply from the chat API.

    Subclasses requests.HTTPError so callers that already catch HTTPError
    keep working. The service error body looks like:
        {"code": 4, "message": "...", "more_info": "...",
         "exception_fields": {...}, "StatusCode": 400}
    """

    def __init__(self, response: requests.Response, body: Optional[Dict[str, Any]] = None):
        body = body or {}
        self.status_code: int = body.get("StatusCode", response.status_code)
        self.code: Optional[int] = body.get("code")
        self.message: str = body.get("message") or response.reason or ""
        self.more_info: Optional[str] = body.get("more_info")
        self.exception_fields: Dict[str, str] = body.get("exception_fields") or {}
        self.rate_limit: Optional[RateLimit] = RateLimit.from_headers(response.headers)
        super().__init__(
            f"StreamChat error code {self.code}: {self.message}",
            response=response,
        )

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429
