from __future__ import annotations

from typing import Any, Optional

from hashfile.core.errors import HashfileError, register_error


@register_error
class RequestError(HashfileError):
    """
    Anchoring service / provider answered with an unexpected status, or
    could not be reached at all (status_code is None then).
    """
    code = "request_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Any = None,
        hint: str | None = None,
    ):
        super().__init__(message, hint=hint, details={"status_code": status_code})
        self.status_code = status_code
        self.body = body


@register_error
class TxNotFound(HashfileError):
    code = "tx_not_found"


@register_error
class NotFound(HashfileError):
    code = "not_found"
