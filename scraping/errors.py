from enum import Enum
from typing import Optional


class FetchErrorKind(str, Enum):
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    NETWORK_FAILURE = "network_failure"
    PARSE_FAILURE = "parse_failure"


class FetchError(Exception):
    """A single source could not be fetched or parsed."""

    def __init__(self, kind: FetchErrorKind, message: str = "", code: Optional[int] = None):
        self.kind = kind
        self.code = code
        detail = f"{kind.value}"
        if code is not None:
            detail += f" ({code})"
        if message:
            detail += f": {message}"
        super().__init__(detail)


class CoordinatorErrorKind(str, Enum):
    CONCURRENCY_LIMIT_EXCEEDED = "concurrency_limit_exceeded"


class CoordinatorError(Exception):
    def __init__(self, kind: CoordinatorErrorKind, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)
