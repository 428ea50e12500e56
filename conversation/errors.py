from enum import Enum


class SessionErrorKind(str, Enum):
    PERSISTENCE_UNAVAILABLE = "persistence_unavailable"


class SessionError(Exception):
    def __init__(self, kind: SessionErrorKind, message: str = ""):
        self.kind = kind
        super().__init__(message or kind.value)
