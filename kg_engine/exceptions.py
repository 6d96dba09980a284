from typing import Optional


class GraphEngineError(Exception):
    """Base error for the graph state engine."""


class RemoteCallError(GraphEngineError):
    """A remote read failed; nothing was cached for it."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.operation = operation
        self.cause = cause
        if message is None:
            message = f"{operation} failed: {cause}" if cause is not None else f"{operation} failed"
        super().__init__(message)


class MalformedResponseError(RemoteCallError):
    """The backend answered without the expected response envelope."""
