"""Domain-level errors for the test repository tree."""


class NodeNotFoundError(LookupError):
    """Raised when a node id cannot be located in the forest."""


class PlanningError(Exception):
    """Raised when a destination sibling scope cannot be read from the forest."""


class CommitError(Exception):
    """Raised when the test repository API rejects or fails a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
