"""Exception types raised by the session bootstrap client."""

from typing import Optional


class LeafSessionError(Exception):
    """Base class for all leafsession errors."""


class TransportError(LeafSessionError):
    """A request to a Leaf node failed or returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ResponderResolutionError(LeafSessionError):
    """A single partner node could not be resolved. Recoverable."""

    def __init__(self, node_id: int, address: str, cause: BaseException):
        super().__init__(f"Responder {node_id} ({address}) failed: {cause}")
        self.node_id = node_id
        self.address = address
        self.cause = cause


class BootstrapError(LeafSessionError):
    """A bootstrap stage failed; the attempt is abandoned."""

    def __init__(self, stage: str, cause: BaseException):
        super().__init__(f"Stage '{stage}' failed: {cause}")
        self.stage = stage
        self.cause = cause
