"""Exceptions raised by the control-plane client and the activation engine."""

from typing import Any, List, Optional


# Non-5xx statuses worth re-issuing the same request for; every 5xx is too
TRANSIENT_STATUSES = frozenset({408, 429})


class EdgeDeployError(Exception):
    """Base exception for all edgedeploy errors."""


class ControlPlaneError(EdgeDeployError):
    """Raised when the control plane rejects or fails a request."""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Any = None,
    ) -> None:
        self.status = status
        self.body = body
        super().__init__(message if status is None else f"[{status}] {message}")


class TransientAPIError(ControlPlaneError):
    """Network failure or retryable HTTP status (408, 429, 5xx)."""


class ConflictError(ControlPlaneError):
    """Concurrent activation or change-list collision on the same resource."""


class NotFoundError(ControlPlaneError):
    """Requested resource, activation or change list does not exist."""


class ActivationNotCancellableError(ConflictError):
    """Raised when cancelling an activation that is no longer PENDING."""

    def __init__(self, activation_id: str, state: str) -> None:
        self.activation_id = activation_id
        self.state = state
        super().__init__(
            f"Activation {activation_id} is {state}; only PENDING activations can be cancelled",
            status=409,
        )


class CyclicDependencyError(EdgeDeployError):
    """Raised when an activation plan's dependency map contains a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


def error_for_status(status: int, message: str, body: Any = None) -> ControlPlaneError:
    """Map an HTTP status to the matching exception type."""
    if status == 404:
        return NotFoundError(message, status=status, body=body)
    if status == 409:
        return ConflictError(message, status=status, body=body)
    if status in TRANSIENT_STATUSES or 500 <= status < 600:
        return TransientAPIError(message, status=status, body=body)
    return ControlPlaneError(message, status=status, body=body)
