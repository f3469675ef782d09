from enum import Enum


class Network(str, Enum):
    STAGING = "STAGING"
    PRODUCTION = "PRODUCTION"


# Deterministic progress table; failure terminals carry no progress of their own
_STATE_PERCENT = {
    "PENDING": 5,
    "ZONE_1": 25,
    "ZONE_2": 50,
    "ZONE_3": 75,
    "ACTIVE": 100,
    "FAILED": 0,
    "ABORTED": 0,
    "DEACTIVATED": 0,
}

_STATE_MESSAGES = {
    "PENDING": "Preparing activation",
    "ZONE_1": "Deploying to first zone",
    "ZONE_2": "Deploying to second zone",
    "ZONE_3": "Deploying to third zone",
    "ACTIVE": "Activation complete",
    "FAILED": "Activation failed",
    "ABORTED": "Activation aborted",
    "DEACTIVATED": "Configuration deactivated",
}


class ActivationState(str, Enum):
    """Lifecycle of one activation as reported by the control plane"""
    PENDING = "PENDING"
    ZONE_1 = "ZONE_1"
    ZONE_2 = "ZONE_2"
    ZONE_3 = "ZONE_3"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"
    ABORTED = "ABORTED"
    DEACTIVATED = "DEACTIVATED"

    @property
    def is_terminal(self) -> bool:
        return self in (
            ActivationState.ACTIVE,
            ActivationState.FAILED,
            ActivationState.ABORTED,
            ActivationState.DEACTIVATED,
        )

    @property
    def is_failure(self) -> bool:
        return self in (
            ActivationState.FAILED,
            ActivationState.ABORTED,
            ActivationState.DEACTIVATED,
        )

    @property
    def triggers_rollback(self) -> bool:
        return self in (ActivationState.FAILED, ActivationState.ABORTED)

    @property
    def is_zone(self) -> bool:
        return self.value.startswith("ZONE_")

    @property
    def percent(self) -> int:
        return _STATE_PERCENT[self.value]

    @property
    def message(self) -> str:
        return _STATE_MESSAGES[self.value]


class ErrorSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"


class WarningSeverity(str, Enum):
    WARNING = "WARNING"
    INFO = "INFO"


class CheckStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"
    WARNING = "WARNING"


class ActivationStrategy(str, Enum):
    PARALLEL = "PARALLEL"
    SEQUENTIAL = "SEQUENTIAL"
    DEPENDENCY_ORDERED = "DEPENDENCY_ORDERED"


class ActivationOutcome(str, Enum):
    """Result of an activate/wait call from the caller's point of view"""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    SUBMITTED = "submitted"
    BLOCKED = "blocked"
