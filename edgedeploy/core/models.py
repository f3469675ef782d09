from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any, Tuple

from .enums import (
    ActivationOutcome,
    ActivationState,
    ActivationStrategy,
    CheckStatus,
    ErrorSeverity,
    Network,
    WarningSeverity,
)
from .exceptions import ControlPlaneError


# Expected end-to-end propagation budget per network, in seconds
NETWORK_PROPAGATION_SECONDS = {
    Network.STAGING: 600,
    Network.PRODUCTION: 1800,
}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as sent by the control plane"""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_since(moment: Optional[datetime], now: Optional[datetime] = None) -> Optional[float]:
    """Seconds from moment until now, or None when moment is unknown"""
    if moment is None:
        return None
    return max(0.0, ((now or utc_now()) - moment).total_seconds())


def _enum_dict(obj: Any) -> Dict[str, Any]:
    """asdict() with enums flattened to values and datetimes to ISO strings"""
    def convert(value):
        if isinstance(value, (Network, ActivationState, ErrorSeverity, WarningSeverity,
                              CheckStatus, ActivationStrategy, ActivationOutcome)):
            return value.value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [convert(v) for v in value]
        return value
    return convert(asdict(obj))


@dataclass(frozen=True)
class ActivationRequest:
    """Immutable request to deploy one configuration version to a network"""
    resource_id: str
    version: int
    network: Network
    note: Optional[str] = None
    notify_emails: Tuple[str, ...] = ()
    fast_push: bool = True
    acknowledge_warnings: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Body of the submit-activation call"""
        note = self.note or f"Activated via edgedeploy on {datetime.now(timezone.utc).isoformat()}"
        return {
            "propertyVersion": self.version,
            "network": self.network.value,
            "note": note,
            "notifyEmails": list(self.notify_emails),
            "acknowledgeAllWarnings": self.acknowledge_warnings,
            "fastPush": self.fast_push,
            "useFastFallback": False,
        }

    def to_dict(self) -> Dict[str, Any]:
        return _enum_dict(self)


@dataclass
class ActivationError:
    """Error attached to an activation record by the control plane"""
    type: str
    detail: str
    message_id: Optional[str] = None
    error_location: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ActivationError':
        return cls(
            type=data.get("type", "unknown"),
            detail=data.get("detail", ""),
            message_id=data.get("messageId"),
            error_location=data.get("errorLocation"),
            timestamp=parse_timestamp(data.get("timestamp")),
        )


@dataclass
class ActivationWarning:
    """Warning attached to an activation record by the control plane"""
    type: str
    detail: str
    message_id: Optional[str] = None
    error_location: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ActivationWarning':
        return cls(
            type=data.get("type", "unknown"),
            detail=data.get("detail", ""),
            message_id=data.get("messageId"),
            error_location=data.get("errorLocation"),
        )


@dataclass
class ActivationRecord:
    """Read-only snapshot of one activation attempt, refreshed on every poll"""
    activation_id: str
    resource_id: str
    version: int
    network: Network
    state: ActivationState
    submitted_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resource_name: Optional[str] = None
    note: Optional[str] = None
    fatal_error: Optional[str] = None
    errors: List[ActivationError] = field(default_factory=list)
    warnings: List[ActivationWarning] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ActivationRecord':
        """Build a record from the control plane's activation JSON"""
        try:
            state = ActivationState(data["status"])
        except ValueError as e:
            raise ControlPlaneError(
                f"Unknown activation status {data.get('status')} for {data.get('activationId')}"
            ) from e
        return cls(
            activation_id=data["activationId"],
            resource_id=data.get("propertyId", ""),
            version=int(data.get("propertyVersion", 0)),
            network=Network(data["network"]),
            state=state,
            submitted_at=parse_timestamp(data.get("submitDate")),
            updated_at=parse_timestamp(data.get("updateDate")),
            resource_name=data.get("propertyName"),
            note=data.get("note"),
            fatal_error=data.get("fatalError"),
            errors=[ActivationError.from_api(e) for e in data.get("errors") or []],
            warnings=[ActivationWarning.from_api(w) for w in data.get("warnings") or []],
        )

    def to_dict(self) -> Dict[str, Any]:
        return _enum_dict(self)


@dataclass
class ActivationProgress:
    """Client-side view of an activation, recomputed on every poll tick"""
    activation_id: str
    resource_id: str
    version: int
    network: Network
    state: ActivationState
    percent_complete: int
    status_message: str
    estimated_time_remaining: float
    current_zone: Optional[str] = None
    details: Optional[str] = None
    started_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    errors: List[ActivationError] = field(default_factory=list)
    warnings: List[ActivationWarning] = field(default_factory=list)

    @classmethod
    def from_record(
        cls,
        record: ActivationRecord,
        elapsed_seconds: float,
        floor_percent: int = 0
    ) -> 'ActivationProgress':
        """
        Derive progress from a record.

        Args:
            record: Latest activation record
            elapsed_seconds: Time since the activation was submitted
            floor_percent: Highest percentage already observed; the result never
                goes below it, so repeated or late states are no-ops
        """
        budget = NETWORK_PROPAGATION_SECONDS[record.network]
        if record.state == ActivationState.ACTIVE:
            remaining = 0.0
        else:
            remaining = max(0.0, budget - elapsed_seconds)

        return cls(
            activation_id=record.activation_id,
            resource_id=record.resource_id,
            version=record.version,
            network=record.network,
            state=record.state,
            percent_complete=max(record.state.percent, floor_percent),
            status_message=record.state.message,
            estimated_time_remaining=remaining,
            current_zone=record.state.value if record.state.is_zone else None,
            details=record.fatal_error,
            started_at=record.submitted_at,
            updated_at=record.updated_at,
            errors=list(record.errors),
            warnings=list(record.warnings),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _enum_dict(self)


@dataclass
class ValidationError:
    """Blocking preflight finding"""
    severity: ErrorSeverity
    type: str
    detail: str
    location: Optional[str] = None
    resolution: Optional[str] = None


@dataclass
class ValidationWarning:
    """Non-blocking preflight finding"""
    severity: WarningSeverity
    type: str
    detail: str
    location: Optional[str] = None


@dataclass
class PreflightCheck:
    """Named pass/fail/warn check"""
    name: str
    status: CheckStatus
    message: str
    details: Optional[str] = None


@dataclass
class ValidationResult:
    """Output of the preflight validator; valid iff there are no errors"""
    resource_id: str
    version: int
    network: Network
    errors: List[ValidationError] = field(default_factory=list)
    warnings: List[ValidationWarning] = field(default_factory=list)
    preflight_checks: List[PreflightCheck] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    resource_name: Optional[str] = None
    context: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        result = _enum_dict(self)
        result['valid'] = self.valid
        return result


@dataclass
class ChangeList:
    """Per-zone draft of pending record edits"""
    zone: str
    change_tag: Optional[str] = None
    zone_version_id: Optional[str] = None
    last_modified_date: Optional[datetime] = None
    last_modified_by: Optional[str] = None
    stale: bool = False
    record_sets: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ChangeList':
        return cls(
            zone=data["zone"],
            change_tag=data.get("changeTag"),
            zone_version_id=data.get("zoneVersionId"),
            last_modified_date=parse_timestamp(data.get("lastModifiedDate")),
            last_modified_by=data.get("lastModifiedBy"),
            stale=bool(data.get("stale", False)),
            record_sets=list(data.get("recordSets") or data.get("recordsets") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return _enum_dict(self)


@dataclass
class ActivationResult:
    """Result of an activate or wait call"""
    outcome: ActivationOutcome
    activation_id: Optional[str] = None
    request: Optional[ActivationRequest] = None
    progress: Optional[ActivationProgress] = None
    validation: Optional[ValidationResult] = None
    rollback_activation_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == ActivationOutcome.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'outcome': self.outcome.value,
            'activation_id': self.activation_id,
            'request': self.request.to_dict() if self.request else None,
            'progress': self.progress.to_dict() if self.progress else None,
            'validation': self.validation.to_dict() if self.validation else None,
            'rollback_activation_id': self.rollback_activation_id,
            'message': self.message,
        }


@dataclass(frozen=True)
class PlanItem:
    """One (resource, version, network) entry of a batch rollout"""
    resource_id: str
    network: Network
    version: Optional[int] = None


@dataclass
class ActivationPlan:
    """Ordered groups of plan items; items in the same step launch together"""
    strategy: ActivationStrategy
    steps: List[List[PlanItem]] = field(default_factory=list)
    estimated_minutes: int = 0

    @property
    def items(self) -> List[PlanItem]:
        return [item for step in self.steps for item in step]

    def to_dict(self) -> Dict[str, Any]:
        return _enum_dict(self)
