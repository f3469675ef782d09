from .enums import (
    Network,
    ActivationState,
    ErrorSeverity,
    WarningSeverity,
    CheckStatus,
    ActivationStrategy,
    ActivationOutcome,
)
from .models import (
    ActivationRequest,
    ActivationRecord,
    ActivationError,
    ActivationWarning,
    ActivationProgress,
    ValidationError,
    ValidationWarning,
    PreflightCheck,
    ValidationResult,
    ChangeList,
    ActivationResult,
    PlanItem,
    ActivationPlan,
)
from .exceptions import (
    EdgeDeployError,
    ControlPlaneError,
    TransientAPIError,
    ConflictError,
    NotFoundError,
    ActivationNotCancellableError,
    CyclicDependencyError,
)
