"""
Activation engine: preflight validation, submission, progress polling,
rollback and batch planning.
"""

from .validator import PreflightValidator, generate_suggestions
from .submitter import ActivationSubmitter, MAX_SUBMIT_ATTEMPTS
from .progress_manager import ProgressManager, iter_progress
from .poller import ProgressPoller, PollResult, progressive_delay, DEFAULT_MAX_WAIT_SECONDS
from .rollback import RollbackCoordinator
from .planner import ActivationPlanner, PlanItemOutcome, dependency_order, estimate_minutes
from .service import ActivationService

__all__ = [
    'PreflightValidator',
    'generate_suggestions',
    'ActivationSubmitter',
    'MAX_SUBMIT_ATTEMPTS',
    'ProgressManager',
    'iter_progress',
    'ProgressPoller',
    'PollResult',
    'progressive_delay',
    'DEFAULT_MAX_WAIT_SECONDS',
    'RollbackCoordinator',
    'ActivationPlanner',
    'PlanItemOutcome',
    'dependency_order',
    'estimate_minutes',
    'ActivationService',
]
