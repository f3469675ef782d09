"""
Activation planner for coordinated multi-resource rollouts.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from ..core.enums import ActivationStrategy, Network
from ..core.exceptions import CyclicDependencyError
from ..core.models import ActivationPlan, ActivationResult, PlanItem


# Rough end-to-end minutes per activation, used for plan estimates
NETWORK_MINUTES = {
    Network.STAGING: 10,
    Network.PRODUCTION: 30,
}


@dataclass
class PlanItemOutcome:
    """What happened to one plan item during execution"""
    item: PlanItem
    result: Optional[ActivationResult] = None
    error: Optional[str] = None
    skipped: bool = False

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.succeeded

    def to_dict(self) -> Dict:
        return {
            'resource_id': self.item.resource_id,
            'network': self.item.network.value,
            'version': self.item.version,
            'result': self.result.to_dict() if self.result else None,
            'error': self.error,
            'skipped': self.skipped,
        }


def dependency_order(items: List[PlanItem], dependencies: Dict[str, List[str]]) -> List[PlanItem]:
    """
    Depth-first topological order: every prerequisite before its dependents.

    Dependencies naming resources that are not in ``items`` are walked but
    contribute nothing to the order.

    Raises:
        CyclicDependencyError: If the dependency map contains a cycle
    """
    by_resource: Dict[str, List[PlanItem]] = {}
    for item in items:
        by_resource.setdefault(item.resource_id, []).append(item)

    ordered: List[PlanItem] = []
    done = set()
    path: List[str] = []

    def visit(resource_id: str):
        if resource_id in done:
            return
        if resource_id in path:
            cycle = path[path.index(resource_id):] + [resource_id]
            raise CyclicDependencyError(cycle)

        path.append(resource_id)
        for prerequisite in dependencies.get(resource_id, []):
            visit(prerequisite)
        path.pop()

        done.add(resource_id)
        ordered.extend(by_resource.get(resource_id, []))

    for item in items:
        visit(item.resource_id)
    return ordered


def estimate_minutes(items: List[PlanItem], strategy: ActivationStrategy) -> int:
    durations = [NETWORK_MINUTES[item.network] for item in items]
    if not durations:
        return 0
    if strategy == ActivationStrategy.PARALLEL:
        return max(durations)
    return sum(durations)


class ActivationPlanner:
    """Builds and executes batch activation plans"""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ActivationPlanner")

    def build_plan(
        self,
        items: List[PlanItem],
        strategy: ActivationStrategy = ActivationStrategy.SEQUENTIAL,
        dependencies: Optional[Dict[str, List[str]]] = None
    ) -> ActivationPlan:
        """
        Group items into ordered steps.

        Args:
            items: Activations to plan
            strategy: PARALLEL, SEQUENTIAL or DEPENDENCY_ORDERED
            dependencies: resource id -> prerequisite resource ids

        Returns:
            ActivationPlan; items within one step are launched together
        """
        if strategy == ActivationStrategy.PARALLEL:
            steps = [list(items)] if items else []
        elif strategy == ActivationStrategy.DEPENDENCY_ORDERED:
            steps = [[item] for item in dependency_order(items, dependencies or {})]
        else:
            steps = [[item] for item in items]

        plan = ActivationPlan(
            strategy=strategy,
            steps=steps,
            estimated_minutes=estimate_minutes(items, strategy),
        )
        self.logger.info(
            f"Planned {len(items)} activation(s) as {strategy.value}: "
            f"{len(steps)} step(s), ~{plan.estimated_minutes} min"
        )
        return plan

    async def execute(
        self,
        plan: ActivationPlan,
        run_item: Callable[[PlanItem], Awaitable[ActivationResult]],
        continue_on_error: bool = False
    ) -> List[PlanItemOutcome]:
        """
        Run a plan step by step.

        Items of one step run concurrently. After a step with any unsuccessful
        item, remaining steps are skipped unless ``continue_on_error``.
        """
        outcomes: List[PlanItemOutcome] = []
        stopped = False

        for index, step in enumerate(plan.steps, start=1):
            if stopped:
                outcomes.extend(PlanItemOutcome(item=item, skipped=True) for item in step)
                continue

            self.logger.info(f"Executing step {index}/{len(plan.steps)} ({len(step)} item(s))")
            results = await asyncio.gather(
                *(run_item(item) for item in step),
                return_exceptions=True
            )

            step_ok = True
            for item, result in zip(step, results):
                if isinstance(result, Exception):
                    self.logger.error(f"Activation of {item.resource_id} raised: {result}")
                    outcomes.append(PlanItemOutcome(item=item, error=str(result)))
                    step_ok = False
                else:
                    outcomes.append(PlanItemOutcome(item=item, result=result))
                    step_ok = step_ok and result.succeeded

            if not step_ok and not continue_on_error:
                self.logger.warning(f"Step {index} did not fully succeed; skipping remaining steps")
                stopped = True

        return outcomes
