"""
Test cases for batch activation planning and execution.
"""

import asyncio
import pytest

from edgedeploy.activation.planner import ActivationPlanner
from edgedeploy.core.enums import ActivationOutcome, ActivationStrategy, Network
from edgedeploy.core.exceptions import ConflictError, CyclicDependencyError
from edgedeploy.core.models import ActivationResult, PlanItem


def item(resource_id: str, network: Network = Network.STAGING) -> PlanItem:
    return PlanItem(resource_id=resource_id, network=network)


def ids(plan):
    return [[i.resource_id for i in step] for step in plan.steps]


@pytest.fixture
def planner():
    return ActivationPlanner()


class TestBuildPlan:

    def test_sequential_keeps_input_order(self, planner):
        plan = planner.build_plan([item("a"), item("b"), item("c")], ActivationStrategy.SEQUENTIAL)

        assert ids(plan) == [["a"], ["b"], ["c"]]
        assert plan.estimated_minutes == 30

    def test_parallel_is_one_step(self, planner):
        plan = planner.build_plan(
            [item("a"), item("b", Network.PRODUCTION)], ActivationStrategy.PARALLEL
        )

        assert ids(plan) == [["a", "b"]]
        assert plan.estimated_minutes == 30

    def test_sequential_estimate_sums_networks(self, planner):
        plan = planner.build_plan(
            [item("a", Network.PRODUCTION), item("b", Network.PRODUCTION), item("c")],
            ActivationStrategy.SEQUENTIAL,
        )

        assert plan.estimated_minutes == 70

    def test_prerequisites_come_first(self, planner):
        plan = planner.build_plan(
            [item("web"), item("api"), item("db")],
            ActivationStrategy.DEPENDENCY_ORDERED,
            {"web": ["api"], "api": ["db"]},
        )

        assert ids(plan) == [["db"], ["api"], ["web"]]

    def test_diamond_visits_shared_prerequisite_once(self, planner):
        plan = planner.build_plan(
            [item("top"), item("left"), item("right"), item("base")],
            ActivationStrategy.DEPENDENCY_ORDERED,
            {"top": ["left", "right"], "left": ["base"], "right": ["base"]},
        )

        assert ids(plan) == [["base"], ["left"], ["right"], ["top"]]

    def test_unknown_dependencies_are_ignored(self, planner):
        plan = planner.build_plan(
            [item("a"), item("b")],
            ActivationStrategy.DEPENDENCY_ORDERED,
            {"a": ["not-in-batch"], "b": ["a"]},
        )

        assert ids(plan) == [["a"], ["b"]]

    def test_cycle_is_rejected(self, planner):
        with pytest.raises(CyclicDependencyError) as exc_info:
            planner.build_plan(
                [item("a"), item("b"), item("c")],
                ActivationStrategy.DEPENDENCY_ORDERED,
                {"a": ["b"], "b": ["c"], "c": ["a"]},
            )

        assert exc_info.value.cycle == ["a", "b", "c", "a"]

    def test_self_dependency_is_a_cycle(self, planner):
        with pytest.raises(CyclicDependencyError):
            planner.build_plan([item("a")], ActivationStrategy.DEPENDENCY_ORDERED, {"a": ["a"]})

    def test_empty_batch(self, planner):
        plan = planner.build_plan([], ActivationStrategy.PARALLEL)

        assert plan.steps == []
        assert plan.estimated_minutes == 0


class TestExecutePlan:

    @staticmethod
    def runner(outcomes, calls):
        async def run_item(plan_item):
            calls.append(plan_item.resource_id)
            outcome = outcomes.get(plan_item.resource_id, ActivationOutcome.SUCCEEDED)
            if isinstance(outcome, Exception):
                raise outcome
            return ActivationResult(outcome=outcome, activation_id=f"atv_{plan_item.resource_id}")
        return run_item

    @pytest.mark.asyncio
    async def test_sequential_stops_after_failure(self, planner):
        calls = []
        plan = planner.build_plan([item("a"), item("b"), item("c")], ActivationStrategy.SEQUENTIAL)

        outcomes = await planner.execute(plan, self.runner({"b": ActivationOutcome.FAILED}, calls))

        assert calls == ["a", "b"]
        assert [o.succeeded for o in outcomes] == [True, False, False]
        assert outcomes[2].skipped

    @pytest.mark.asyncio
    async def test_continue_on_error_runs_everything(self, planner):
        calls = []
        plan = planner.build_plan([item("a"), item("b"), item("c")], ActivationStrategy.SEQUENTIAL)

        outcomes = await planner.execute(
            plan, self.runner({"a": ActivationOutcome.TIMED_OUT}, calls), continue_on_error=True
        )

        assert calls == ["a", "b", "c"]
        assert [o.skipped for o in outcomes] == [False, False, False]

    @pytest.mark.asyncio
    async def test_exceptions_are_recorded_per_item(self, planner):
        calls = []
        plan = planner.build_plan([item("a"), item("b")], ActivationStrategy.PARALLEL)

        outcomes = await planner.execute(
            plan, self.runner({"a": ConflictError("busy", status=409)}, calls)
        )

        assert sorted(calls) == ["a", "b"]
        assert "busy" in outcomes[0].error
        assert outcomes[1].succeeded

    @pytest.mark.asyncio
    async def test_parallel_items_run_concurrently(self, planner):
        running = []
        peak = []

        async def run_item(plan_item):
            running.append(plan_item.resource_id)
            peak.append(len(running))
            await asyncio.sleep(0)
            running.remove(plan_item.resource_id)
            return ActivationResult(outcome=ActivationOutcome.SUCCEEDED)

        plan = planner.build_plan([item("a"), item("b"), item("c")], ActivationStrategy.PARALLEL)

        await planner.execute(plan, run_item)

        assert max(peak) == 3
