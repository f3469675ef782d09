"""
CLI for validating, activating and monitoring configuration versions.
Thin wrapper over ActivationService.
"""
import asyncio
import click
import json
import logging
from typing import Dict, List, Optional, Tuple

from ..config.factory import create_activation_service_from_global
from ..config.global_config_loader import load_global_config
from ..core.enums import ActivationOutcome, ActivationStrategy, Network
from ..core.models import ActivationProgress, ActivationRequest, PlanItem, ValidationResult


NETWORK_CHOICE = click.Choice([n.value for n in Network], case_sensitive=False)
STRATEGY_CHOICE = click.Choice([s.value for s in ActivationStrategy], case_sensitive=False)

OUTCOME_ICONS = {
    ActivationOutcome.SUCCEEDED: '✅',
    ActivationOutcome.FAILED: '❌',
    ActivationOutcome.TIMED_OUT: '⏱️',
    ActivationOutcome.SUBMITTED: '🚀',
    ActivationOutcome.BLOCKED: '🚫',
}


def _setup_logging(log_level: str):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _load_config(global_config: Optional[str]):
    if global_config:
        return load_global_config(global_config)
    return load_global_config()


def _echo_progress(progress: ActivationProgress):
    zone = f" [{progress.current_zone}]" if progress.current_zone else ""
    click.echo(
        f"  {progress.percent_complete:>3}% {progress.state.value}{zone} - {progress.status_message} "
        f"(~{int(progress.estimated_time_remaining // 60)} min remaining)"
    )


def _echo_validation(result: ValidationResult):
    click.echo(f"\n{'='*80}")
    click.echo(f"{'✅ Validation Passed' if result.valid else '❌ Validation Failed'}")
    click.echo(f"{'='*80}")
    click.echo(f"Resource: {result.resource_name or result.resource_id} v{result.version} -> {result.network.value}")
    for key, value in result.context.items():
        click.echo(f"{key.capitalize()}: {value}")

    if result.errors:
        click.echo(f"\nErrors ({len(result.errors)}):")
        for error in result.errors:
            click.echo(f"  [{error.severity.value}] {error.type}: {error.detail}")
            if error.resolution:
                click.echo(f"      -> {error.resolution}")

    if result.warnings:
        click.echo(f"\nWarnings ({len(result.warnings)}):")
        for warning in result.warnings:
            click.echo(f"  [{warning.severity.value}] {warning.type}: {warning.detail}")

    if result.preflight_checks:
        click.echo("\nPreflight checks:")
        for check in result.preflight_checks:
            click.echo(f"  {check.status.value:<8} {check.name}: {check.message}")

    if result.suggestions:
        click.echo("\nSuggestions:")
        for suggestion in result.suggestions:
            click.echo(f"  - {suggestion}")
    click.echo(f"{'='*80}\n")


def parse_plan_item(value: str) -> PlanItem:
    """RESOURCE:NETWORK[:VERSION]"""
    parts = value.split(':')
    if len(parts) not in (2, 3) or not parts[0]:
        raise click.BadParameter(f"Expected RESOURCE:NETWORK[:VERSION], got '{value}'")
    try:
        network = Network(parts[1].upper())
        version = int(parts[2]) if len(parts) == 3 and parts[2] else None
    except ValueError:
        raise click.BadParameter(f"Invalid plan item '{value}'")
    return PlanItem(resource_id=parts[0], network=network, version=version)


def parse_dependencies(values: Tuple[str, ...]) -> Dict[str, List[str]]:
    """RESOURCE=PREREQ[,PREREQ...]"""
    dependencies: Dict[str, List[str]] = {}
    for value in values:
        resource, sep, prerequisites = value.partition('=')
        if not sep or not resource:
            raise click.BadParameter(f"Expected RESOURCE=PREREQ[,PREREQ...], got '{value}'")
        dependencies.setdefault(resource, []).extend(
            p.strip() for p in prerequisites.split(',') if p.strip()
        )
    return dependencies


@click.group()
def activation():
    """Validate, activate and monitor configuration versions"""
    pass


@activation.command()
@click.option('--resource', 'resource_id', required=True, help='Resource (property) id')
@click.option('--network', type=NETWORK_CHOICE, default='STAGING', help='Target network')
@click.option('--version', type=int, default=None, help='Version (defaults to latest)')
@click.option('--strict', is_flag=True, help='Treat any non-passing preflight check as an error')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='WARNING', help='Log level')
def validate(resource_id: str, network: str, version: Optional[int], strict: bool,
             as_json: bool, global_config: str, log_level: str):
    """Run preflight validation without activating"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    async def run_validate():
        global_cfg = _load_config(global_config)
        async with create_activation_service_from_global(global_cfg) as service:
            return await service.validate(
                resource_id,
                Network(network.upper()),
                version,
                strict or global_cfg.activation.require_all_preflight_checks,
            )

    try:
        result = asyncio.run(run_validate())
    except Exception as e:
        logger.error(f"Validation failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _echo_validation(result)

    if not result.valid:
        raise click.exceptions.Exit(1)


@activation.command()
@click.option('--resource', 'resource_id', required=True, help='Resource (property) id')
@click.option('--network', type=NETWORK_CHOICE, default='STAGING', help='Target network')
@click.option('--version', type=int, default=None, help='Version (defaults to latest)')
@click.option('--note', default=None, help='Activation note')
@click.option('--email', 'emails', multiple=True, help='Notification recipient (repeatable)')
@click.option('--no-validate', is_flag=True, help='Skip preflight validation')
@click.option('--no-wait', is_flag=True, help='Return right after submission')
@click.option('--max-wait', type=float, default=None, help='Seconds to wait for completion')
@click.option('--rollback', is_flag=True, help='Roll back to the last good version on failure')
@click.option('--strict', is_flag=True, help='Treat any non-passing preflight check as an error')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def activate(resource_id: str, network: str, version: Optional[int], note: Optional[str],
             emails: Tuple[str, ...], no_validate: bool, no_wait: bool, max_wait: Optional[float],
             rollback: bool, strict: bool, as_json: bool, global_config: str, log_level: str):
    """Activate a version and follow it to completion"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    async def run_activate():
        global_cfg = _load_config(global_config)
        defaults = global_cfg.activation

        async with create_activation_service_from_global(global_cfg) as service:
            request = ActivationRequest(
                resource_id=resource_id,
                version=await service.resolve_version(resource_id, version),
                network=Network(network.upper()),
                note=note,
                notify_emails=tuple(emails),
            )
            if not as_json:
                click.echo(f"Activating {resource_id} v{request.version} on {request.network.value}...")

            return await service.activate(
                request,
                validate_first=defaults.validate_first and not no_validate,
                wait=not no_wait,
                max_wait=max_wait,
                rollback_on_failure=rollback or defaults.rollback_on_failure,
                progress_callback=None if as_json else _echo_progress,
                require_all_preflight_checks=strict or defaults.require_all_preflight_checks,
            )

    try:
        result = asyncio.run(run_activate())
    except Exception as e:
        logger.error(f"Activation failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        if result.validation and not result.validation.valid:
            _echo_validation(result.validation)
        click.echo(f"{OUTCOME_ICONS[result.outcome]} {result.outcome.value.upper()}: {result.message}")
        if result.activation_id:
            click.echo(f"Activation ID: {result.activation_id}")
        if result.rollback_activation_id:
            click.echo(f"Rollback activation ID: {result.rollback_activation_id}")
        if result.outcome == ActivationOutcome.TIMED_OUT:
            click.echo(f"Resume with: edgedeploy activation wait --resource {resource_id} "
                       f"--activation-id {result.activation_id}")

    if result.outcome not in (ActivationOutcome.SUCCEEDED, ActivationOutcome.SUBMITTED):
        raise click.exceptions.Exit(1)


@activation.command()
@click.option('--resource', 'resource_id', required=True, help='Resource (property) id')
@click.option('--activation-id', required=True, help='Activation id')
@click.option('--json', 'as_json', is_flag=True, help='Print the result as JSON')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='WARNING', help='Log level')
def status(resource_id: str, activation_id: str, as_json: bool, global_config: str, log_level: str):
    """Show the current progress of an activation"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    async def run_status():
        global_cfg = _load_config(global_config)
        async with create_activation_service_from_global(global_cfg) as service:
            return await service.get_progress(resource_id, activation_id)

    try:
        progress = asyncio.run(run_status())
    except Exception as e:
        logger.error(f"Status check failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(progress.to_dict(), indent=2))
    else:
        click.echo(f"Activation {activation_id} ({progress.network.value}, v{progress.version})")
        _echo_progress(progress)
        for error in progress.errors:
            click.echo(f"  ERROR {error.type}: {error.detail}")


@activation.command()
@click.option('--resource', 'resource_id', required=True, help='Resource (property) id')
@click.option('--activation-id', required=True, help='Activation id')
@click.option('--max-wait', type=float, default=None, help='Seconds to wait for completion')
@click.option('--rollback', is_flag=True, help='Roll back to the last good version on failure')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def wait(resource_id: str, activation_id: str, max_wait: Optional[float], rollback: bool,
         global_config: str, log_level: str):
    """Resume waiting for an activation"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    async def run_wait():
        global_cfg = _load_config(global_config)
        async with create_activation_service_from_global(global_cfg) as service:
            return await service.wait(
                resource_id,
                activation_id,
                max_wait=max_wait,
                rollback_on_failure=rollback,
                progress_callback=_echo_progress,
            )

    try:
        result = asyncio.run(run_wait())
    except Exception as e:
        logger.error(f"Wait failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(f"{OUTCOME_ICONS[result.outcome]} {result.outcome.value.upper()}: {result.message}")
    if result.outcome != ActivationOutcome.SUCCEEDED:
        raise click.exceptions.Exit(1)


@activation.command()
@click.option('--resource', 'resource_id', required=True, help='Resource (property) id')
@click.option('--activation-id', required=True, help='Activation id')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def cancel(resource_id: str, activation_id: str, yes: bool, global_config: str, log_level: str):
    """Cancel a PENDING activation"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    if not yes and not click.confirm(f"Cancel activation {activation_id}?"):
        click.echo("Aborted.")
        return

    async def run_cancel():
        global_cfg = _load_config(global_config)
        async with create_activation_service_from_global(global_cfg) as service:
            return await service.cancel(resource_id, activation_id)

    try:
        record = asyncio.run(run_cancel())
    except Exception as e:
        logger.error(f"Cancel failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(f"✅ Cancelled activation {activation_id} (v{record.version} on {record.network.value})")


@activation.command()
@click.option('--item', 'items', multiple=True, required=True,
              help='RESOURCE:NETWORK[:VERSION] (repeatable)')
@click.option('--strategy', type=STRATEGY_CHOICE, default='SEQUENTIAL', help='Execution strategy')
@click.option('--depends', multiple=True, help='RESOURCE=PREREQ[,PREREQ...] (repeatable)')
@click.option('--execute', is_flag=True, help='Run the plan instead of only printing it')
@click.option('--continue-on-error', is_flag=True, help='Keep going after a failed item')
@click.option('--no-validate', is_flag=True, help='Skip preflight validation')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def plan(items: Tuple[str, ...], strategy: str, depends: Tuple[str, ...], execute: bool,
         continue_on_error: bool, no_validate: bool, global_config: str, log_level: str):
    """Plan (and optionally execute) a multi-resource rollout"""
    _setup_logging(log_level)
    logger = logging.getLogger(__name__)

    plan_items = [parse_plan_item(value) for value in items]
    dependencies = parse_dependencies(depends)

    async def run_plan():
        global_cfg = _load_config(global_config)
        async with create_activation_service_from_global(global_cfg) as service:
            activation_plan = service.plan(
                plan_items, ActivationStrategy(strategy.upper()), dependencies
            )
            click.echo(f"\nPlan ({activation_plan.strategy.value}, ~{activation_plan.estimated_minutes} min):")
            for index, step in enumerate(activation_plan.steps, start=1):
                labels = ', '.join(
                    f"{i.resource_id}@{i.network.value}" + (f" v{i.version}" if i.version else '')
                    for i in step
                )
                click.echo(f"  {index}. {labels}")

            if not execute:
                return None

            return await service.execute_plan(
                activation_plan,
                validate_first=global_cfg.activation.validate_first and not no_validate,
                rollback_on_failure=global_cfg.activation.rollback_on_failure,
                continue_on_error=continue_on_error,
            )

    try:
        outcomes = asyncio.run(run_plan())
    except Exception as e:
        logger.error(f"Plan failed: {e}", exc_info=True)
        raise click.ClickException(str(e))

    if outcomes is None:
        return

    click.echo("\nResults:")
    for outcome in outcomes:
        label = f"{outcome.item.resource_id}@{outcome.item.network.value}"
        if outcome.skipped:
            click.echo(f"  ⏭️  {label}: skipped")
        elif outcome.error:
            click.echo(f"  ❌ {label}: {outcome.error}")
        else:
            click.echo(f"  {OUTCOME_ICONS[outcome.result.outcome]} {label}: {outcome.result.outcome.value}")

    if not all(o.succeeded for o in outcomes):
        raise click.exceptions.Exit(1)


if __name__ == '__main__':
    activation()
