"""
CLI for DNS record edits through the change-list guard.
"""
import asyncio
import click
import json
import logging
from typing import Optional, Tuple

from ..config.factory import create_dns_service_from_global
from ..config.global_config_loader import load_global_config


def _run(coro_factory, global_config: Optional[str], log_level: str, action: str):
    """Load config, build the DNS service and run one coroutine against it"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    async def run():
        global_cfg = load_global_config(global_config) if global_config else load_global_config()
        service = create_dns_service_from_global(global_cfg)
        try:
            return await coro_factory(service)
        finally:
            await service.client.close()

    try:
        return asyncio.run(run())
    except Exception as e:
        logger.error(f"{action} failed: {e}", exc_info=True)
        raise click.ClickException(str(e))


@click.group()
def dns():
    """Edit DNS records one change list at a time"""
    pass


@dns.command()
@click.option('--zone', required=True, help='DNS zone')
@click.option('--name', required=True, help='Record name (FQDN)')
@click.option('--type', 'record_type', required=True, help='Record type (A, CNAME, TXT, ...)')
@click.option('--ttl', type=int, default=300, help='TTL in seconds')
@click.option('--rdata', multiple=True, required=True, help='Record data (repeatable)')
@click.option('--comment', default=None, help='Submit comment')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def upsert(zone: str, name: str, record_type: str, ttl: int, rdata: Tuple[str, ...],
           comment: Optional[str], global_config: str, log_level: str):
    """Create or replace a record set"""
    response = _run(
        lambda service: service.upsert_record(zone, name, record_type.upper(), ttl, list(rdata), comment),
        global_config, log_level, 'Upsert'
    )
    click.echo(f"✅ {name} {ttl} {record_type.upper()} {' '.join(rdata)}")
    if response.get('requestId'):
        click.echo(f"Request ID: {response['requestId']}")


@dns.command()
@click.option('--zone', required=True, help='DNS zone')
@click.option('--name', required=True, help='Record name (FQDN)')
@click.option('--type', 'record_type', required=True, help='Record type')
@click.option('--comment', default=None, help='Submit comment')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def delete(zone: str, name: str, record_type: str, comment: Optional[str],
           global_config: str, log_level: str):
    """Delete a record set"""
    response = _run(
        lambda service: service.delete_record(zone, name, record_type.upper(), comment),
        global_config, log_level, 'Delete'
    )
    click.echo(f"✅ Deleted {name} {record_type.upper()}")
    if response.get('requestId'):
        click.echo(f"Request ID: {response['requestId']}")


@dns.command('reset-changelist')
@click.option('--zone', required=True, help='DNS zone')
@click.option('--yes', '-y', is_flag=True, help='Do not ask for confirmation')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def reset_changelist(zone: str, yes: bool, global_config: str, log_level: str):
    """Discard the zone's pending change list and open an empty one"""
    if not yes and not click.confirm(f"Discard any pending changes for {zone}?"):
        click.echo("Aborted.")
        return

    change_list = _run(lambda service: service.guard.reset(zone), global_config, log_level, 'Reset')
    click.echo(f"✅ Fresh change list open for {change_list.zone}")


@dns.command('submit')
@click.option('--zone', required=True, help='DNS zone')
@click.option('--comment', default=None, help='Submit comment')
@click.option('--json', 'as_json', is_flag=True, help='Print the response as JSON')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def submit(zone: str, comment: Optional[str], as_json: bool, global_config: str, log_level: str):
    """Submit the zone's pending change list"""
    response = _run(
        lambda service: service.submit_change_list(zone, comment), global_config, log_level, 'Submit'
    )
    if as_json:
        click.echo(json.dumps(response, indent=2))
    else:
        click.echo(f"✅ Submitted pending changes for {zone}")


if __name__ == '__main__':
    dns()
