"""
Root command group for the edgedeploy CLI.
"""
import click

from .. import __version__
from .activation_cli import activation
from .dns_cli import dns


@click.group()
@click.version_option(__version__, prog_name='edgedeploy')
def cli():
    """edgedeploy - activate configuration versions and edit DNS zones safely"""
    pass


@cli.group()
def api():
    """HTTP API server commands"""
    pass


@api.command()
@click.option('--host', default=None, help='Host to bind to')
@click.option('--port', type=int, default=None, help='Port to bind to')
@click.option('--global-config', default=None, help='Path to global config YAML')
@click.option('--log-level', default='INFO', help='Log level')
def serve(host: str, port: int, global_config: str, log_level: str):
    """Start the HTTP API"""
    from ..api.main import run
    from ..config.global_config_loader import load_global_config

    global_cfg = load_global_config(global_config) if global_config else load_global_config()
    run(host or global_cfg.api.host, port or global_cfg.api.port, log_level)


cli.add_command(activation)
cli.add_command(dns)


def main():
    cli()


if __name__ == '__main__':
    main()
