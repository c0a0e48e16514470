"""Command-line interface for configuration management."""

import click
import sys

from .manager import ConfigManager, ConfigValidationError


@click.group()
def config():
    """Configuration management commands."""
    pass


@config.command()
@click.option('--config-path', '-c', default='config/default.yaml', help='Path to configuration file')
def validate(config_path: str):
    """Validate a configuration file."""
    click.echo(f"Validating configuration: {config_path}")

    try:
        manager = ConfigManager(config_path)
        manager.load_config()
    except ConfigValidationError as e:
        click.echo(click.style("✗ Configuration validation failed:", fg='red'))
        click.echo(f"  Error: {e.message}")
        if e.field_path:
            click.echo(f"  Field: {e.field_path}")
        if e.expected_type and e.actual_value is not None:
            click.echo(f"  Expected: {e.expected_type}, Got: {e.actual_value}")
        sys.exit(1)

    click.echo(click.style("✓ Configuration is valid", fg='green'))

    config_data = manager.get_config()
    api = config_data['api']
    click.echo("\nConfiguration Summary:")
    click.echo(f"  Environment: {'sandbox' if api['sandbox'] else 'live'}")
    click.echo(f"  Base URL: {api['sandbox_url'] if api['sandbox'] else api['base_url']}")
    click.echo(f"  Timeout: {api['timeout']}s")

    rate_limits = config_data['rate_limits']
    click.echo(f"  Rate limit policy: {rate_limits['policy']}")
    for name, spec in sorted(rate_limits['classes'].items()):
        click.echo(f"    {name}: {spec['rate']}/s, burst {spec['burst']}")


@config.command()
@click.option('--config-path', '-c', default='config/default.yaml', help='Path to configuration file')
def show(config_path: str):
    """Show the effective configuration, including environment overrides."""
    try:
        manager = ConfigManager(config_path)
        config_data = manager.load_config()
    except ConfigValidationError as e:
        click.echo(click.style(f"✗ {e.message}", fg='red'), err=True)
        sys.exit(1)

    for section, values in config_data.items():
        if not isinstance(values, dict):
            click.echo(f"{section}: {values}")
            continue
        click.echo(f"[{section}]")
        for key, value in values.items():
            click.echo(f"  {key}: {value}")
