"""
Main entry point for the ``cbpro`` command.

Reads account data from Coinbase Pro and prints it as JSON.
Credentials come from CBPRO_API_KEY / CBPRO_API_SECRET / CBPRO_API_PASSPHRASE
or from an encrypted credentials file (password in CREDENTIAL_PASSWORD).
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from .api.auth import CredentialManager, Credentials
from .api.client import CoinbaseProClient
from .api.errors import CoinbaseProError, InvalidCredential
from .config.cli import config
from .config.manager import ConfigManager, ConfigValidationError
from .logging import get_logger, initialize_from_config


def _load_config(config_path: str) -> ConfigManager:
    manager = ConfigManager(config_path)
    if Path(config_path).exists():
        manager.load_config()
    else:
        manager.load_defaults()
    return manager


def _load_credentials(credentials_file: Optional[str]) -> Credentials:
    if credentials_file:
        return CredentialManager().load(credentials_file)
    return Credentials.from_env()


def _fail(message: str) -> None:
    click.echo(click.style(f"✗ {message}", fg='red'), err=True)
    sys.exit(1)


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option('--config-path', '-c', default='config/default.yaml', help='Path to configuration file')
@click.option('--credentials-file', default=None, help='Encrypted credentials file')
@click.option('--sandbox/--live', default=None, help='Override the configured environment')
@click.pass_context
def cli(ctx, config_path: str, credentials_file: Optional[str], sandbox: Optional[bool]):
    """Coinbase Pro account client."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['credentials_file'] = credentials_file
    ctx.obj['sandbox'] = sandbox


cli.add_command(config)


def _client(ctx) -> CoinbaseProClient:
    try:
        manager = _load_config(ctx.obj['config_path'])
        credentials = _load_credentials(ctx.obj['credentials_file'])
    except ConfigValidationError as e:
        _fail(f"Invalid configuration: {e.message}")
    except InvalidCredential as e:
        _fail(f"Invalid credentials: {e}")

    initialize_from_config(manager.get_section('logging'),
                           redact=[credentials.secret, credentials.passphrase])
    kwargs = {}
    if ctx.obj['sandbox'] is not None:
        kwargs['sandbox'] = ctx.obj['sandbox']
    return CoinbaseProClient.from_config(manager, credentials, **kwargs)


@cli.group()
def credentials():
    """Encrypted credential storage."""
    pass


@credentials.command('store')
@click.option('--output', '-o', default='credentials.json', help='Path of the encrypted file')
@click.option('--key', prompt=True, help='API key')
@click.option('--secret', prompt=True, hide_input=True, help='API secret (base64)')
@click.option('--passphrase', prompt=True, hide_input=True, help='API passphrase')
def store_credentials(output: str, key: str, secret: str, passphrase: str):
    """Encrypt API credentials and write them to a file."""
    try:
        CredentialManager().store(Credentials(key, secret, passphrase), output)
    except InvalidCredential as e:
        _fail(str(e))
    click.echo(click.style(f"✓ Credentials stored to {output}", fg='green'))


@credentials.command('check')
@click.argument('path', default='credentials.json')
def check_credentials(path: str):
    """Check that an encrypted credentials file can be decrypted."""
    try:
        creds = CredentialManager().load(path)
    except InvalidCredential as e:
        _fail(str(e))
    click.echo(click.style(f"✓ Credentials for key {creds.key} are readable", fg='green'))


@cli.group()
def accounts():
    """Account, ledger and hold queries."""
    pass


@accounts.command('list')
@click.pass_context
def list_accounts(ctx):
    """List the trading accounts of the profile."""
    with _client(ctx) as client:
        try:
            _echo_json([account.to_dict() for account in client.list_accounts()])
        except CoinbaseProError as e:
            _fail(f"{e.kind}: {e}")


@accounts.command('get')
@click.argument('account_id')
@click.pass_context
def get_account(ctx, account_id: str):
    """Show a single account."""
    with _client(ctx) as client:
        try:
            _echo_json(client.get_account(account_id).to_dict())
        except CoinbaseProError as e:
            _fail(f"{e.kind}: {e}")


def _echo_paginated(paginator, max_items: Optional[int]) -> None:
    logger = get_logger(__name__)
    items = []
    try:
        for item in paginator:
            items.append(item.to_dict())
            if max_items is not None and len(items) >= max_items:
                break
    except CoinbaseProError as e:
        # Pages already received are printed; the failure still sets the exit code.
        logger.error(f"Pagination stopped after {len(items)} items: {e}")
        _echo_json(items)
        _fail(f"{e.kind}: {e}")
    _echo_json(items)


@accounts.command('ledger')
@click.argument('account_id')
@click.option('--limit', type=click.IntRange(1, 100), default=None, help='Page size')
@click.option('--max-items', type=click.IntRange(min=1), default=None, help='Stop after this many entries')
@click.pass_context
def account_ledger(ctx, account_id: str, limit: Optional[int], max_items: Optional[int]):
    """List account activity, latest first."""
    with _client(ctx) as client:
        _echo_paginated(client.get_account_history(account_id, limit=limit), max_items)


@accounts.command('holds')
@click.argument('account_id')
@click.option('--limit', type=click.IntRange(1, 100), default=None, help='Page size')
@click.option('--max-items', type=click.IntRange(min=1), default=None, help='Stop after this many holds')
@click.pass_context
def account_holds(ctx, account_id: str, limit: Optional[int], max_items: Optional[int]):
    """List holds of an account."""
    with _client(ctx) as client:
        _echo_paginated(client.get_account_holds(account_id, limit=limit), max_items)


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
