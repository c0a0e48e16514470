"""
Coinbase Pro REST client.

Signed, rate-limited access to the account endpoints (accounts, ledger,
holds) with cursor pagination.

Usage:
    from cbpro_client import CoinbaseProClient

    with CoinbaseProClient(key, secret, passphrase, sandbox=True) as client:
        for account in client.list_accounts():
            print(account.currency, account.available)
        for entry in client.get_account_history(account_id, limit=100):
            print(entry.created_at, entry.amount)
"""

__version__ = "0.1.0"

from .api import (
    CoinbaseProClient,
    Credentials,
    CoinbaseProError,
    InvalidCredential,
    NetworkError,
    RateLimited,
    APIError,
    DecodeError,
    RateLimitPolicy,
)
from .data import ListAccount, Account, AccountActivity, ActivityDetail, AccountHold

__all__ = [
    'CoinbaseProClient',
    'Credentials',
    'CoinbaseProError',
    'InvalidCredential',
    'NetworkError',
    'RateLimited',
    'APIError',
    'DecodeError',
    'RateLimitPolicy',
    'ListAccount',
    'Account',
    'AccountActivity',
    'ActivityDetail',
    'AccountHold',
]
