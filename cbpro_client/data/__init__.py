"""Resource models returned by the Coinbase Pro client."""

from .models import (
    Model,
    ListAccount,
    Account,
    AccountActivity,
    ActivityDetail,
    AccountHold,
)

__all__ = [
    'Model',
    'ListAccount',
    'Account',
    'AccountActivity',
    'ActivityDetail',
    'AccountHold',
]
