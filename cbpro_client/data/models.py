"""
Data models for Coinbase Pro account resources.

Money values (balance, available, hold, amount) are kept as the exact
decimal strings the API returns. Use ``decimal()`` for arithmetic; they are
never converted to float.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Type, TypeVar


M = TypeVar("M", bound="Model")


def _require(data: Dict[str, Any], name: str) -> Any:
    if name not in data or data[name] is None:
        raise ValueError(f"missing required field '{name}'")
    return data[name]


def _text(value: Any, name: str) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValueError(f"field '{name}' must be a string, got {type(value).__name__}")
    return str(value)


def _money(value: Any, name: str) -> str:
    """Normalise a money field to its exact decimal string."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"field '{name}' must be a decimal string, got {type(value).__name__}")
    if isinstance(value, (int, Decimal)):
        return str(value)
    if not isinstance(value, str):
        raise ValueError(f"field '{name}' must be a decimal string, got {type(value).__name__}")
    try:
        Decimal(value)
    except InvalidOperation:
        raise ValueError(f"field '{name}' is not a decimal: {value!r}") from None
    return value


def _flag(value: Any, name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field '{name}' must be a boolean, got {type(value).__name__}")
    return value


def _is_decimal(value: str) -> bool:
    try:
        return Decimal(value).is_finite()
    except (InvalidOperation, TypeError):
        return False


class Model(ABC):
    """Serialisation helpers shared by all resource models."""

    MONEY_FIELDS: tuple = ()

    @classmethod
    @abstractmethod
    def from_dict(cls: Type[M], data: Dict[str, Any]) -> M:
        """Build an instance from a decoded JSON object; raise ValueError on a mismatch."""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls: Type[M], json_str: str) -> M:
        return cls.from_dict(json.loads(json_str, parse_float=Decimal))

    def decimal(self, name: str) -> Decimal:
        """Return money field ``name`` as a Decimal."""
        if name not in self.MONEY_FIELDS:
            raise ValueError(f"'{name}' is not a money field of {type(self).__name__}")
        return Decimal(getattr(self, name))

    def validate(self) -> bool:
        """Check that ids are present and money fields are finite decimals."""
        if not getattr(self, "id", None):
            return False
        return all(_is_decimal(getattr(self, name)) for name in self.MONEY_FIELDS)


@dataclass(frozen=True)
class ListAccount(Model):
    """
    A trading account as returned by ``GET /accounts``.

    {
        "id": "71452118-efc7-4cc4-8780-a5e22d4baa53",
        "currency": "BTC",
        "balance": "0.0000000000000000",
        "available": "0.0000000000000000",
        "hold": "0.0000000000000000",
        "profile_id": "75da88c5-05bf-4f54-bc85-5c775bd68254"
    }
    """

    id: str
    currency: str
    balance: str
    available: str
    hold: str
    profile_id: Optional[str] = None
    trading_enabled: Optional[bool] = None

    MONEY_FIELDS = ("balance", "available", "hold")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ListAccount":
        if not isinstance(data, dict):
            raise ValueError(f"account must be an object, got {type(data).__name__}")
        profile_id = data.get("profile_id")
        trading_enabled = data.get("trading_enabled")
        return cls(
            id=_text(_require(data, "id"), "id"),
            currency=_text(_require(data, "currency"), "currency"),
            balance=_money(_require(data, "balance"), "balance"),
            available=_money(_require(data, "available"), "available"),
            hold=_money(_require(data, "hold"), "hold"),
            profile_id=_text(profile_id, "profile_id") if profile_id is not None else None,
            trading_enabled=_flag(trading_enabled, "trading_enabled") if trading_enabled is not None else None,
        )


@dataclass(frozen=True)
class Account(Model):
    """
    A single account as returned by ``GET /accounts/{id}``.

    {
        "id": "a1b2c3d4",
        "balance": "1.100",
        "holds": "0.100",
        "available": "1.00",
        "currency": "USD"
    }
    """

    id: str
    balance: str
    holds: str
    available: str
    currency: str

    MONEY_FIELDS = ("balance", "holds", "available")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        if not isinstance(data, dict):
            raise ValueError(f"account must be an object, got {type(data).__name__}")
        # Some API versions name the field "hold" on this endpoint as well.
        holds = data.get("holds", data.get("hold"))
        if holds is None:
            raise ValueError("missing required field 'holds'")
        return cls(
            id=_text(_require(data, "id"), "id"),
            balance=_money(_require(data, "balance"), "balance"),
            holds=_money(holds, "holds"),
            available=_money(_require(data, "available"), "available"),
            currency=_text(_require(data, "currency"), "currency"),
        )


@dataclass(frozen=True)
class ActivityDetail:
    """Order, trade and product ids attached to a ledger entry from a trade."""

    order_id: Optional[str] = None
    trade_id: Optional[str] = None
    product_id: Optional[str] = None
    transfer_id: Optional[str] = None
    transfer_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ActivityDetail":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"details must be an object, got {type(data).__name__}")
        values = {}
        for f in fields(cls):
            value = data.get(f.name)
            values[f.name] = _text(value, f.name) if value is not None else None
        return cls(**values)


@dataclass(frozen=True)
class AccountActivity(Model):
    """
    A ledger entry: an increase or decrease of an account balance.

    ``type`` is one of transfer, match, fee, rebate or conversion.

    {
        "id": "100",
        "created_at": "2014-11-07T08:19:27.028459Z",
        "amount": "0.001",
        "balance": "239.669",
        "type": "fee",
        "details": {
            "order_id": "d50ec984-77a8-460a-b958-66f114b0de9b",
            "trade_id": "74",
            "product_id": "BTC-USD"
        }
    }
    """

    id: str
    created_at: str
    amount: str
    balance: str
    type: str
    details: ActivityDetail = ActivityDetail()

    MONEY_FIELDS = ("amount", "balance")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountActivity":
        if not isinstance(data, dict):
            raise ValueError(f"ledger entry must be an object, got {type(data).__name__}")
        return cls(
            id=_text(_require(data, "id"), "id"),
            created_at=_text(_require(data, "created_at"), "created_at"),
            amount=_money(_require(data, "amount"), "amount"),
            balance=_money(_require(data, "balance"), "balance"),
            type=_text(_require(data, "type"), "type"),
            details=ActivityDetail.from_dict(data.get("details")),
        )

    @property
    def is_trade(self) -> bool:
        return self.type in ("match", "fee")


@dataclass(frozen=True)
class AccountHold(Model):
    """
    A hold placed on an account for an open order or a pending withdrawal.

    {
        "id": "82dcd140-c3c7-4507-8de4-2c529cd1a28f",
        "account_id": "e0b3f39a-183d-453e-b754-0c13e5bab0b3",
        "created_at": "2014-11-06T10:34:47.123456Z",
        "updated_at": "2014-11-06T10:40:47.123456Z",
        "amount": "4.23",
        "type": "order",
        "ref": "0a205de4-dd35-4370-a285-fe8fc375a273"
    }
    """

    id: str
    account_id: str
    created_at: str
    amount: str
    type: str
    ref: str
    updated_at: Optional[str] = None

    MONEY_FIELDS = ("amount",)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountHold":
        if not isinstance(data, dict):
            raise ValueError(f"hold must be an object, got {type(data).__name__}")
        updated_at = data.get("updated_at")
        return cls(
            id=_text(_require(data, "id"), "id"),
            account_id=_text(_require(data, "account_id"), "account_id"),
            created_at=_text(_require(data, "created_at"), "created_at"),
            amount=_money(_require(data, "amount"), "amount"),
            type=_text(_require(data, "type"), "type"),
            ref=_text(_require(data, "ref"), "ref"),
            updated_at=_text(updated_at, "updated_at") if updated_at is not None else None,
        )
