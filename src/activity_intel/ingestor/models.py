"""Data models for the ingestor module.

Raw activity records arrive as loosely-typed dictionaries from the exchange
and wallet integrations. They are parsed into one frozen dataclass per
activity kind so downstream code can match on the variant instead of
probing optional fields.
"""

from __future__ import annotations

import contextlib
import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Literal

logger = logging.getLogger(__name__)

ActivityType = Literal["trade", "transfer", "internal"]

_BUY_SIDES = frozenset({"buy", "long"})
_SELL_SIDES = frozenset({"sell", "short"})


def to_decimal(value: Any) -> Decimal | None:
    """Parse a numeric field, returning None for missing or malformed input."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    with contextlib.suppress(InvalidOperation, ValueError, TypeError):
        parsed = Decimal(str(value))
        if parsed.is_finite():
            return parsed
    return None


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


_FALSE_STRINGS = frozenset({"false", "0", "no", "off", ""})


def _to_bool(value: Any, *, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _first(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None and value != "":
            return value
    return None


def _parse_timestamp_ms(raw: Any) -> int:
    """Parse an epoch-millisecond number or an ISO-8601 string into epoch ms.

    Numbers are taken as milliseconds unchanged, whatever their magnitude.
    """
    if isinstance(raw, bool) or raw is None:
        return 0
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        ts_f = raw
        if not math.isfinite(ts_f):
            return 0
        return int(ts_f)
    if isinstance(raw, str):
        text = raw.strip()
        with contextlib.suppress(ValueError):
            return _parse_timestamp_ms(float(text))
        with contextlib.suppress(ValueError):
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return int(parsed.timestamp() * 1000)
    return 0


@dataclass(frozen=True)
class Connection:
    """A configured exchange or wallet integration."""

    connection_id: str
    type: str
    name: str = ""
    display_name: str = ""
    chain: str = ""
    hardware_type: str = ""
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Connection:
        """Create a Connection from a dictionary."""
        return cls(
            connection_id=_to_str(data.get("id")),
            type=_to_str(data.get("type")),
            name=_to_str(data.get("name")),
            display_name=_to_str(_first(data, "displayName", "display_name")),
            chain=_to_str(data.get("chain")),
            hardware_type=_to_str(_first(data, "hardwareType", "hardware_type")),
            enabled=_to_bool(data.get("enabled"), default=True),
        )

    @property
    def label(self) -> str:
        """Return the human-readable label for this connection."""
        return self.display_name or self.name or self.connection_id

    @property
    def is_hardware(self) -> bool:
        return bool(self.hardware_type)


@dataclass(frozen=True)
class _ActivityBase:
    """Fields shared by every activity kind."""

    activity_type: ClassVar[ActivityType]

    activity_id: str
    timestamp_ms: int
    symbol: str
    amount: Decimal

    raw_type: str = ""
    side: str = ""
    price: Decimal | None = None

    # Fees
    fee: Decimal | None = None
    fee_usd: Decimal | None = None
    fee_asset: str = ""

    # Connection linkage
    connection_id: str = ""
    from_connection_id: str = ""
    to_connection_id: str = ""
    exchange: str = ""

    # Explicit counterparty labels carried on the record
    from_label: str = ""
    to_label: str = ""

    # Chain metadata
    address: str = ""
    tx_hash: str = ""
    network: str = ""
    status: str = ""

    extra: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> _ActivityBase:
        """Create an activity of this kind from a raw dictionary."""
        return cls(
            activity_id=_to_str(data.get("id")),
            timestamp_ms=_parse_timestamp_ms(_first(data, "timestamp", "time")),
            symbol=_to_str(_first(data, "symbol", "asset")),
            amount=to_decimal(data.get("amount")) or Decimal("0"),
            raw_type=_to_str(data.get("type")),
            side=_to_str(data.get("side")),
            price=to_decimal(data.get("price")),
            fee=to_decimal(data.get("fee")),
            fee_usd=to_decimal(_first(data, "feeUsd", "fee_usd")),
            fee_asset=_to_str(_first(data, "feeAsset", "fee_asset", "feeCurrency")),
            connection_id=_to_str(_first(data, "connectionId", "connection_id")),
            from_connection_id=_to_str(_first(data, "fromConnectionId", "from_connection_id")),
            to_connection_id=_to_str(_first(data, "toConnectionId", "to_connection_id")),
            exchange=_to_str(data.get("exchange")),
            from_label=_to_str(data.get("from")),
            to_label=_to_str(data.get("to")),
            address=_to_str(data.get("address")),
            tx_hash=_to_str(_first(data, "txHash", "tx_hash")),
            network=_to_str(_first(data, "network", "chain")),
            status=_to_str(data.get("status")),
            extra=dict(data),
        )

    @property
    def occurred_at(self) -> datetime:
        """Return the event time as a timezone-aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=UTC)

    @property
    def type_lower(self) -> str:
        return self.raw_type.lower()

    @property
    def side_lower(self) -> str:
        return self.side.lower()

    @property
    def is_deposit(self) -> bool:
        return "deposit" in self.type_lower

    @property
    def is_withdrawal(self) -> bool:
        return "withdraw" in self.type_lower

    @property
    def is_outbound(self) -> bool:
        """Return True if the record moves units out of the tracked position."""
        return self.is_withdrawal or "transfer_out" in self.type_lower


@dataclass(frozen=True)
class TradeActivity(_ActivityBase):
    """An executed trade; carries its own price."""

    activity_type: ClassVar[ActivityType] = "trade"

    @property
    def is_buy(self) -> bool:
        """Return True if this is a buy trade."""
        return self.side_lower in _BUY_SIDES or self.type_lower == "buy"

    @property
    def is_sell(self) -> bool:
        """Return True if this is a sell trade."""
        return self.side_lower in _SELL_SIDES or self.type_lower == "sell"


@dataclass(frozen=True)
class TransferActivity(_ActivityBase):
    """A deposit to or withdrawal from a connection."""

    activity_type: ClassVar[ActivityType] = "transfer"


@dataclass(frozen=True)
class InternalActivity(_ActivityBase):
    """A move between two of the user's own connections."""

    activity_type: ClassVar[ActivityType] = "internal"


Activity = TradeActivity | TransferActivity | InternalActivity

_ACTIVITY_CLASSES: dict[str, type[_ActivityBase]] = {
    "trade": TradeActivity,
    "transfer": TransferActivity,
    "internal": InternalActivity,
}


def parse_activity(data: dict[str, Any]) -> Activity:
    """Parse a raw activity dictionary into its tagged variant.

    Records without a recognised ``activityType`` are treated as trades
    when they carry a side or price, otherwise as transfers.

    Args:
        data: Raw activity payload from the ingestion layer.

    Returns:
        TradeActivity, TransferActivity or InternalActivity.
    """
    kind = _to_str(_first(data, "activityType", "activity_type")).lower()
    cls = _ACTIVITY_CLASSES.get(kind)
    if cls is None:
        cls = TradeActivity if (data.get("side") or to_decimal(data.get("price"))) else TransferActivity
        logger.debug(
            "Activity %s has unknown activityType %r, parsed as %s",
            data.get("id"),
            kind,
            cls.activity_type,
        )
    return cls.from_dict(data)  # type: ignore[return-value]


def coerce_activity(item: Activity | dict[str, Any]) -> Activity:
    """Return ``item`` unchanged if already parsed, else parse it."""
    if isinstance(item, (TradeActivity, TransferActivity, InternalActivity)):
        return item
    return parse_activity(item)


def coerce_connection(item: Connection | dict[str, Any]) -> Connection:
    """Return ``item`` unchanged if already parsed, else parse it."""
    if isinstance(item, Connection):
        return item
    return Connection.from_dict(item)
