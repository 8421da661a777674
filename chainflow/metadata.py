"""Mapping of transaction metadata, relays, withdrawals and rollbacks to v1 records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from chainflow.model import GenericEventData, MetadataRecord, Point, WithdrawalRecord

log = logging.getLogger(__name__)

_REWARD_ACCOUNT_PREFIX = "e1"


@dataclass(frozen=True)
class MetadatumMap:
    """A metadatum map; keys may be any metadatum, so entries are kept as pairs."""

    entries: tuple[tuple[Any, Any], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", tuple((k, v) for k, v in self.entries))

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


Metadatum = Union[int, bytes, str, list, MetadatumMap]


@dataclass(frozen=True)
class SingleHostAddr:
    """A pool relay given by raw IP address bytes."""

    port: Optional[int] = None
    ipv4: Optional[bytes] = None
    ipv6: Optional[bytes] = None


@dataclass(frozen=True)
class SingleHostName:
    """A pool relay given by a DNS name, optionally with a port."""

    port: Optional[int]
    host: str


@dataclass(frozen=True)
class MultiHostName:
    """A pool relay given by a DNS name resolving to several hosts."""

    host: str


Relay = Union[SingleHostAddr, SingleHostName, MultiHostName]


def _ip_string_from_bytes(raw: bytes) -> str:
    if len(raw) < 4:
        raise ValueError(f"relay address needs at least 4 bytes, got {len(raw)}")
    return ".".join(str(b) for b in raw[:4])


def relay_to_string(relay: Relay) -> str:
    """Render a pool relay as ``host[:port]``."""
    if isinstance(relay, SingleHostAddr):
        if relay.ipv4 is not None:
            ip = _ip_string_from_bytes(relay.ipv4)
        elif relay.ipv6 is not None:
            ip = _ip_string_from_bytes(relay.ipv6)
        else:
            ip = ""
        return ip if relay.port is None else f"{ip}:{relay.port}"
    if isinstance(relay, SingleHostName):
        return relay.host if relay.port is None else f"{relay.host}:{relay.port}"
    if isinstance(relay, MultiHostName):
        return relay.host
    raise TypeError(f"unknown relay type: {type(relay).__name__}")


def metadatum_to_string_key(datum: Metadatum) -> str:
    """Render a metadatum used as a map key; unsupported kinds become ``""``."""
    if isinstance(datum, bool):
        log.warning("unexpected metadatum type for label: %r", datum)
        return ""
    if isinstance(datum, int):
        return str(datum)
    if isinstance(datum, (bytes, bytearray)):
        return bytes(datum).hex()
    if isinstance(datum, str):
        return datum
    log.warning("unexpected metadatum type for label: %r", datum)
    return ""


def metadatum_to_json(source: Metadatum) -> Any:
    """Convert a metadatum to a JSON-compatible value."""
    if isinstance(source, bool):
        raise TypeError("booleans are not metadata")
    if isinstance(source, int):
        return source
    if isinstance(source, (bytes, bytearray)):
        return bytes(source).hex()
    if isinstance(source, str):
        return source
    if isinstance(source, list):
        return [metadatum_to_json(item) for item in source]
    if isinstance(source, MetadatumMap):
        return {metadatum_to_string_key(k): metadatum_to_json(v) for k, v in source}
    raise TypeError(f"unsupported metadatum type: {type(source).__name__}")


def to_metadata_record(label: int, value: Metadatum) -> MetadataRecord:
    """Build the metadata record for one label of a transaction."""
    record = MetadataRecord(label=str(label))
    if isinstance(value, bool):
        raise TypeError("booleans are not metadata")
    if isinstance(value, int):
        record.int_scalar = value
    elif isinstance(value, (bytes, bytearray)):
        record.bytes_hex = bytes(value).hex()
    elif isinstance(value, str):
        record.text_scalar = value
    elif isinstance(value, list):
        record.array_json = metadatum_to_json(value)
    elif isinstance(value, MetadatumMap):
        record.map_json = metadatum_to_json(value)
    else:
        raise TypeError(f"unsupported metadatum type: {type(value).__name__}")
    return record


def to_withdrawal_record(reward_account: bytes, coin: int) -> WithdrawalRecord:
    """Build a withdrawal record, dropping the mainnet reward-account header."""
    hex_account = bytes(reward_account).hex()
    if hex_account.startswith(_REWARD_ACCOUNT_PREFIX):
        hex_account = hex_account[len(_REWARD_ACCOUNT_PREFIX):]
    return WithdrawalRecord(reward_account=hex_account, coin=coin)


def rollback_from_point(point: Point) -> GenericEventData:
    """Build the rollback event data for a point; the origin rolls back to slot 0."""
    if point.is_origin:
        return GenericEventData("RollBack", {"block_slot": 0, "block_hash": ""})
    return GenericEventData("RollBack", {"block_slot": point.slot, "block_hash": point.hash})