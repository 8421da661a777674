"""Computation of a (probably) unique id for each v1 event."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

from chainflow.model import Event, GenericEventData

log = logging.getLogger(__name__)

_MASK64 = (1 << 64) - 1
_C1 = 0x87C37B91114253D5
_C2 = 0x4CF5AD432745937F


class FingerprintError(Exception):
    """Raised when an event lacks what its fingerprint is built from."""


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) | (value >> (64 - shift))) & _MASK64


def _fmix(k: int) -> int:
    k ^= k >> 33
    k = (k * 0xFF51AFD7ED558CCD) & _MASK64
    k ^= k >> 33
    k = (k * 0xC4CEB9FE1A85EC53) & _MASK64
    k ^= k >> 33
    return k


def _mix_k1(k1: int) -> int:
    k1 = (k1 * _C1) & _MASK64
    k1 = _rotl(k1, 31)
    return (k1 * _C2) & _MASK64


def _mix_k2(k2: int) -> int:
    k2 = (k2 * _C2) & _MASK64
    k2 = _rotl(k2, 33)
    return (k2 * _C1) & _MASK64


def murmur3_x64_128(data: bytes, seed: int = 0) -> int:
    """MurmurHash3 x64 128-bit; the second half forms the high 64 bits."""
    if not 0 <= seed < 2**32:
        raise ValueError(f"seed must fit in 32 bits: {seed}")
    data = bytes(data)
    h1 = h2 = seed
    length = len(data)
    full = length - length % 16

    for offset in range(0, full, 16):
        k1 = int.from_bytes(data[offset : offset + 8], "little")
        k2 = int.from_bytes(data[offset + 8 : offset + 16], "little")

        h1 ^= _mix_k1(k1)
        h1 = _rotl(h1, 27)
        h1 = (h1 + h2) & _MASK64
        h1 = (h1 * 5 + 0x52DCE729) & _MASK64

        h2 ^= _mix_k2(k2)
        h2 = _rotl(h2, 31)
        h2 = (h2 + h1) & _MASK64
        h2 = (h2 * 5 + 0x38495AB5) & _MASK64

    tail = data[full:]
    if len(tail) > 8:
        h2 ^= _mix_k2(int.from_bytes(tail[8:], "little"))
    if tail:
        h1 ^= _mix_k1(int.from_bytes(tail[:8], "little"))

    h1 ^= length
    h2 ^= length
    h1 = (h1 + h2) & _MASK64
    h2 = (h2 + h1) & _MASK64
    h1 = _fmix(h1)
    h2 = _fmix(h2)
    h1 = (h1 + h2) & _MASK64
    h2 = (h2 + h1) & _MASK64

    return (h2 << 64) | h1


_TX = ("ctx", "tx_hash")
_CERT = (_TX, ("ctx_str", "certificate_idx"))

# variant -> (prefix, components hashed in order)
_SPECS: dict[str, tuple[str, tuple[tuple[str, str], ...]]] = {
    "Block": ("blck", (("ctx", "block_hash"),)),
    "BlockEnd": ("blckend", (("ctx", "block_hash"),)),
    "Transaction": ("tx", (_TX,)),
    "TransactionEnd": ("txend", (_TX,)),
    "TxInput": ("stxi", (_TX, ("ctx_str", "input_idx"))),
    "TxOutput": ("utxo", (_TX, ("ctx_str", "output_idx"))),
    "OutputAsset": (
        "asst",
        (_TX, ("ctx_str", "output_idx"), ("field", "policy"), ("field", "asset")),
    ),
    "Metadata": ("meta", (_TX, ("field", "label"))),
    "Mint": ("mint", (_TX, ("field", "policy"), ("field", "asset"))),
    "Collateral": ("coll", (("field", "tx_id"), ("field_str", "index"))),
    "NativeScript": ("scpt", (_TX, ("field", "policy_id"))),
    "PlutusScript": ("plut", (_TX,)),
    "PlutusWitness": ("witp", (_TX, ("field", "script_hash"))),
    "NativeWitness": ("witn", (_TX, ("field", "policy_id"))),
    "VKeyWitness": ("witv", (_TX, ("field", "vkey_hex"))),
    "PlutusRedeemer": ("rdmr", (_TX, ("field_str", "input_idx"))),
    "PlutusDatum": ("dtum", (_TX, ("field", "datum_hash"))),
    "StakeRegistration": ("skre", _CERT),
    "StakeDeregistration": ("skde", _CERT),
    "StakeDelegation": ("dele", _CERT),
    "PoolRegistration": ("pool", _CERT),
    "PoolRetirement": ("reti", _CERT),
    "GenesisKeyDelegation": ("gene", _CERT),
    "MoveInstantaneousRewardsCert": ("move", _CERT),
    "RollBack": ("back", (("field", "block_hash"),)),
    "CIP25Asset": ("cip25", (_TX, ("field", "policy"), ("field", "asset"))),
    "CIP15Asset": ("cip15", (_TX, ("field", "voting_key"), ("field_str", "nonce"))),
}


def _data_field(data: Any, name: str) -> Any:
    if isinstance(data, GenericEventData):
        try:
            return data.fields[name]
        except KeyError as err:
            raise FingerprintError(f"event data lacks field {name!r}") from err
    try:
        return getattr(data, name)
    except AttributeError as err:
        raise FingerprintError(f"event data lacks field {name!r}") from err


def _as_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise FingerprintError(f"fingerprint component is not text or bytes: {value!r}")


def _component(event: Event, kind: str, name: str) -> bytes:
    if kind in ("ctx", "ctx_str"):
        value = getattr(event.context, name)
        if value is None:
            raise FingerprintError("fingerprint component not available")
        return _as_bytes(value) if kind == "ctx" else str(value).encode("utf-8")
    value = _data_field(event.data, name)
    return _as_bytes(value) if kind == "field" else str(value).encode("utf-8")


def build_fingerprint(event: Event, seed: int = 0) -> str:
    """Return ``slot.prefix.hash`` identifying the event."""
    variant = event.variant
    try:
        prefix, components = _SPECS[variant]
    except KeyError as err:
        raise FingerprintError(f"unknown event variant: {variant!r}") from err

    hasheable = b"".join(_component(event, kind, name) for kind, name in components)

    slot: Optional[int]
    if variant == "RollBack":
        slot = _data_field(event.data, "block_slot")
    else:
        slot = event.context.slot
    if slot is None:
        raise FingerprintError("missing slot value")

    return f"{slot}.{prefix}.{murmur3_x64_128(hasheable, seed)}"


def apply_fingerprints(events: Iterable[Event], seed: int = 0) -> Iterator[Event]:
    """Yield each event with its fingerprint set; failures are logged and skipped."""
    for event in events:
        try:
            fingerprint = build_fingerprint(event, seed)
        except FingerprintError as err:
            log.warning("failed to compute fingerprint: %s, event: %r", err, event)
        else:
            log.debug("computed fingerprint %s", fingerprint)
            event.fingerprint = fingerprint
        yield event