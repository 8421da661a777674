"""A filter predicate matching parsed transactions by block and address patterns."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from chainflow.model import Point

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)

_HASH_LEN = 28
_MAINNET = 1


class AddressError(Exception):
    """Raised when address bytes can't be decoded or encoded."""


def _bech32_polymod(values: Sequence[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i, generator in enumerate(_BECH32_GENERATOR):
            if (top >> i) & 1:
                chk ^= generator
    return chk


def _bech32_hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _to_five_bits(data: bytes) -> list[int]:
    acc = 0
    bits = 0
    out: list[int] = []
    for byte in data:
        acc = ((acc << 8) | byte) & 0xFFF
        bits += 8
        while bits >= 5:
            bits -= 5
            out.append((acc >> bits) & 31)
    if bits:
        out.append((acc << (5 - bits)) & 31)
    return out


def bech32_encode(hrp: str, data: bytes) -> str:
    """Encode bytes as bech32 with the given human-readable part, without length limit."""
    if not hrp or any(not 33 <= ord(c) <= 126 for c in hrp):
        raise AddressError(f"invalid bech32 human-readable part: {hrp!r}")
    if hrp != hrp.lower():
        raise AddressError(f"bech32 human-readable part must be lower case: {hrp!r}")
    values = _to_five_bits(bytes(data))
    polymod = _bech32_polymod(_bech32_hrp_expand(hrp) + values + [0] * 6) ^ 1
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(_BECH32_CHARSET[v] for v in values + checksum)


class AddressKind(Enum):
    BYRON = "byron"
    SHELLEY = "shelley"
    STAKE = "stake"


def _check_pointer(tail: bytes) -> None:
    """Check that ``tail`` holds exactly three variable-length integers."""
    remaining = iter(tail)
    for _ in range(3):
        for byte in remaining:
            if not byte & 0x80:
                break
        else:
            raise AddressError("truncated pointer in address")
    if next(remaining, None) is not None:
        raise AddressError("trailing bytes after pointer in address")


@dataclass(frozen=True)
class Address:
    """A decoded chain address, kept as its raw bytes."""

    raw: bytes

    @classmethod
    def from_bytes(cls, raw: bytes) -> Address:
        raw = bytes(raw)
        if not raw:
            raise AddressError("empty address bytes")
        header_type = raw[0] >> 4
        if header_type == 8:
            return cls(raw)
        if header_type <= 3:
            expected: Optional[int] = 1 + 2 * _HASH_LEN
        elif header_type in (4, 5):
            if len(raw) <= 1 + _HASH_LEN:
                raise AddressError("pointer address is too short")
            _check_pointer(raw[1 + _HASH_LEN:])
            expected = None
        elif header_type in (6, 7, 14, 15):
            expected = 1 + _HASH_LEN
        else:
            raise AddressError(f"invalid address header type: {header_type}")
        if expected is not None and len(raw) != expected:
            raise AddressError(
                f"address of type {header_type} needs {expected} bytes, got {len(raw)}"
            )
        return cls(raw)

    @property
    def header_type(self) -> int:
        return self.raw[0] >> 4

    @property
    def network(self) -> int:
        return self.raw[0] & 0x0F

    @property
    def kind(self) -> AddressKind:
        if self.header_type == 8:
            return AddressKind.BYRON
        if self.header_type in (14, 15):
            return AddressKind.STAKE
        return AddressKind.SHELLEY

    def _require_shelley(self) -> None:
        if self.kind is not AddressKind.SHELLEY:
            raise AddressError(f"{self.kind.value} address has no payment part")

    def _payment_is_script(self) -> bool:
        return self.header_type % 2 == 1

    def _delegation_is_script(self) -> bool:
        return self.header_type in (2, 3)

    def has_script(self) -> bool:
        kind = self.kind
        if kind is AddressKind.BYRON:
            return False
        if kind is AddressKind.STAKE:
            return self.header_type == 15
        return self._payment_is_script() or self._delegation_is_script()

    def to_hex(self) -> str:
        return self.raw.hex()

    def _suffix(self) -> str:
        return "" if self.network == _MAINNET else "_test"

    def to_bech32(self) -> str:
        kind = self.kind
        if kind is AddressKind.BYRON:
            raise AddressError("byron addresses have no bech32 form")
        prefix = "stake" if kind is AddressKind.STAKE else "addr"
        return bech32_encode(prefix + self._suffix(), self.raw)

    def payment_hex(self) -> str:
        self._require_shelley()
        return self.raw[1 : 1 + _HASH_LEN].hex()

    def payment_bech32(self) -> str:
        self._require_shelley()
        hrp = "script" if self._payment_is_script() else "addr_vkh"
        return bech32_encode(hrp, self.raw[1 : 1 + _HASH_LEN])

    def _stake_bytes(self) -> Optional[bytes]:
        kind = self.kind
        if kind is AddressKind.STAKE:
            return self.raw
        if kind is AddressKind.SHELLEY and self.header_type <= 3:
            header = (0xF0 if self._delegation_is_script() else 0xE0) | self.network
            return bytes([header]) + self.raw[1 + _HASH_LEN :]
        return None

    def stake_hex(self) -> Optional[str]:
        """Hex of the stake address, or ``None`` when there is no stake hash."""
        stake = self._stake_bytes()
        return None if stake is None else stake.hex()

    def stake_bech32(self) -> Optional[str]:
        """Bech32 of the stake address, or ``None`` when there is no stake hash."""
        stake = self._stake_bytes()
        if stake is None:
            return None
        return bech32_encode("stake" + self._suffix(), stake)


class PatternKind(str, Enum):
    EXACT_HEX = "ExactHex"
    EXACT_BECH32 = "ExactBech32"
    PAYMENT_HEX = "PaymentHex"
    PAYMENT_BECH32 = "PaymentBech32"
    STAKE_HEX = "StakeHex"
    STAKE_BECH32 = "StakeBech32"


@dataclass(frozen=True)
class AddressPattern:
    kind: PatternKind
    value: str
    is_script: Optional[bool] = None

    def address_match(self, address: Address) -> bool:
        kind = address.kind
        if kind is AddressKind.BYRON:
            if self.kind in (PatternKind.EXACT_HEX, PatternKind.PAYMENT_HEX):
                return address.to_hex() == self.value
            return False

        if kind is AddressKind.STAKE:
            if self.kind is PatternKind.STAKE_HEX:
                return address.to_hex() == self.value
            if self.kind is PatternKind.STAKE_BECH32:
                return address.to_bech32() == self.value
            return False

        if self.kind is PatternKind.EXACT_HEX:
            return address.to_hex() == self.value
        if self.kind is PatternKind.EXACT_BECH32:
            return address.to_bech32() == self.value
        if self.kind is PatternKind.PAYMENT_HEX:
            return address.payment_hex() == self.value
        if self.kind is PatternKind.PAYMENT_BECH32:
            return address.payment_bech32() == self.value
        if self.kind is PatternKind.STAKE_HEX:
            stake = address.stake_hex()
            return stake is not None and stake == self.value
        stake = address.stake_bech32()
        return stake is not None and stake == self.value


@dataclass(frozen=True)
class BlockPattern:
    slot_before: Optional[int] = None
    slot_after: Optional[int] = None


@dataclass(frozen=True)
class ParsedTx:
    """The parts of a parsed transaction the patterns look at, as raw address bytes."""

    outputs: Sequence[bytes] = ()
    withdrawals: Sequence[bytes] = ()
    collateral_return: Optional[bytes] = None


def block_match(point: Point, block_pattern: BlockPattern) -> bool:
    """Whether the point's slot lies strictly between the pattern's bounds."""
    if block_pattern.slot_after is not None and point.slot <= block_pattern.slot_after:
        return False
    if block_pattern.slot_before is not None and point.slot >= block_pattern.slot_before:
        return False
    return True


def _output_match(tx: ParsedTx, pattern: AddressPattern) -> bool:
    if pattern.is_script:
        return False
    for raw in tx.outputs:
        address = Address.from_bytes(raw)
        if not address.has_script() and pattern.address_match(address):
            return True
    return False


def _withdrawal_match(tx: ParsedTx, pattern: AddressPattern) -> bool:
    return any(pattern.address_match(Address.from_bytes(raw)) for raw in tx.withdrawals)


def _collateral_match(tx: ParsedTx, pattern: AddressPattern) -> bool:
    if tx.collateral_return is None:
        return False
    return pattern.address_match(Address.from_bytes(tx.collateral_return))


class PredicateKind(str, Enum):
    BLOCK = "block"
    OUTPUT_ADDRESS = "output_address"
    WITHDRAWAL_ADDRESS = "withdrawal_address"
    COLLATERAL_ADDRESS = "collateral_address"
    NOT = "not"
    ANY_OF = "any_of"
    ALL_OF = "all_of"


_ADDRESS_MATCHERS = {
    PredicateKind.OUTPUT_ADDRESS: _output_match,
    PredicateKind.WITHDRAWAL_ADDRESS: _withdrawal_match,
    PredicateKind.COLLATERAL_ADDRESS: _collateral_match,
}


def _optional_int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
        raise ValueError(f"{key} must be a non-negative integer")
    return value


def _address_pattern_from_dict(data: Any) -> AddressPattern:
    if not isinstance(data, Mapping) or "value" not in data:
        raise ValueError("address pattern requires a 'value' key")
    value = data["value"]
    if not isinstance(value, Mapping) or len(value) != 1:
        raise ValueError("address pattern value must hold exactly one variant")
    ((name, text),) = value.items()
    try:
        kind = PatternKind(name)
    except ValueError as err:
        raise ValueError(f"unknown address pattern: {name!r}") from err
    if not isinstance(text, str):
        raise ValueError(f"address pattern {name} expects a string")
    is_script = data.get("is_script")
    if is_script is not None and not isinstance(is_script, bool):
        raise ValueError("is_script must be a boolean")
    return AddressPattern(kind, text, is_script)


@dataclass(frozen=True)
class Predicate:
    """A condition on a transaction at a point; composite kinds hold nested predicates."""

    kind: PredicateKind
    argument: Any

    def tx_match(self, point: Point, tx: ParsedTx) -> bool:
        kind = self.kind
        if kind is PredicateKind.BLOCK:
            return block_match(point, self.argument)
        if kind is PredicateKind.NOT:
            return not self.argument.tx_match(point, tx)
        if kind is PredicateKind.ANY_OF:
            return any(p.tx_match(point, tx) for p in self.argument)
        if kind is PredicateKind.ALL_OF:
            return all(p.tx_match(point, tx) for p in self.argument)
        return _ADDRESS_MATCHERS[kind](tx, self.argument)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Predicate:
        """Build a predicate from a single-key mapping such as ``{"block": {...}}``."""
        if not isinstance(data, Mapping) or len(data) != 1:
            raise ValueError("predicate definition must hold exactly one key")
        ((name, argument),) = data.items()
        try:
            kind = PredicateKind(name)
        except ValueError as err:
            raise ValueError(f"unknown predicate: {name!r}") from err

        if kind is PredicateKind.BLOCK:
            if not isinstance(argument, Mapping):
                raise ValueError("block predicate expects a mapping")
            return cls(
                kind,
                BlockPattern(
                    slot_before=_optional_int(argument, "slot_before"),
                    slot_after=_optional_int(argument, "slot_after"),
                ),
            )
        if kind is PredicateKind.NOT:
            return cls(kind, cls.from_dict(argument))
        if kind in (PredicateKind.ANY_OF, PredicateKind.ALL_OF):
            if not isinstance(argument, list):
                raise ValueError(f"predicate {kind.value} expects a list of predicates")
            return cls(kind, tuple(cls.from_dict(p) for p in argument))
        return cls(kind, _address_pattern_from_dict(argument))