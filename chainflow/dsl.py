"""A predicate language selecting which v1 events pass a filter."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Mapping

from chainflow.model import (
    CIP25AssetRecord,
    Event,
    MetadataRecord,
    MintRecord,
    NativeWitnessRecord,
    OutputAssetRecord,
    PlutusWitnessRecord,
    TransactionRecord,
    TxOutputRecord,
    VKeyWitnessRecord,
)


def relaxed_str_matches(a: str, b: str) -> bool:
    """Compare two strings ignoring case."""
    return a.lower() == b.lower()


def _output_assets(tx: TransactionRecord) -> Iterator[OutputAssetRecord]:
    for output in tx.outputs or ():
        yield from output.assets or ()


def _variant_in(event: Event, variants: Iterable[str]) -> bool:
    name = event.variant
    return any(relaxed_str_matches(name, v) for v in variants)


def _output_policy(event: Event, policy: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.outputs is not None:
        return any(relaxed_str_matches(a.policy, policy) for a in _output_assets(data))
    if isinstance(data, OutputAssetRecord):
        return relaxed_str_matches(data.policy, policy)
    return False


def _mint_policy(event: Event, policy: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.mint is not None:
        return any(relaxed_str_matches(m.policy, policy) for m in data.mint)
    if isinstance(data, (OutputAssetRecord, MintRecord)):
        return relaxed_str_matches(data.policy, policy)
    return False


def _cip25_policy(event: Event, policy: str) -> bool:
    data = event.data
    return isinstance(data, CIP25AssetRecord) and relaxed_str_matches(data.policy, policy)


def _address(event: Event, address: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.outputs is not None:
        return any(relaxed_str_matches(o.address, address) for o in data.outputs)
    if isinstance(data, TxOutputRecord):
        return relaxed_str_matches(data.address, address)
    return False


def _output_asset(event: Event, asset: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.outputs is not None:
        return any(relaxed_str_matches(a.asset, asset) for a in _output_assets(data))
    if isinstance(data, OutputAssetRecord):
        return relaxed_str_matches(data.asset, asset)
    return False


def _mint_asset(event: Event, asset: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.mint is not None:
        return any(relaxed_str_matches(m.asset, asset) for m in data.mint)
    if isinstance(data, MintRecord):
        return relaxed_str_matches(data.asset, asset)
    return False


def _cip25_asset(event: Event, asset: str) -> bool:
    data = event.data
    return isinstance(data, CIP25AssetRecord) and relaxed_str_matches(data.asset, asset)


def _metadata_label(event: Event, label: str) -> bool:
    data = event.data
    if isinstance(data, TransactionRecord) and data.metadata is not None:
        return any(relaxed_str_matches(r.label, label) for r in data.metadata)
    if isinstance(data, MetadataRecord):
        return relaxed_str_matches(data.label, label)
    return False


def _metadata_any_sub_label(event: Event, sub_label: str) -> bool:
    data = event.data
    if isinstance(data, MetadataRecord) and isinstance(data.map_json, dict):
        return any(relaxed_str_matches(str(k), sub_label) for k in data.map_json)
    return False


def _vkey_witnesses(event: Event, witness: str) -> bool:
    data = event.data
    if isinstance(data, VKeyWitnessRecord):
        return data.vkey_hex == witness
    if isinstance(data, TransactionRecord):
        return any(v.vkey_hex == witness for v in data.vkey_witnesses or ())
    return False


def _native_scripts(event: Event, policy_id: str) -> bool:
    data = event.data
    if isinstance(data, NativeWitnessRecord):
        return data.policy_id == policy_id
    if isinstance(data, TransactionRecord):
        return any(v.policy_id == policy_id for v in data.native_witnesses or ())
    return False


def _plutus_scripts(event: Event, script_hash: str) -> bool:
    data = event.data
    if isinstance(data, PlutusWitnessRecord):
        return data.script_hash == script_hash
    if isinstance(data, TransactionRecord):
        return any(v.script_hash == script_hash for v in data.plutus_witnesses or ())
    return False


class PredicateKind(str, Enum):
    VARIANT_IN = "variant_in"
    VARIANT_NOT_IN = "variant_not_in"
    POLICY_EQUALS = "policy_equals"
    ASSET_EQUALS = "asset_equals"
    ADDRESS_EQUALS = "address_equals"
    METADATA_LABEL_EQUALS = "metadata_label_equals"
    METADATA_ANY_SUB_LABEL_EQUALS = "metadata_any_sub_label_equals"
    VKEY_WITNESSES_INCLUDES = "v_key_witnesses_includes"
    NATIVE_SCRIPTS_INCLUDES = "native_scripts_includes"
    PLUTUS_SCRIPTS_INCLUDES = "plutus_scripts_includes"
    NOT = "not"
    ANY_OF = "any_of"
    ALL_OF = "all_of"


_STRING_MATCHERS: dict[PredicateKind, Callable[[Event, str], bool]] = {
    PredicateKind.POLICY_EQUALS: lambda e, x: (
        _output_policy(e, x) or _mint_policy(e, x) or _cip25_policy(e, x)
    ),
    PredicateKind.ASSET_EQUALS: lambda e, x: (
        _output_asset(e, x) or _mint_asset(e, x) or _cip25_asset(e, x)
    ),
    PredicateKind.ADDRESS_EQUALS: _address,
    PredicateKind.METADATA_LABEL_EQUALS: _metadata_label,
    PredicateKind.METADATA_ANY_SUB_LABEL_EQUALS: _metadata_any_sub_label,
    PredicateKind.VKEY_WITNESSES_INCLUDES: _vkey_witnesses,
    PredicateKind.NATIVE_SCRIPTS_INCLUDES: _native_scripts,
    PredicateKind.PLUTUS_SCRIPTS_INCLUDES: _plutus_scripts,
}

_VARIANT_KINDS = {PredicateKind.VARIANT_IN, PredicateKind.VARIANT_NOT_IN}
_GROUP_KINDS = {PredicateKind.ANY_OF, PredicateKind.ALL_OF}


@dataclass(frozen=True)
class Predicate:
    """A condition on an event; composite kinds hold nested predicates."""

    kind: PredicateKind
    argument: Any

    def event_matches(self, event: Event) -> bool:
        kind = self.kind
        if kind is PredicateKind.VARIANT_IN:
            return _variant_in(event, self.argument)
        if kind is PredicateKind.VARIANT_NOT_IN:
            return not _variant_in(event, self.argument)
        if kind is PredicateKind.NOT:
            return not self.argument.event_matches(event)
        if kind is PredicateKind.ANY_OF:
            return any(p.event_matches(event) for p in self.argument)
        if kind is PredicateKind.ALL_OF:
            return all(p.event_matches(event) for p in self.argument)
        return _STRING_MATCHERS[kind](event, self.argument)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Predicate:
        """Build a predicate from ``{"predicate": ..., "argument": ...}``."""
        if not isinstance(data, Mapping) or "predicate" not in data:
            raise ValueError("predicate definition requires a 'predicate' key")
        try:
            kind = PredicateKind(data["predicate"])
        except ValueError as err:
            raise ValueError(f"unknown predicate: {data['predicate']!r}") from err
        if "argument" not in data:
            raise ValueError(f"predicate {kind.value} requires an argument")
        argument = data["argument"]

        if kind in _VARIANT_KINDS:
            if not isinstance(argument, list) or not all(isinstance(v, str) for v in argument):
                raise ValueError(f"predicate {kind.value} expects a list of strings")
            return cls(kind, tuple(argument))
        if kind is PredicateKind.NOT:
            return cls(kind, cls.from_dict(argument))
        if kind in _GROUP_KINDS:
            if not isinstance(argument, list):
                raise ValueError(f"predicate {kind.value} expects a list of predicates")
            return cls(kind, tuple(cls.from_dict(p) for p in argument))
        if not isinstance(argument, str):
            raise ValueError(f"predicate {kind.value} expects a string")
        return cls(kind, argument)