"""Pipeline filter stages and their construction from configuration."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Iterable, Iterator, Mapping, Optional, Sequence

from chainflow import dsl
from chainflow import match_pattern
from chainflow.match_pattern import AddressError, ParsedTx
from chainflow.metadata import rollback_from_point
from chainflow.model import ChainEvent, Event, EventWriter


class FilterError(Exception):
    """Raised when a filter is misconfigured or receives a unit it can't handle."""


class _Stage:
    name = "filter"

    def __init__(self) -> None:
        self.ops_count = 0

    def process(self, unit: ChainEvent) -> list[ChainEvent]:
        raise NotImplementedError

    def _done(self, out: list[ChainEvent]) -> list[ChainEvent]:
        self.ops_count += 1
        return out


class PassthroughFilter(_Stage):
    """Lets every unit through unchanged."""

    def __init__(self, name: str = "filter-noop") -> None:
        super().__init__()
        self.name = name

    def process(self, unit: ChainEvent) -> list[ChainEvent]:
        return self._done([unit])


class DslFilter(_Stage):
    """Lets through the v1 events that satisfy a DSL predicate."""

    name = "filter-dsl"

    def __init__(self, predicate: dsl.Predicate) -> None:
        super().__init__()
        self.predicate = predicate

    def process(self, unit: ChainEvent) -> list[ChainEvent]:
        if unit.kind is not ChainEvent.Kind.APPLY or not isinstance(unit.record, Event):
            raise FilterError("the DSL filter only handles applied v1 events")
        out = [unit] if self.predicate.event_matches(unit.record) else []
        return self._done(out)


class MatchPatternFilter(_Stage):
    """Lets through the parsed transactions that satisfy a pattern predicate."""

    name = "filter-match-pattern"

    def __init__(self, predicate: match_pattern.Predicate) -> None:
        super().__init__()
        self.predicate = predicate

    def process(self, unit: ChainEvent) -> list[ChainEvent]:
        if unit.kind is not ChainEvent.Kind.APPLY:
            return self._done([unit])
        if not isinstance(unit.record, ParsedTx):
            raise FilterError("the MatchPattern filter is valid only with the ParsedTx record")
        try:
            matched = self.predicate.tx_match(unit.point, unit.record)
        except AddressError as err:
            raise FilterError(f"can't match transaction: {err}") from err
        return self._done([unit] if matched else [])


@dataclass(frozen=True)
class LegacyV1Config:
    include_block_end_events: bool = False
    include_transaction_details: bool = False
    include_transaction_end_events: bool = False
    include_block_details: bool = False
    include_block_cbor: bool = False
    include_byron_ebb: bool = False


class _LegacyV1Filter(_Stage):
    """Turns resets into v1 rollback events and passes other units through."""

    name = "filter-legacy"

    def __init__(self, config: LegacyV1Config) -> None:
        super().__init__()
        self.config = config

    def process(self, unit: ChainEvent) -> list[ChainEvent]:
        if unit.kind is ChainEvent.Kind.RESET:
            writer = EventWriter(point=unit.point, config=self.config)
            writer.append(rollback_from_point(unit.point))
            return self._done(writer.buffer)
        if unit.kind is ChainEvent.Kind.APPLY and isinstance(unit.record, (bytes, bytearray)):
            raise FilterError("raw block records can't be decoded by this filter")
        return self._done([unit])


def _legacy_config(config: Mapping[str, Any]) -> LegacyV1Config:
    names = {f.name for f in fields(LegacyV1Config)}
    options = {k: v for k, v in config.items() if k != "type"}
    unknown = set(options) - names
    if unknown:
        raise FilterError(f"unknown legacy filter options: {sorted(unknown)}")
    for key, value in options.items():
        if not isinstance(value, bool):
            raise FilterError(f"legacy filter option {key} must be a boolean")
    return LegacyV1Config(**options)


def _predicate_of(config: Mapping[str, Any], parse: Any) -> Any:
    if "predicate" not in config:
        raise FilterError(f"{config['type']} filter requires a predicate")
    try:
        return parse(config["predicate"])
    except ValueError as err:
        raise FilterError(f"invalid predicate: {err}") from err


_PASSTHROUGH_NAMES = {"Noop": "filter-noop", "Json": "filter-json", "Wasm": "filter-wasm"}


def build_filter(config: Optional[Mapping[str, Any]] = None) -> _Stage:
    """Build a filter from a mapping tagged by ``type``; no config means LegacyV1."""
    if config is None:
        return _LegacyV1Filter(LegacyV1Config())
    kind = config.get("type")
    if kind in _PASSTHROUGH_NAMES:
        return PassthroughFilter(_PASSTHROUGH_NAMES[kind])
    if kind == "Dsl":
        return DslFilter(_predicate_of(config, dsl.Predicate.from_dict))
    if kind == "MatchPattern":
        return MatchPatternFilter(_predicate_of(config, match_pattern.Predicate.from_dict))
    if kind == "LegacyV1":
        return _LegacyV1Filter(_legacy_config(config))
    raise FilterError(f"unknown filter type: {kind!r}")


def run_filters(filters: Sequence[_Stage], units: Iterable[ChainEvent]) -> Iterator[ChainEvent]:
    """Feed each unit through the filters in order and yield what comes out."""
    for unit in units:
        batch = [unit]
        for stage in filters:
            batch = [out for item in batch for out in stage.process(item)]
        yield from batch