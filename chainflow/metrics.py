"""Pipeline progress metrics and a facade over cursor and metrics tracking."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

from chainflow.cursor import CursorError, CursorProvider
from chainflow.model import Event, Point

log = logging.getLogger(__name__)

DEFAULT_BINDING = "0.0.0.0:9186"


@dataclass
class Counter:
    """A monotonically increasing metric."""

    name: str
    help: str = ""
    value: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def inc(self, amount: float = 1) -> None:
        if amount < 0:
            raise ValueError("counters can only increase")
        with self._lock:
            self.value += amount


@dataclass
class Gauge:
    """An integer metric that can be set to any value."""

    name: str
    help: str = ""
    value: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def set(self, value: int) -> None:
        with self._lock:
            self.value = int(value)


def _parse_binding(binding: str) -> tuple[str, int]:
    host, sep, port_text = binding.rpartition(":")
    if not sep or not host:
        raise ValueError(f"invalid metrics binding: {binding!r}")
    try:
        port = int(port_text)
    except ValueError as err:
        raise ValueError(f"invalid port in metrics binding: {binding!r}") from err
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range in metrics binding: {binding!r}")
    return host, port


class MetricsProvider:
    """Keeps track of the progress of the pipeline as a whole."""

    def __init__(self, binding: Optional[str] = None, endpoint: Optional[str] = None) -> None:
        self.host, self.port = _parse_binding(binding or DEFAULT_BINDING)
        self.endpoint = endpoint

        self.chain_tip = Gauge("chain_tip", "the last detected tip of the chain (height)")
        self.rollback_count = Counter("rollback_count", "number of rollback events occurred")
        self.source_current_slot = Gauge(
            "source_current_slot", "last slot processed by the source of the pipeline"
        )
        self.source_current_height = Gauge(
            "source_current_height",
            "last height (block #) processed by the source of the pipeline",
        )
        self.source_event_count = Counter(
            "source_event_count", "number of events processed by the source of the pipeline"
        )
        self.sink_current_slot = Gauge(
            "sink_current_slot", "last slot processed by the sink of the pipeline"
        )
        self.sink_event_count = Counter(
            "sink_event_count", "number of events processed by the sink of the pipeline"
        )

    @property
    def _metrics(self) -> tuple["Counter | Gauge", ...]:
        return (
            self.chain_tip,
            self.rollback_count,
            self.source_current_slot,
            self.source_current_height,
            self.source_event_count,
            self.sink_current_slot,
            self.sink_event_count,
        )

    def on_chain_tip(self, tip: int) -> None:
        self.chain_tip.set(tip)

    def on_source_event(self, event: Event) -> None:
        self.source_event_count.inc()

        if event.context.slot is not None:
            self.source_current_slot.set(event.context.slot)

        if event.context.block_number is not None:
            self.source_current_height.set(event.context.block_number)

        if getattr(event.data, "variant", None) == "RollBack":
            self.rollback_count.inc()

    def on_sink_event(self, event: Event) -> None:
        self.sink_event_count.inc()

        if event.context.slot is not None:
            self.sink_current_slot.set(event.context.slot)

    def readings(self) -> dict[str, float]:
        """Return the current value of every metric, keyed by name."""
        return {metric.name: metric.value for metric in self._metrics}


@dataclass
class Utils:
    """Friendly access to the optional cursor and metrics of a pipeline."""

    cursor: Optional[CursorProvider] = None
    metrics: Optional[MetricsProvider] = None

    def get_cursor_if_any(self) -> Optional[Point]:
        if self.cursor is None:
            return None
        return self.cursor.get_cursor()

    def track_source_progress(self, event: Event) -> None:
        if self.metrics is not None:
            self.metrics.on_source_event(event)

    def track_sink_progress(self, event: Event) -> None:
        slot = event.context.slot
        block_hash = event.context.block_hash
        if slot is None or block_hash is None:
            return

        if self.cursor is not None:
            try:
                self.cursor.set_cursor(Point(slot, block_hash))
            except CursorError as err:
                log.warning("failed to set cursor: %s", err)

        if self.metrics is not None:
            self.metrics.on_sink_event(event)

    def track_chain_tip(self, tip: int) -> None:
        if self.metrics is not None:
            self.metrics.on_chain_tip(tip)