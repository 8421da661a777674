"""Persistence of the position of the last processed block."""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol

from chainflow.model import Point

log = logging.getLogger(__name__)

_MIN_PERSIST_INTERVAL = 10.0


class CursorError(Exception):
    """Raised when a cursor can't be read, written or configured."""


class _Storage(Protocol):
    def read_cursor(self) -> Point: ...

    def write_cursor(self, point: Point) -> None: ...


@dataclass(frozen=True)
class FileStorage:
    """Keeps the cursor in a text file."""

    path: "str | os.PathLike[str]"

    def read_cursor(self) -> Point:
        try:
            text = Path(self.path).read_text(encoding="utf-8")
        except OSError as err:
            raise CursorError(f"can't read cursor file {self.path}: {err}") from err
        try:
            return Point.parse(text)
        except ValueError as err:
            raise CursorError(f"invalid cursor in {self.path}: {err}") from err

    def write_cursor(self, point: Point) -> None:
        try:
            Path(self.path).write_text(str(point), encoding="utf-8")
        except OSError as err:
            raise CursorError(f"can't write cursor file {self.path}: {err}") from err


@dataclass
class MemoryStorage:
    """An ephemeral cursor that is never persisted.

    Reading always yields the configured point; the last written point is
    kept only for inspection and is lost with the process.
    """

    point: Point
    last_written: Optional[Point] = field(default=None, compare=False)

    def read_cursor(self) -> Point:
        return self.point

    def write_cursor(self, point: Point) -> None:
        self.last_written = point


def storage_from_config(config: Mapping[str, Any]) -> "FileStorage | MemoryStorage":
    """Build a storage from a mapping tagged by its ``type`` key."""
    kind = config.get("type")
    if kind == "File":
        if "path" not in config:
            raise CursorError("file cursor config requires a path")
        return FileStorage(config["path"])
    if kind == "Memory":
        point = config.get("point")
        if isinstance(point, Point):
            return MemoryStorage(point)
        if isinstance(point, str):
            try:
                return MemoryStorage(Point.parse(point))
            except ValueError as err:
                raise CursorError(f"invalid memory cursor: {err}") from err
        raise CursorError("memory cursor config requires a point")
    raise CursorError(f"unknown cursor type: {kind!r}")


class CursorProvider:
    """Tracks the current cursor and persists it at most every ten seconds."""

    def __init__(self, storage: _Storage, clock: Callable[[], float] = time.monotonic) -> None:
        self._storage = storage
        self._clock = clock
        self._lock = threading.Lock()
        self._point: Optional[Point] = None
        self._reached = 0.0
        self._load()

    @classmethod
    def initialize(cls, config: Mapping[str, Any]) -> CursorProvider:
        return cls(storage_from_config(config))

    def _load(self) -> None:
        with self._lock:
            try:
                point = self._storage.read_cursor()
            except CursorError as err:
                log.warning("failure reading cursor from storage: %s", err)
                self._point = None
                return
            self._point = point
            self._reached = self._clock()

    def get_cursor(self) -> Optional[Point]:
        with self._lock:
            return self._point

    def set_cursor(self, point: Point) -> None:
        with self._lock:
            if self._point is not None and self._clock() - self._reached <= _MIN_PERSIST_INTERVAL:
                return
            self._storage.write_cursor(point)
            self._point = point
            self._reached = self._clock()