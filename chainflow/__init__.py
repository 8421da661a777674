"""Chain-event pipeline building blocks: retries, slot time, cursors, metrics, filters and fingerprints."""

__version__ = "0.1.0"