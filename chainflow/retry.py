"""Retrying of fallible operations with exponential backoff."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

T = TypeVar("T")

log = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 20
DEFAULT_BACKOFF_DELAY = 5.0


@dataclass(frozen=True)
class Policy:
    """How often and how patiently an operation is retried.

    Durations are expressed in seconds.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    backoff_unit: float = DEFAULT_BACKOFF_DELAY
    backoff_factor: int = 2
    max_backoff: float = 20 * DEFAULT_BACKOFF_DELAY


def compute_backoff_delay(policy: Policy, retry: int) -> float:
    """Return the delay in seconds to wait before the given retry number."""
    units = policy.backoff_factor**retry
    return min(policy.backoff_unit * units, policy.max_backoff)


def retry_operation(op: Callable[[], T], policy: Policy) -> T:
    """Call ``op`` until it succeeds or the policy's retries are exhausted.

    The exception raised by the last attempt propagates to the caller.
    """
    retry = 0
    while True:
        try:
            return op()
        except Exception as err:
            if retry >= policy.max_retries:
                log.error("max retries reached, failing whole operation")
                raise
            log.warning("retryable operation error: %r", err)
            retry += 1
            backoff = compute_backoff_delay(policy, retry)
            log.debug("backoff for %ss until next retry #%d", int(backoff), retry)
            time.sleep(backoff)