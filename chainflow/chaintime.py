"""Conversions between chain slots, wallclock time and epochs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChainWellKnownInfo:
    """Well-known reference points and era parameters of a chain."""

    byron_epoch_length: int
    byron_slot_length: int
    byron_known_slot: int
    byron_known_hash: str
    byron_known_time: int
    shelley_epoch_length: int
    shelley_slot_length: int
    shelley_known_slot: int
    shelley_known_hash: str
    shelley_known_time: int

    @classmethod
    def mainnet(cls) -> ChainWellKnownInfo:
        return cls(
            byron_epoch_length=432000,
            byron_slot_length=20,
            byron_known_slot=0,
            byron_known_hash="f0f7892b5c333cffc4b3c4344de48af4cc63f55e44936196f365a9ef2244134f",
            byron_known_time=1506203091,
            shelley_epoch_length=432000,
            shelley_slot_length=1,
            shelley_known_slot=4492800,
            shelley_known_hash="aa83acbf5904c0edfe4d79b3689d3d00fcfc553cf360fd2229b98d464c28e9de",
            shelley_known_time=1596059091,
        )

    @classmethod
    def testnet(cls) -> ChainWellKnownInfo:
        return cls(
            byron_epoch_length=432000,
            byron_slot_length=20,
            byron_known_slot=0,
            byron_known_hash="8f8602837f7c6f8b8867dd1cbc1842cf51a27eaed2c70ef48325d00f8efb320f",
            byron_known_time=1564010416,
            shelley_epoch_length=432000,
            shelley_slot_length=1,
            shelley_known_slot=1598400,
            shelley_known_hash="02b1c561715da9e540411123a6135ee319b02f60b9a11a603d3305556c04329f",
            shelley_known_time=1595967616,
        )


def compute_linear_timestamp(known_slot: int, known_time: int, slot_length: int, query_slot: int) -> int:
    """Extrapolate the wallclock of ``query_slot`` from a known reference slot."""
    if query_slot < known_slot:
        raise ValueError(f"slot {query_slot} precedes the known slot {known_slot}")
    return known_time + (query_slot - known_slot) * slot_length


def compute_era_epoch(era_slot: int, era_slot_length: int, era_epoch_length: int) -> tuple[int, int]:
    """Return the epoch and the slot within that epoch for a slot of an era."""
    epoch = (era_slot * era_slot_length) // era_epoch_length
    remainder = era_slot % era_epoch_length
    return epoch, remainder


class NaiveProvider:
    """Slot/time conversions assuming homogeneous slot length within each era."""

    def __init__(self, config: ChainWellKnownInfo) -> None:
        if config.byron_epoch_length <= 0:
            raise ValueError("byron epoch length needs to be greater than zero")
        if config.shelley_epoch_length <= 0:
            raise ValueError("shelley epoch length needs to be greater than zero")

        self.config = config
        self.shelley_start_epoch, _ = compute_era_epoch(
            config.shelley_known_slot,
            config.byron_slot_length,
            config.byron_epoch_length,
        )

    def slot_to_wallclock(self, slot: int) -> int:
        config = self.config
        if slot < config.shelley_known_slot:
            return compute_linear_timestamp(
                config.byron_known_slot,
                config.byron_known_time,
                config.byron_slot_length,
                slot,
            )
        return compute_linear_timestamp(
            config.shelley_known_slot,
            config.shelley_known_time,
            config.shelley_slot_length,
            slot,
        )

    def absolute_slot_to_relative(self, slot: int) -> tuple[int, int]:
        config = self.config
        if slot < config.shelley_known_slot:
            return compute_era_epoch(slot, config.byron_slot_length, config.byron_epoch_length)

        era_slot = slot - config.shelley_known_slot
        era_epoch, remainder = compute_era_epoch(
            era_slot, config.shelley_slot_length, config.shelley_epoch_length
        )
        return self.shelley_start_epoch + era_epoch, remainder