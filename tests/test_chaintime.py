import dataclasses

import pytest

from chainflow.chaintime import (
    ChainWellKnownInfo,
    NaiveProvider,
    compute_era_epoch,
    compute_linear_timestamp,
)


def assert_slot_matches(provider, slot, expected_ts, expected_epoch, expected_epoch_slot):
    assert provider.slot_to_wallclock(slot) == expected_ts
    assert provider.absolute_slot_to_relative(slot) == (expected_epoch, expected_epoch_slot)


@pytest.mark.parametrize(
    "slot, ts, epoch, epoch_slot",
    [
        (0, 1506203091, 0, 0),
        (2160007, 1549403231, 100, 7),
        (4492800, 1596059091, 208, 0),
        (51580240, 1643146531, 316, 431440),
        (54605026, 1646171317, 324, 226),
    ],
)
def test_naive_provider_matches_mainnet_values(slot, ts, epoch, epoch_slot):
    provider = NaiveProvider(ChainWellKnownInfo.mainnet())
    assert_slot_matches(provider, slot, ts, epoch, epoch_slot)


@pytest.mark.parametrize(
    "slot, ts, epoch, epoch_slot",
    [
        (0, 1564010416, 0, 0),
        (1031, 1564031036, 0, 1031),
        (561595, 1575242316, 25, 129595),
        (1598400, 1595967616, 74, 0),
        (48783593, 1643152809, 183, 97193),
    ],
)
def test_naive_provider_matches_testnet_values(slot, ts, epoch, epoch_slot):
    provider = NaiveProvider(ChainWellKnownInfo.testnet())
    assert_slot_matches(provider, slot, ts, epoch, epoch_slot)


def test_shelley_start_epoch_is_derived_from_byron_parameters():
    assert NaiveProvider(ChainWellKnownInfo.mainnet()).shelley_start_epoch == 208
    assert NaiveProvider(ChainWellKnownInfo.testnet()).shelley_start_epoch == 74


def test_zero_byron_epoch_length_is_rejected():
    config = dataclasses.replace(ChainWellKnownInfo.mainnet(), byron_epoch_length=0)
    with pytest.raises(ValueError, match="byron"):
        NaiveProvider(config)


def test_zero_shelley_epoch_length_is_rejected():
    config = dataclasses.replace(ChainWellKnownInfo.mainnet(), shelley_epoch_length=0)
    with pytest.raises(ValueError, match="shelley"):
        NaiveProvider(config)


def test_linear_timestamp_at_known_slot_is_known_time():
    assert compute_linear_timestamp(4492800, 1596059091, 1, 4492800) == 1596059091


def test_linear_timestamp_rejects_earlier_slot():
    with pytest.raises(ValueError):
        compute_linear_timestamp(10, 100, 1, 5)


def test_era_epoch_remainder_is_within_epoch():
    epoch, remainder = compute_era_epoch(51580240 - 4492800, 1, 432000)
    assert epoch == 316 - 208
    assert remainder == 431440