import pytest

from chainflow.fingerprint import (
    FingerprintError,
    apply_fingerprints,
    build_fingerprint,
    murmur3_x64_128,
)
from chainflow.model import (
    CIP15AssetRecord,
    Event,
    EventContext,
    GenericEventData,
    OutputAssetRecord,
    TransactionRecord,
    TxInputRecord,
)


def _suffix(fingerprint):
    return int(fingerprint.rsplit(".", 1)[1])


def test_murmur_empty_input_is_zero():
    assert murmur3_x64_128(b"", 0) == 0


def test_murmur_known_vector():
    expected = int.from_bytes(bytes.fromhex("6c1b07bc7bbc4be347939ac4a93c437a"), "little")
    assert murmur3_x64_128(b"The quick brown fox jumps over the lazy dog", 0) == expected


@pytest.mark.parametrize("length", [1, 7, 8, 9, 15, 16, 17, 33])
def test_murmur_range_and_determinism(length):
    data = bytes(range(length))
    value = murmur3_x64_128(data, 3)
    assert 0 <= value < 2**128
    assert murmur3_x64_128(data, 3) == value
    assert murmur3_x64_128(data, 4) != value


def test_murmur_rejects_wide_seed():
    with pytest.raises(ValueError):
        murmur3_x64_128(b"x", 2**32)


def test_block_fingerprint():
    event = Event(GenericEventData("Block"), EventContext(slot=10, block_hash="abc"))
    fingerprint = build_fingerprint(event, 0)
    assert fingerprint.startswith("10.blck.")
    assert _suffix(fingerprint) == murmur3_x64_128(b"abc", 0)


def test_tx_input_hashes_concatenated_components():
    event = Event(TxInputRecord("id", 0), EventContext(slot=7, tx_hash="ff", input_idx=3))
    fingerprint = build_fingerprint(event)
    assert fingerprint.startswith("7.stxi.")
    assert _suffix(fingerprint) == murmur3_x64_128(b"ff3", 0)


def test_output_asset_fingerprint():
    event = Event(
        OutputAssetRecord(policy="pp", asset="aa"),
        EventContext(slot=1, tx_hash="tt", output_idx=0),
    )
    fingerprint = build_fingerprint(event)
    assert fingerprint.startswith("1.asst.")
    assert _suffix(fingerprint) == murmur3_x64_128(b"tt0ppaa", 0)


def test_cip15_fingerprint_uses_nonce_text():
    event = Event(
        CIP15AssetRecord("vk", "sp", "ra", 42),
        EventContext(slot=2, tx_hash="tx"),
    )
    assert _suffix(build_fingerprint(event)) == murmur3_x64_128(b"txvk42", 0)


def test_collateral_fingerprint_ignores_context_hash():
    event = Event(GenericEventData("Collateral", {"tx_id": "cafe", "index": 1}), EventContext(slot=4))
    fingerprint = build_fingerprint(event)
    assert fingerprint.startswith("4.coll.")
    assert _suffix(fingerprint) == murmur3_x64_128(b"cafe1", 0)


def test_rollback_uses_slot_from_data():
    event = Event(GenericEventData("RollBack", {"block_slot": 55, "block_hash": "beef"}))
    fingerprint = build_fingerprint(event)
    assert fingerprint.startswith("55.back.")
    assert _suffix(fingerprint) == murmur3_x64_128(b"beef", 0)


def test_seed_changes_fingerprint():
    event = Event(TransactionRecord(hash="h"), EventContext(slot=1, tx_hash="h"))
    assert build_fingerprint(event, 0) != build_fingerprint(event, 1)
    assert build_fingerprint(event, 1).startswith("1.tx.")


def test_missing_component_raises():
    event = Event(TransactionRecord(), EventContext(slot=1))
    with pytest.raises(FingerprintError):
        build_fingerprint(event)


def test_missing_slot_raises():
    event = Event(TransactionRecord(), EventContext(tx_hash="h"))
    with pytest.raises(FingerprintError, match="slot"):
        build_fingerprint(event)


def test_unknown_variant_raises():
    event = Event(GenericEventData("Mystery"), EventContext(slot=1))
    with pytest.raises(FingerprintError):
        build_fingerprint(event)


def test_apply_fingerprints_keeps_order_and_skips_failures():
    good = Event(GenericEventData("Block"), EventContext(slot=1, block_hash="aa"))
    bad = Event(GenericEventData("Block"), EventContext(slot=1))
    result = list(apply_fingerprints([good, bad], seed=5))
    assert result == [good, bad]
    assert result[0].fingerprint == build_fingerprint(good, 5)
    assert result[1].fingerprint is None