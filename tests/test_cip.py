import pytest

from chainflow.cip import (
    crawl_metadata_label_61284,
    crawl_metadata_label_721,
    is_asset_key,
    is_policy_key,
    search_cip25_version,
    to_cip15_asset_record,
    to_cip25_asset_record,
)
from chainflow.metadata import MetadatumMap
from chainflow.model import CIP15AssetRecord, CIP25AssetRecord, EventContext, EventWriter, Point

POLICY_BYTES = bytes(range(28))
POLICY_TEXT = "ab" * 28


def _records(writer):
    return [unit.record.data for unit in writer.buffer]


def test_policy_key_from_bytes():
    assert is_policy_key(POLICY_BYTES) == POLICY_BYTES.hex()


def test_policy_key_from_text():
    assert is_policy_key(POLICY_TEXT) == POLICY_TEXT


@pytest.mark.parametrize("key", [bytes(27), bytes(29), "ab" * 27, 42, ["x"], "version"])
def test_policy_key_rejects_others(key):
    assert is_policy_key(key) is None


def test_asset_key():
    assert is_asset_key(b"Nft") == b"Nft".hex()
    assert is_asset_key("Nft") == "Nft"
    assert is_asset_key(5) is None
    assert is_asset_key(MetadatumMap()) is None


def test_search_version_found():
    content = MetadatumMap(((POLICY_TEXT, MetadatumMap()), ("version", "2.0")))
    assert search_cip25_version(content) == "2.0"


def test_search_version_skips_non_text_value():
    content = MetadatumMap((("version", 2), ("version", "2.0")))
    assert search_cip25_version(content) == "2.0"


def test_search_version_missing():
    assert search_cip25_version(MetadatumMap(((POLICY_TEXT, 1),))) is None
    assert search_cip25_version("version") is None


def test_cip25_record_extracts_properties():
    content = MetadatumMap(
        (
            ("name", "Token"),
            ("mediaType", "image/png"),
            ("image", "ipfs://image"),
            ("description", 7),
        )
    )
    record = to_cip25_asset_record("1.0", POLICY_TEXT, "Token", content)
    assert record.name == "Token"
    assert record.media_type == "image/png"
    assert record.image == "ipfs://image"
    assert record.description is None
    assert record.policy == POLICY_TEXT
    assert record.raw_json["description"] == 7


def test_cip25_record_non_map_content():
    record = to_cip25_asset_record("1.0", POLICY_TEXT, "a", "plain")
    assert record.raw_json == "plain"
    assert record.name is None


def test_cip15_record_extracts_entries():
    content = MetadatumMap(((1, b"\x01\x02"), (2, "stake"), (3, "reward"), (4, 99)))
    record = to_cip15_asset_record(content)
    assert record.voting_key == "0102"
    assert record.stake_pub == "stake"
    assert record.reward_address == "reward"
    assert record.nonce == 99


def test_cip15_record_defaults():
    record = to_cip15_asset_record(MetadatumMap(((4, "not a number"),)))
    assert (record.voting_key, record.stake_pub, record.reward_address, record.nonce) == ("", "", "", 0)


def test_crawl_721_emits_assets():
    writer = EventWriter(Point(5, "aa"))
    asset_content = MetadatumMap((("name", "Token"),))
    content = MetadatumMap(
        (
            (POLICY_BYTES, MetadatumMap(((b"A", asset_content), ("B", asset_content), (3, asset_content)))),
            ("not a policy", MetadatumMap((("C", asset_content),))),
        )
    )
    crawl_metadata_label_721(writer, content)
    records = _records(writer)
    assert [r.asset for r in records] == [b"A".hex(), "B"]
    assert all(isinstance(r, CIP25AssetRecord) for r in records)
    assert all(r.version == "1.0" for r in records)
    assert all(r.policy == POLICY_BYTES.hex() for r in records)
    assert records[0].name == "Token"


def test_crawl_721_uses_declared_version():
    writer = EventWriter(Point(5, "aa"))
    content = MetadatumMap(((POLICY_TEXT, MetadatumMap((("x", 1),))), ("version", "2.0")))
    crawl_metadata_label_721(writer, content)
    assert [r.version for r in _records(writer)] == ["2.0"]


def test_crawl_721_ignores_invalid_content():
    writer = EventWriter(Point(5, "aa"))
    crawl_metadata_label_721(writer, [1, 2])
    crawl_metadata_label_721(writer, MetadatumMap(((POLICY_TEXT, "not a map"),)))
    assert writer.buffer == []


def test_crawl_61284_appends_with_context():
    parent = EventWriter(Point(9, "bb"), context=EventContext(slot=9))
    child = parent.child_writer(EventContext(tx_hash="cc"))
    crawl_metadata_label_61284(child, MetadatumMap(((2, "stake"),)))
    assert len(parent.buffer) == 1
    event = parent.buffer[0].record
    assert isinstance(event.data, CIP15AssetRecord)
    assert event.data.stake_pub == "stake"
    assert event.context.slot == 9
    assert event.context.tx_hash == "cc"