"""Extraction of CIP-25 asset metadata (label 721) and CIP-15 registrations (label 61284)."""

from __future__ import annotations

import logging
from typing import Any, Optional

from chainflow.metadata import Metadatum, MetadatumMap, metadatum_to_json
from chainflow.model import CIP15AssetRecord, CIP25AssetRecord, EventWriter

log = logging.getLogger(__name__)

_POLICY_BYTES_LEN = 28
_POLICY_TEXT_LEN = 56
_DEFAULT_CIP25_VERSION = "1.0"
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def is_policy_key(key: Metadatum) -> Optional[str]:
    """Return the policy id if ``key`` looks like one, else ``None``.

    A policy is either 28 raw bytes or a 56 character hex text.
    """
    if isinstance(key, (bytes, bytearray)) and len(key) == _POLICY_BYTES_LEN:
        return bytes(key).hex()
    if isinstance(key, str) and len(key.encode("utf-8")) == _POLICY_TEXT_LEN:
        return key
    return None


def is_asset_key(key: Metadatum) -> Optional[str]:
    """Return the asset name if ``key`` has a type an asset name can have."""
    if isinstance(key, (bytes, bytearray)):
        return bytes(key).hex()
    if isinstance(key, str):
        return key
    return None


def _json_string(raw_json: Any, key: str) -> Optional[str]:
    if isinstance(raw_json, dict):
        value = raw_json.get(key)
        if isinstance(value, str):
            return value
    return None


def _json_int(raw_json: Any, key: str) -> Optional[int]:
    if isinstance(raw_json, dict):
        value = raw_json.get(key)
        if isinstance(value, int) and not isinstance(value, bool) and _I64_MIN <= value <= _I64_MAX:
            return value
    return None


def search_cip25_version(content: Metadatum) -> Optional[str]:
    """Return the first textual ``version`` entry of a 721 map, if any."""
    if not isinstance(content, MetadatumMap):
        return None
    return next(
        (value for key, value in content if key == "version" and isinstance(value, str)),
        None,
    )


def to_cip25_asset_record(
    version: str, policy: str, asset: str, content: Metadatum
) -> CIP25AssetRecord:
    """Build the CIP-25 record for one asset of a policy."""
    raw_json = metadatum_to_json(content)
    return CIP25AssetRecord(
        version=version,
        policy=policy,
        asset=asset,
        name=_json_string(raw_json, "name"),
        media_type=_json_string(raw_json, "mediaType"),
        image=_json_string(raw_json, "image"),
        description=_json_string(raw_json, "description"),
        raw_json=raw_json,
    )


def to_cip15_asset_record(content: Metadatum) -> CIP15AssetRecord:
    """Build the CIP-15 registration record; missing entries take empty defaults."""
    raw_json = metadatum_to_json(content)
    return CIP15AssetRecord(
        voting_key=_json_string(raw_json, "1") or "",
        stake_pub=_json_string(raw_json, "2") or "",
        reward_address=_json_string(raw_json, "3") or "",
        nonce=_json_int(raw_json, "4") or 0,
        raw_json=raw_json,
    )


def _crawl_721_policy(writer: EventWriter, version: str, policy: str, content: Metadatum) -> None:
    if not isinstance(content, MetadatumMap):
        log.warning("invalid metadatum type for policy inside 721 label")
        return
    for key, sub_content in content:
        asset = is_asset_key(key)
        if asset is not None:
            writer.append_from(to_cip25_asset_record(version, policy, asset, sub_content))


def crawl_metadata_label_721(writer: EventWriter, content: Metadatum) -> None:
    """Append one CIP-25 record for every asset found under a 721 label."""
    version = search_cip25_version(content) or _DEFAULT_CIP25_VERSION
    if not isinstance(content, MetadatumMap):
        log.warning("invalid metadatum type for 721 label")
        return
    for key, sub_content in content:
        policy = is_policy_key(key)
        if policy is not None:
            _crawl_721_policy(writer, version, policy, sub_content)


def crawl_metadata_label_61284(writer: EventWriter, content: Metadatum) -> None:
    """Append the CIP-15 record found under a 61284 label."""
    writer.append_from(to_cip15_asset_record(content))