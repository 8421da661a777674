import pytest

from chainflow.dsl import Predicate, PredicateKind, relaxed_str_matches
from chainflow.model import (
    CIP25AssetRecord,
    Event,
    GenericEventData,
    MetadataRecord,
    MintRecord,
    NativeWitnessRecord,
    OutputAssetRecord,
    PlutusWitnessRecord,
    TransactionRecord,
    TxOutputRecord,
    VKeyWitnessRecord,
)

POLICY = "aabbccdd"
ASSET = "746f6b656e"
ADDRESS = "addr_test1xyz"


def _pred(name, argument):
    return Predicate.from_dict({"predicate": name, "argument": argument})


def _tx():
    return TransactionRecord(
        hash="txhash",
        outputs=[
            TxOutputRecord(
                address=ADDRESS,
                amount=10,
                assets=[OutputAssetRecord(policy=POLICY, asset=ASSET, amount=1)],
            )
        ],
        mint=[MintRecord(policy="ffee", asset="6d696e74", quantity=3)],
        metadata=[MetadataRecord(label="721", map_json={})],
        vkey_witnesses=[VKeyWitnessRecord(vkey_hex="vk01", signature_hex="sig")],
        native_witnesses=[NativeWitnessRecord(policy_id="np01")],
        plutus_witnesses=[PlutusWitnessRecord(script_hash="ps01", script_hex="00")],
    )


def test_relaxed_str_matches_ignores_case():
    assert relaxed_str_matches("AbC", "aBc")
    assert not relaxed_str_matches("abc", "abd")


def test_from_dict_parses_nested_structure():
    pred = Predicate.from_dict(
        {
            "predicate": "any_of",
            "argument": [
                {"predicate": "not", "argument": {"predicate": "policy_equals", "argument": "x"}},
                {"predicate": "variant_in", "argument": ["Mint"]},
            ],
        }
    )
    assert pred.kind is PredicateKind.ANY_OF
    inner_not, variant = pred.argument
    assert inner_not.kind is PredicateKind.NOT
    assert inner_not.argument == Predicate(PredicateKind.POLICY_EQUALS, "x")
    assert variant == Predicate(PredicateKind.VARIANT_IN, ("Mint",))


@pytest.mark.parametrize(
    "data",
    [
        {"predicate": "unknown", "argument": "x"},
        {"argument": "x"},
        {"predicate": "policy_equals"},
        {"predicate": "policy_equals", "argument": 5},
        {"predicate": "variant_in", "argument": "Mint"},
        {"predicate": "all_of", "argument": {"predicate": "not"}},
    ],
)
def test_from_dict_rejects_invalid(data):
    with pytest.raises(ValueError):
        Predicate.from_dict(data)


def test_variant_in_and_not_in():
    event = Event(data=MintRecord(POLICY, ASSET, 1))
    assert _pred("variant_in", ["mint", "Transaction"]).event_matches(event)
    assert not _pred("variant_not_in", ["MINT"]).event_matches(event)
    assert _pred("variant_not_in", ["Block"]).event_matches(event)


def test_variant_in_generic_data():
    event = Event(data=GenericEventData("RollBack"))
    assert _pred("variant_in", ["rollback"]).event_matches(event)


def test_policy_equals_across_records():
    pred = _pred("policy_equals", POLICY.upper())
    assert pred.event_matches(Event(data=_tx()))
    assert pred.event_matches(Event(data=OutputAssetRecord(policy=POLICY, asset=ASSET)))
    assert pred.event_matches(Event(data=MintRecord(POLICY, ASSET, 1)))
    assert pred.event_matches(Event(data=CIP25AssetRecord("1.0", POLICY, ASSET)))
    assert not pred.event_matches(Event(data=MintRecord("other", ASSET, 1)))


def test_policy_equals_matches_transaction_mint():
    assert _pred("policy_equals", "FFEE").event_matches(Event(data=_tx()))


def test_asset_equals_across_records():
    pred = _pred("asset_equals", ASSET)
    assert pred.event_matches(Event(data=_tx()))
    assert pred.event_matches(Event(data=MintRecord("p", ASSET, 1)))
    assert pred.event_matches(Event(data=CIP25AssetRecord("1.0", "p", ASSET)))
    assert not pred.event_matches(Event(data=TxOutputRecord(address=ADDRESS, amount=1)))


def test_address_equals():
    pred = _pred("address_equals", ADDRESS.upper())
    assert pred.event_matches(Event(data=_tx()))
    assert pred.event_matches(Event(data=TxOutputRecord(address=ADDRESS, amount=1)))
    assert not pred.event_matches(Event(data=TransactionRecord(hash="h")))


def test_metadata_label_equals():
    pred = _pred("metadata_label_equals", "721")
    assert pred.event_matches(Event(data=_tx()))
    assert pred.event_matches(Event(data=MetadataRecord(label="721", int_scalar=1)))
    assert not pred.event_matches(Event(data=MetadataRecord(label="674", int_scalar=1)))


def test_metadata_any_sub_label_equals():
    record = MetadataRecord(label="721", map_json={"PolicyA": {}, "version": "1.0"})
    assert _pred("metadata_any_sub_label_equals", "policya").event_matches(Event(data=record))
    assert not _pred("metadata_any_sub_label_equals", "missing").event_matches(Event(data=record))
    array_record = MetadataRecord(label="721", array_json=["PolicyA"])
    assert not _pred("metadata_any_sub_label_equals", "policya").event_matches(
        Event(data=array_record)
    )


def test_witness_predicates_are_case_sensitive():
    tx_event = Event(data=_tx())
    assert _pred("v_key_witnesses_includes", "vk01").event_matches(tx_event)
    assert not _pred("v_key_witnesses_includes", "VK01").event_matches(tx_event)
    assert _pred("native_scripts_includes", "np01").event_matches(tx_event)
    assert _pred("plutus_scripts_includes", "ps01").event_matches(tx_event)
    assert not _pred("plutus_scripts_includes", "PS01").event_matches(tx_event)


def test_witness_predicates_on_witness_records():
    assert _pred("v_key_witnesses_includes", "vk").event_matches(
        Event(data=VKeyWitnessRecord("vk", "sig"))
    )
    assert _pred("native_scripts_includes", "np").event_matches(
        Event(data=NativeWitnessRecord("np"))
    )
    assert _pred("plutus_scripts_includes", "ps").event_matches(
        Event(data=PlutusWitnessRecord("ps", "00"))
    )


def test_witness_predicates_without_witnesses():
    event = Event(data=TransactionRecord(hash="h"))
    assert not _pred("v_key_witnesses_includes", "vk01").event_matches(event)
    assert not _pred("native_scripts_includes", "np01").event_matches(event)


def test_composites():
    event = Event(data=MintRecord(POLICY, ASSET, 1))
    yes = {"predicate": "policy_equals", "argument": POLICY}
    no = {"predicate": "address_equals", "argument": ADDRESS}
    assert _pred("any_of", [no, yes]).event_matches(event)
    assert not _pred("all_of", [no, yes]).event_matches(event)
    assert _pred("all_of", [yes]).event_matches(event)
    assert _pred("not", no).event_matches(event)
    assert _pred("all_of", []).event_matches(event)
    assert not _pred("any_of", []).event_matches(event)