import pytest

from modules.ez_multisig.messages import (
    MessageDecodeError,
    MultisigAck,
    MultisigAnnounce,
    MultisigSign,
    MultisigSpend,
)


def test_message_payload_field_sets():
    assert MultisigAnnounce(script="51ae", name="vault").to_payload() == {"script": "51ae", "name": "vault"}
    assert MultisigSpend(address="0xa", tx="00", pending=[{"address": "0xa"}], id=3).to_payload() == {
        "address": "0xa",
        "tx": "00",
        "id": 3,
        "pending": [{"address": "0xa"}],
    }
    assert MultisigSign(address="0xa", hash="ff", signature=["30"], id=4).to_payload() == {
        "address": "0xa",
        "hash": "ff",
        "id": 4,
        "signature": ["30"],
    }
    assert MultisigAck(id=5).to_payload() == {"id": 5}


def test_type_tags_match_wire_names():
    assert MultisigAnnounce.TYPE == "MultisigAnnounce"
    assert MultisigSpend.TYPE == "MultisigSpend"
    assert MultisigSign.TYPE == "MultisigSign"
    assert MultisigAck.TYPE == "MultisigAck"


def test_from_payload_fills_optional_fields():
    announce = MultisigAnnounce.from_payload({"script": "51ae"})
    assert announce.name is None

    spend = MultisigSpend.from_payload({"address": "0xa", "tx": "00", "id": 1})
    assert spend.pending == []


def test_from_payload_rejects_missing_required_field():
    with pytest.raises(MessageDecodeError, match="missing_field:MultisigAck.id"):
        MultisigAck.from_payload({})
    with pytest.raises(MessageDecodeError):
        MultisigSpend.from_payload({"address": "0xa", "id": 1})


def test_from_payload_rejects_bad_shapes():
    with pytest.raises(MessageDecodeError):
        MultisigAck.from_payload(["id", 1])
    with pytest.raises(MessageDecodeError):
        MultisigAck.from_payload({"id": True})
    with pytest.raises(MessageDecodeError):
        MultisigAck.from_payload({"id": [1]})
    with pytest.raises(MessageDecodeError):
        MultisigSign.from_payload({"address": "0xa", "hash": "ff", "id": 1, "signature": "30"})


def test_decode_error_is_a_value_error():
    with pytest.raises(ValueError):
        MultisigAnnounce.from_payload(None)


def test_from_payload_rejects_wrong_field_types():
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigSpend.address"):
        MultisigSpend.from_payload({"address": ["x"], "tx": "00", "id": 1})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigSpend.tx"):
        MultisigSpend.from_payload({"address": "0xa", "tx": 0, "id": 1})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigSpend.pending"):
        MultisigSpend.from_payload({"address": "0xa", "tx": "00", "id": 1, "pending": {"address": "0xa"}})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigAnnounce.script"):
        MultisigAnnounce.from_payload({"script": {"hex": "51ae"}})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigAnnounce.name"):
        MultisigAnnounce.from_payload({"script": "51ae", "name": 7})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigSign.hash"):
        MultisigSign.from_payload({"address": "0xa", "hash": None, "id": 1})
    with pytest.raises(MessageDecodeError, match="invalid_field:MultisigSign.signature"):
        MultisigSign.from_payload({"address": "0xa", "hash": "ff", "id": 1, "signature": ["30", 31]})


def test_from_payload_accepts_string_ids_and_explicit_null_name():
    assert MultisigAck.from_payload({"id": "req-9"}) == MultisigAck(id="req-9")
    assert MultisigAnnounce.from_payload({"script": "51ae", "name": None}).name is None
