import re

import pytest

from eventnexus.services.ticket_codec import InvalidPayload, ParsedPayload, TicketCodec


codec = TicketCodec(secret="s")


def test_tag_is_deterministic_and_short_hex():
    a = codec.compute_tag("t1", "e1", "u1")
    b = TicketCodec(secret="s").compute_tag("t1", "e1", "u1")
    assert a == b
    assert re.fullmatch(r"[0-9a-f]{12}", a)


def test_tag_matches_sha256_of_joined_identity():
    import hashlib
    expected = hashlib.sha256(b"t1-e1-u1-s").hexdigest()[:12]
    assert codec.compute_tag("t1", "e1", "u1") == expected


@pytest.mark.parametrize("args", [
    ("t2", "e1", "u1"),
    ("t1", "e2", "u1"),
    ("t1", "e1", "u2"),
])
def test_changing_one_identity_field_changes_tag(args):
    assert codec.compute_tag(*args) != codec.compute_tag("t1", "e1", "u1")


def test_changing_secret_changes_tag():
    assert TicketCodec(secret="t").compute_tag("t1", "e1", "u1") != codec.compute_tag("t1", "e1", "u1")


def test_tag_length_is_configurable():
    assert len(TicketCodec(secret="s", tag_length=16).compute_tag("t1", "e1", "u1")) == 16


def test_encode_payload_wire_format():
    assert codec.encode_payload("3f9a7c21", "8f14e45fceea") == "ENX-3f9a7c21-8f14e45fceea"


def test_decode_recovers_id_and_tag():
    tag = codec.compute_tag("t1", "e1", "u1")
    assert codec.decode_payload(codec.encode_payload("t1", tag)) == ParsedPayload(ticket_id="t1", tag=tag)


@pytest.mark.parametrize("payload", ["  ENX-t1-abc123abc123", "ENX-t1-abc123abc123\n", " ENX-t1-abc123abc123\n"])
def test_decode_rejects_surrounding_whitespace(payload):
    with pytest.raises(InvalidPayload):
        codec.decode_payload(payload)


@pytest.mark.parametrize("payload", [
    "",
    "ENX",
    "ENX-t1",
    "ENX-t1-abc-def",
    "XYZ-t1-abc123abc123",
    "enx-t1-abc123abc123",
    "ENX--abc123abc123",
    "ENX-t1-",
    "-t1-abc123abc123",
])
def test_decode_rejects_malformed_payloads(payload):
    with pytest.raises(InvalidPayload):
        codec.decode_payload(payload)


def test_encode_refuses_ids_containing_separator():
    with pytest.raises(ValueError):
        codec.encode_payload("3f9a-7c21", "abc")


def test_verify_tag_requires_exact_match():
    tag = codec.compute_tag("t1", "e1", "u1")
    assert codec.verify_tag("t1", "e1", "u1", tag)
    assert not codec.verify_tag("t1", "e1", "u1", tag[:-1])
    assert not codec.verify_tag("t1", "e1", "u1", tag + "0")
    flipped = tag[:5] + ("0" if tag[5] != "0" else "1") + tag[6:]
    assert not codec.verify_tag("t1", "e1", "u1", flipped)
    assert not codec.verify_tag("t1", "e1", "u2", tag)


def test_custom_prefix():
    c = TicketCodec(secret="s", prefix="TIX")
    payload = c.payload_for("t1", "e1", "u1")
    assert payload.startswith("TIX-t1-")
    with pytest.raises(InvalidPayload):
        codec.decode_payload(payload)


@pytest.mark.parametrize("kwargs", [
    {"secret": ""},
    {"secret": "s", "prefix": "EN-X"},
    {"secret": "s", "tag_length": 4},
])
def test_constructor_validation(kwargs):
    with pytest.raises(ValueError):
        TicketCodec(**kwargs)


def test_repr_does_not_leak_secret():
    assert "hunter2" not in repr(TicketCodec(secret="hunter2"))
