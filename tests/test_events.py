"""Test envelope parsing and encoding."""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mqttbridge.core.errors import EnvelopeError
from mqttbridge.events import ChatMessage, OutboundEnvelope, parse_inbound


class TestParseInbound:
    def test_full_envelope(self):
        env = parse_inbound(b'{"type": "message", "from": "bob", "message": "hi"}')

        assert env.is_message
        assert env.has_message
        assert (env.sender, env.message) == ("bob", "hi")
        assert env.raw == {"type": "message", "from": "bob", "message": "hi"}

    def test_unknown_fields_ignored(self):
        env = parse_inbound('{"type": "message", "message": "hi", "rssi": -70}')

        assert env.message == "hi"
        assert env.raw["rssi"] == -70

    @pytest.mark.parametrize("sender", [None, "", 5, ["x"]])
    def test_sender_defaults_to_unknown(self, sender):
        env = parse_inbound(json.dumps({"type": "message", "from": sender, "message": "hi"}))

        assert env.sender == "Unknown"

    def test_non_string_type_is_not_message(self):
        env = parse_inbound(b'{"type": 1, "message": "hi"}')

        assert env.type is None
        assert not env.is_message

    def test_non_string_message_is_absent(self):
        env = parse_inbound(b'{"type": "message", "message": {"a": 1}}')

        assert env.message is None
        assert not env.has_message

    @pytest.mark.parametrize(
        ("payload", "code"),
        [
            (b"{oops", "invalid_json"),
            (b"", "invalid_json"),
            (b"\xc3\x28", "invalid_json"),
            (b"[]", "invalid_shape"),
            (b"null", "invalid_shape"),
            (b"42", "invalid_shape"),
        ],
    )
    def test_invalid_payloads(self, payload, code):
        with pytest.raises(EnvelopeError) as exc_info:
            parse_inbound(payload)

        assert exc_info.value.code == code


class TestOutboundEnvelope:
    def test_encode_is_compact_and_ordered(self):
        env = OutboundEnvelope(to="alice", message="Bob : hi")

        assert env.encode() == b'{"sendmsg":true,"to":"alice","message":"Bob : hi"}'

    def test_encode_keeps_non_ascii(self):
        env = OutboundEnvelope(to="zoë", message="olá")

        assert env.encode() == '{"sendmsg":true,"to":"zoë","message":"olá"}'.encode()

    @given(to=st.text(min_size=1), message=st.text())
    def test_encoded_payload_parses_back(self, to, message):
        decoded = json.loads(OutboundEnvelope(to=to, message=message).encode())

        assert list(decoded) == ["sendmsg", "to", "message"]
        assert decoded == {"sendmsg": True, "to": to, "message": message}


class TestChatMessage:
    @pytest.mark.parametrize(
        ("chat_type", "sender_id", "expected"),
        [
            ("private", 5, True),
            (None, 100, True),
            ("group", 5, False),
            ("channel", None, False),
        ],
    )
    def test_is_private(self, chat_type, sender_id, expected):
        msg = ChatMessage(chat_id=100, text="x", chat_type=chat_type, sender_id=sender_id)

        assert msg.is_private is expected
