"""Tests for the secret envelope codec."""

import base64
import json

import pytest

from vaultharness import envelope


class TestEncode:

    def test_encode_wraps_value(self):
        assert json.loads(envelope.encode("s3cr3t")) == {"secret": "s3cr3t"}

    def test_encode_keeps_unicode_and_quotes(self):
        value = 'pa"ss\nwörd'
        assert envelope.decode(envelope.encode(value)) == value

    def test_encode_base64_is_base64_of_envelope(self):
        blob = envelope.encode_base64("abc")
        assert json.loads(base64.b64decode(blob)) == {"secret": "abc"}

    def test_empty_value(self):
        assert envelope.decode(envelope.encode("")) == ""


class TestDecode:

    def test_decode_bytes(self):
        assert envelope.decode(b'{"secret": "x"}') == "x"

    def test_decode_base64(self):
        assert envelope.decode_base64(envelope.encode_base64("y")) == "y"

    @pytest.mark.parametrize("blob", [
        "not json",
        '["secret"]',
        '{"value": "x"}',
        '{"secret": 42}',
    ])
    def test_decode_rejects_non_envelopes(self, blob):
        with pytest.raises(ValueError):
            envelope.decode(blob)

    def test_decode_base64_rejects_garbage(self):
        with pytest.raises(ValueError):
            envelope.decode_base64("***")
