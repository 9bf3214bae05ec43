"""Tests for the unpadded base64url codec"""
import pytest

from app.utils.base64url import b64url_decode, b64url_encode


class TestEncode:
    def test_uses_url_alphabet_without_padding(self):
        assert b64url_encode(b"\xfb\xff") == "-_8"

    def test_encodes_text_as_utf8(self):
        assert b64url_encode('{"typ":"JWT","alg":"ES256"}') == "eyJ0eXAiOiJKV1QiLCJhbGciOiJFUzI1NiJ9"

    def test_empty(self):
        assert b64url_encode(b"") == ""


class TestDecode:
    def test_unpadded(self):
        assert b64url_decode("-_8") == b"\xfb\xff"

    def test_padded(self):
        assert b64url_decode("-_8=") == b"\xfb\xff"

    def test_standard_alphabet_accepted(self):
        assert b64url_decode("+/8=") == b"\xfb\xff"

    def test_round_trip_65_bytes(self):
        raw = bytes(range(65))
        assert b64url_decode(b64url_encode(raw)) == raw

    def test_impossible_length_rejected(self):
        with pytest.raises(ValueError):
            b64url_decode("abcde")

    def test_bad_characters_rejected(self):
        with pytest.raises(ValueError):
            b64url_decode("ab!d")
