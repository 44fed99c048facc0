"""Tests for key text clean-up and parsing."""
import pytest

from app.core.exceptions import MalformedKeyError
from app.keys.parsing import normalize_key, parse_key


class TestParseKey:
    def test_type_payload_and_comment(self):
        pieces = parse_key("ssh-ed25519 AAAAC3Nza alice@laptop")
        assert pieces.key_format == "ssh-ed25519"
        assert pieces.payload == "AAAAC3Nza"
        assert pieces.comment == "alice@laptop"

    def test_comment_is_optional(self):
        pieces = parse_key("ssh-rsa AAAAB3NzaC1yc2E=")
        assert pieces.payload == "AAAAB3NzaC1yc2E="
        assert pieces.comment is None

    def test_comment_keeps_inner_spaces(self):
        assert parse_key("ssh-rsa AAAA my work laptop").comment == "my work laptop"

    @pytest.mark.parametrize("text", ["", "ssh-rsa", "ssh-rsa   ", None])
    def test_fewer_than_two_tokens_is_malformed(self, text):
        with pytest.raises(MalformedKeyError):
            parse_key(text)


class TestNormalizeKey:
    def test_newline_between_type_and_payload(self):
        assert normalize_key("ssh-rsa\nAAAA==\ncomment\r\n") == "ssh-rsa AAAA== comment"

    def test_wrapped_payload_is_joined(self):
        assert normalize_key("ssh-ed25519\tAAAA\r\nBBBB user@host") == "ssh-ed25519 AAAABBBB user@host"

    def test_surrounding_whitespace_trimmed(self):
        assert normalize_key("  \n ssh-rsa AAAA user@host \n") == "ssh-rsa AAAA user@host"

    def test_bell_characters_removed(self):
        assert normalize_key("ssh-rsa AA\aAA user") == "ssh-rsa AAAA user"

    def test_clean_key_unchanged(self):
        key = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5 alice@laptop"
        assert normalize_key(key) == key
