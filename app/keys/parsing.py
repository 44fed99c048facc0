"""Parsing and clean-up of pasted SSH public key text."""
import re
from dataclasses import dataclass

from app.core.exceptions import MalformedKeyError

_KEY_PIECES = re.compile(r"(\S+)\s+(\S+)(?:\s+(.*))?", re.DOTALL)


@dataclass(frozen=True)
class KeyPieces:
    key_format: str   # e.g. "ssh-ed25519"
    payload: str      # base64 body, the part compared for uniqueness
    comment: str | None = None


def parse_key(text: str | None) -> KeyPieces:
    """Split key text into type, payload and optional comment."""
    match = _KEY_PIECES.match(text or "")
    if match is None:
        raise MalformedKeyError("Key must have the form '<type> <base64 payload> [comment]'")
    comment = match.group(3).strip() if match.group(3) else None
    return KeyPieces(key_format=match.group(1), payload=match.group(2), comment=comment or None)


def normalize_key(text: str) -> str:
    """Repair line breaks and stray control characters from copy/paste.

    Only applied to keys that have not been saved yet.
    """
    key = text.strip()
    # A newline between type and payload becomes the separating space
    key = re.sub(r"[ \r\n\t]", " ", key, count=1)
    # Keep the separator between base64 padding and the comment
    key = re.sub(r"=[ \r\n\t]", "= ", key, count=1)
    return re.sub(r"[\a\r\n\t]", "", key).strip()
