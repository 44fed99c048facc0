"""Gitolite key identifiers.

Format: <owner>[_deploy_key_<n>]@redmine_<epoch seconds>_<microseconds>

The "redmine_" location prefix plus the time tag keeps identifiers unique per
owner and unlikely to clash with keys added to the gitolite config by hand.
"""
import re
from datetime import datetime, timezone

DEPLOY_PSEUDO_USER = "deploy_key"
LOCATION_PREFIX = "redmine_"

_UNSAFE_CHARS = re.compile(r"[^0-9a-zA-Z\-]")


def sanitize_tag(segment: str) -> str:
    return _UNSAFE_CHARS.sub("_", segment)


def time_tag(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"{int(now.timestamp())}_{now.microsecond}"


def generate_identifier(
    owner_tag: str,
    key_type: str,
    deploy_key_count: int,
    now: datetime | None = None,
) -> str | None:
    """Build a new identifier, or None for an unknown key type.

    deploy_key_count is the owner's current number of DEPLOY keys, active or not.
    """
    location = LOCATION_PREFIX + sanitize_tag(time_tag(now))
    if key_type == "USER":
        return f"{owner_tag}@{location}"
    if key_type == "DEPLOY":
        owner = sanitize_tag(f"{owner_tag}_{DEPLOY_PSEUDO_USER}_{deploy_key_count + 1}")
        return f"{owner}@{location}"
    return None


def split_identifier(identifier: str) -> tuple[str, str]:
    """Split once on '@' into (owner tag, location tag)."""
    owner, _, location = identifier.partition("@")
    return owner, location
