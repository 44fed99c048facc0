"""Payload uniqueness across all active keys and the gitolite admin key.

The error detail depends on the requester: admins learn who holds the key,
other users only learn that someone does.
"""
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.config import settings
from app.core.exceptions import AppError, ConflictReason, KeyConflictError, MalformedKeyError
from app.keys.models import SshKey
from app.keys.parsing import parse_key


@dataclass(frozen=True)
class _ExistingKey:
    key: str
    title: str | None = None
    owner: User | None = None   # None for the admin key


def load_admin_key(path: str | None = None) -> str | None:
    """Read the gitolite administrator public key, or None if not configured."""
    path = path or settings.admin_public_key_path
    if not path:
        return None
    try:
        return Path(path).read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise AppError(f"Cannot read administrator key {path}: {exc}", status_code=500) from exc


async def _active_keys_with_payload(db: AsyncSession, payload: str) -> list[_ExistingKey]:
    result = await db.execute(
        select(SshKey, User)
        .join(User, User.id == SshKey.owner_id)
        .where(SshKey.active == True, SshKey.payload == payload)  # noqa: E712
        .order_by(SshKey.created_at)
    )
    return [_ExistingKey(key=k.key, title=k.title, owner=u) for k, u in result.all()]


def _conflict(existing: _ExistingKey, requester: User) -> KeyConflictError:
    if existing.owner is not None and existing.owner.id == requester.id:
        return KeyConflictError(ConflictReason.OWNED_BY_REQUESTER, title=existing.title)
    if requester.is_admin:
        if existing.owner is not None:
            return KeyConflictError(
                ConflictReason.OWNED_BY_OTHER,
                owner_login=existing.owner.login,
                title=existing.title,
            )
        return KeyConflictError(ConflictReason.ADMINISTRATOR_KEY)
    return KeyConflictError(ConflictReason.OWNED_BY_SOMEONE)


async def check_key_uniqueness(
    db: AsyncSession,
    key: str,
    requester: User,
    admin_key: str | None = None,
) -> None:
    """
    Raise KeyConflictError for the first existing key with the same payload.
    Raises MalformedKeyError if `key` does not parse.

    Type token and comment are ignored: two keys conflict when their base64
    bodies are byte-equal.
    """
    payload = parse_key(key).payload

    candidates: list[_ExistingKey] = []
    if admin_key:
        candidates.append(_ExistingKey(key=admin_key))
    candidates += await _active_keys_with_payload(db, payload)

    for existing in candidates:
        try:
            existing_payload = parse_key(existing.key).payload
        except MalformedKeyError:
            continue
        if existing_payload == payload:
            raise _conflict(existing, requester)
