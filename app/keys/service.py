"""SSH key lifecycle: validation, creation, update, locking and deletion.

A save validates in this order, collecting every error by field:
  1. trim the title; for new keys clean up the key text and assign an identifier
  2. presence, length and key type checks
  3. title and identifier unique within the owner (case-insensitive)
  4. identifier, key, owner and key type unchanged (saved keys only)
  5. key parses, then passes the format checker (ssh-keygen)
  6. payload not used by another active key or the admin key (new keys only)

create_key/destroy_key only stage changes and return the sync event; add_key and
remove_key also commit and then hand the event to a SyncNotifier.
"""
import uuid
from typing import Any

from sqlalchemy import func, inspect, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import (
    AppError,
    ConflictReason,
    ExternalToolError,
    ImmutableFieldChangedError,
    InclusionError,
    KeyConflictError,
    KeyValidationError,
    LengthError,
    MalformedKeyError,
    NotFoundError,
    PresenceError,
    UniquenessError,
)
from app.core.logging import get_logger
from app.deployments import service as deployment_service
from app.keys.fingerprint import KeyFormatChecker, default_checker
from app.keys.identifiers import generate_identifier
from app.keys.models import (
    TITLE_LENGTH_LIMIT,
    WRITE_ONCE_FIELDS,
    KeyType,
    SshKey,
    changed_write_once_fields,
)
from app.keys.parsing import KeyPieces, normalize_key, parse_key
from app.keys.uniqueness import check_key_uniqueness, load_admin_key
from app.sync.events import AddCredential, DeleteCredential
from app.sync.notifier import SyncNotifier, dispatch_events

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"title", *WRITE_ONCE_FIELDS})


def _is_new(record: SshKey) -> bool:
    return not inspect(record).has_identity


def _coerce_key_type(value: Any) -> KeyType | None:
    if value is None or isinstance(value, KeyType):
        return value
    try:
        return KeyType(value)
    except ValueError:
        return None


async def count_deploy_keys(db: AsyncSession, owner_id: uuid.UUID) -> int:
    """All DEPLOY keys of an owner, locked ones included."""
    result = await db.execute(
        select(func.count())
        .select_from(SshKey)
        .where(SshKey.owner_id == owner_id, SshKey.key_type == KeyType.DEPLOY)
    )
    return int(result.scalar_one())


async def _new_identifier(db: AsyncSession, owner: User, key_type: KeyType) -> str | None:
    deploy_count = await count_deploy_keys(db, owner.id)
    return generate_identifier(owner.access_control_login, key_type, deploy_count)


async def _taken_within_owner(db: AsyncSession, record: SshKey, column: Any, value: str) -> bool:
    q = select(SshKey.id).where(
        SshKey.owner_id == record.owner_id,
        func.lower(column) == func.lower(value),
    )
    if not _is_new(record):
        q = q.where(SshKey.id != record.id)
    result = await db.execute(q.limit(1))
    return result.first() is not None


async def validate_key(
    db: AsyncSession,
    record: SshKey,
    *,
    requester: User,
    owner: User | None = None,
    checker: KeyFormatChecker | None = None,
    admin_key: str | None = None,
) -> str | None:
    """
    Normalize and validate a key before it is flushed.
    Returns the ssh-keygen fingerprint; raises KeyValidationError.

    The acting user is passed explicitly: it decides how much a payload
    conflict reveals about the other key's owner.
    """
    errors: dict[str, list[AppError]] = {}

    def add(field: str, error: AppError) -> None:
        errors.setdefault(field, []).append(error)

    new = _is_new(record)
    checker = checker or default_checker()

    with db.sync_session.no_autoflush:
        if record.title is not None:
            record.title = record.title.strip()
        if new and record.key is not None:
            record.key = normalize_key(record.key)

        key_type = _coerce_key_type(record.key_type)
        if new and not record.identifier and record.owner_id is not None and key_type is not None:
            if owner is None:
                owner = await db.get(User, record.owner_id)
            if owner is not None:
                record.identifier = await _new_identifier(db, owner, key_type)

        if record.owner_id is None:
            add("owner", PresenceError("owner"))
        if not record.title:
            add("title", PresenceError("title"))
        elif len(record.title) > TITLE_LENGTH_LIMIT:
            add("title", LengthError("title", TITLE_LENGTH_LIMIT))
        if not record.identifier:
            add("identifier", PresenceError("identifier"))
        if not record.key:
            add("key", PresenceError("key"))
        if record.key_type is None:
            add("key_type", PresenceError("key_type"))
        elif key_type is None:
            add("key_type", InclusionError("key_type", record.key_type))
        else:
            record.key_type = key_type

        if record.owner_id is not None:
            if record.title and await _taken_within_owner(db, record, SshKey.title, record.title):
                add("title", UniquenessError("title"))
            if record.identifier and await _taken_within_owner(
                db, record, SshKey.identifier, record.identifier
            ):
                add("identifier", UniquenessError("identifier"))

        if not new:
            for field in changed_write_once_fields(record):
                add(field, ImmutableFieldChangedError(field))

        pieces: KeyPieces | None = None
        try:
            pieces = parse_key(record.key)
        except MalformedKeyError as exc:
            add("key", exc)

        fingerprint = None
        if pieces is not None:
            try:
                fingerprint = await checker.check(record.key)
            except (MalformedKeyError, ExternalToolError) as exc:
                add("key", exc)

        if new and pieces is not None:
            if admin_key is None:
                admin_key = load_admin_key()
            try:
                await check_key_uniqueness(db, record.key, requester, admin_key)
            except KeyConflictError as exc:
                add("key", exc)

    if errors:
        logger.info(
            "ssh_key_rejected",
            requester=requester.login,
            title=record.title,
            errors=KeyValidationError(errors).messages(),
        )
        raise KeyValidationError(errors)

    if new:
        record.payload = pieces.payload
    return fingerprint


def _translate_integrity_error(exc: IntegrityError) -> KeyValidationError:
    """Map a storage-level unique index violation back onto the offending field."""
    detail = str(exc.orig)
    if "payload" in detail:
        return KeyValidationError({"key": [KeyConflictError(ConflictReason.OWNED_BY_SOMEONE)]})
    if "identifier" in detail:
        return KeyValidationError({"identifier": [UniquenessError("identifier")]})
    if "title" in detail:
        return KeyValidationError({"title": [UniquenessError("title")]})
    return KeyValidationError({"base": [UniquenessError("key")]})


async def _flush(db: AsyncSession) -> None:
    try:
        await db.flush()
    except IntegrityError as exc:
        raise _translate_integrity_error(exc) from exc


async def create_key(
    db: AsyncSession,
    *,
    owner: User,
    requester: User,
    title: str,
    key: str,
    key_type: KeyType,
    checker: KeyFormatChecker | None = None,
    admin_key: str | None = None,
) -> tuple[SshKey, AddCredential]:
    """
    Validate and stage a new key. The caller commits, then dispatches the event.
    """
    record = SshKey(
        owner_id=owner.id,
        title=title,
        key=key,
        key_type=key_type,
        active=True,
    )
    fingerprint = await validate_key(
        db, record, requester=requester, owner=owner, checker=checker, admin_key=admin_key
    )
    db.add(record)
    await _flush(db)

    logger.info(
        "ssh_key_created",
        requester=requester.login,
        owner=owner.login,
        identifier=record.identifier,
        key_type=record.key_type.value,
        fingerprint=fingerprint,
    )
    return record, AddCredential(owner_id=record.owner_id)


async def update_key(
    db: AsyncSession,
    record: SshKey,
    *,
    requester: User,
    checker: KeyFormatChecker | None = None,
    **changes: Any,
) -> SshKey:
    """
    Apply attribute changes to a saved key. Only the title may actually change;
    on any validation error the in-memory record is restored.
    """
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown SSH key fields: {', '.join(sorted(unknown))}")

    original = {name: getattr(record, name) for name in changes}
    original["title"] = record.title
    for name, value in changes.items():
        setattr(record, name, value)

    try:
        await validate_key(db, record, requester=requester, checker=checker)
    except KeyValidationError:
        for name, value in original.items():
            setattr(record, name, value)
        raise
    await _flush(db)
    return record


async def destroy_key(db: AsyncSession, record: SshKey) -> DeleteCredential:
    """Delete a key and its repository associations; return the sync event."""
    event = DeleteCredential(
        identifier=record.identifier,
        key=record.key,
        owner_tag=record.owner_tag,
        location_tag=record.location_tag,
    )
    removed = await deployment_service.delete_for_key(db, record.id)
    await db.delete(record)
    await db.flush()

    logger.info("ssh_key_deleted", identifier=event.identifier, deployment_credentials=removed)
    return event


async def set_key_active(
    db: AsyncSession,
    record: SshKey,
    active: bool,
    *,
    requester: User,
    admin_key: str | None = None,
) -> SshKey:
    """Lock or unlock a key. Unlocking re-checks the payload against active keys."""
    if record.active == active:
        return record
    if active:
        if admin_key is None:
            admin_key = load_admin_key()
        try:
            await check_key_uniqueness(db, record.key, requester, admin_key)
        except KeyConflictError as exc:
            raise KeyValidationError({"key": [exc]}) from exc
    record.active = active
    await _flush(db)
    logger.info("ssh_key_locked" if not active else "ssh_key_unlocked", identifier=record.identifier)
    return record


async def reset_identifier(db: AsyncSession, record: SshKey) -> str:
    """
    Regenerate the identifier, e.g. after the owner's login changed.
    Writes through a bulk UPDATE so the write-once guard does not apply.
    """
    owner = await db.get(User, record.owner_id)
    if owner is None:
        raise NotFoundError("User", str(record.owner_id))
    new_identifier = await _new_identifier(db, owner, record.key_type)
    await db.execute(
        update(SshKey).where(SshKey.id == record.id).values(identifier=new_identifier)
    )
    logger.info("ssh_key_identifier_reset", key_id=str(record.id), identifier=new_identifier)
    return new_identifier


async def get_key(db: AsyncSession, key_id: uuid.UUID) -> SshKey:
    result = await db.execute(select(SshKey).where(SshKey.id == key_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("SSH key", str(key_id))
    return record


async def list_keys(
    db: AsyncSession,
    owner_id: uuid.UUID,
    key_type: KeyType | None = None,
    active: bool | None = None,
) -> list[SshKey]:
    q = select(SshKey).where(SshKey.owner_id == owner_id)
    if key_type is not None:
        q = q.where(SshKey.key_type == key_type)
    if active is not None:
        q = q.where(SshKey.active == active)
    result = await db.execute(q.order_by(SshKey.created_at))
    return list(result.scalars().all())


async def add_key(
    db: AsyncSession,
    notifier: SyncNotifier,
    **kwargs: Any,
) -> SshKey:
    """create_key, commit, then notify the resync subsystem."""
    try:
        record, event = await create_key(db, **kwargs)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await dispatch_events(notifier, [event])
    return record


async def remove_key(db: AsyncSession, notifier: SyncNotifier, record: SshKey) -> DeleteCredential:
    """destroy_key, commit, then notify the resync subsystem."""
    try:
        event = await destroy_key(db, record)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await dispatch_events(notifier, [event])
    return event
