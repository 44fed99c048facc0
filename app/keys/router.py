import uuid

from fastapi import APIRouter

from app.core.access import require_admin, require_managed_key, require_managed_user
from app.core.dependencies import CurrentUser, DbSession, Notifier
from app.keys import service as key_service
from app.keys.models import KeyType
from app.keys.schemas import KeyCreate, KeyResponse, KeyUpdate

router = APIRouter(prefix="/users/{user_id}/keys", tags=["ssh-keys"])
key_router = APIRouter(prefix="/keys/{key_id}", tags=["ssh-keys"])


@router.get("", response_model=list[KeyResponse])
async def list_keys(
    user_id: uuid.UUID,
    user: CurrentUser,
    db: DbSession,
    key_type: KeyType | None = None,
    active: bool | None = None,
):
    owner = await require_managed_user(db, user_id=user_id, requester=user)
    return await key_service.list_keys(db, owner.id, key_type=key_type, active=active)


@router.post("", response_model=KeyResponse, status_code=201)
async def add_key(user_id: uuid.UUID, body: KeyCreate, user: CurrentUser, db: DbSession, notifier: Notifier):
    owner = await require_managed_user(db, user_id=user_id, requester=user)
    return await key_service.add_key(
        db,
        notifier,
        owner=owner,
        requester=user,
        title=body.title,
        key=body.key,
        key_type=body.key_type,
    )


@key_router.patch("", response_model=KeyResponse)
async def rename_key(key_id: uuid.UUID, body: KeyUpdate, user: CurrentUser, db: DbSession):
    record = await require_managed_key(db, key_id=key_id, requester=user)
    try:
        await key_service.update_key(db, record, requester=user, title=body.title)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return record


@key_router.delete("", status_code=204)
async def delete_key(key_id: uuid.UUID, user: CurrentUser, db: DbSession, notifier: Notifier):
    record = await require_managed_key(db, key_id=key_id, requester=user)
    await key_service.remove_key(db, notifier, record)


@key_router.post("/lock", response_model=KeyResponse)
async def lock_key(key_id: uuid.UUID, user: CurrentUser, db: DbSession):
    require_admin(user)
    record = await require_managed_key(db, key_id=key_id, requester=user)
    try:
        await key_service.set_key_active(db, record, False, requester=user)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return record


@key_router.post("/unlock", response_model=KeyResponse)
async def unlock_key(key_id: uuid.UUID, user: CurrentUser, db: DbSession):
    require_admin(user)
    record = await require_managed_key(db, key_id=key_id, requester=user)
    try:
        await key_service.set_key_active(db, record, True, requester=user)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return record
