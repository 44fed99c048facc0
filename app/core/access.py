import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import User
from app.core.exceptions import ForbiddenError, NotFoundError
from app.keys.models import SshKey


def _assert_owner_or_admin(owner_id: uuid.UUID, requester: User) -> None:
    if owner_id != requester.id and not requester.is_admin:
        raise ForbiddenError("You do not have access to this user's keys")


def require_admin(requester: User) -> None:
    if not requester.is_admin:
        raise ForbiddenError("Administrator privileges required")


async def require_managed_user(
    db: AsyncSession, user_id: uuid.UUID, requester: User
) -> User:
    """The user whose keys are being managed: the requester or, for admins, anyone."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User", str(user_id))
    _assert_owner_or_admin(user.id, requester)
    return user


async def require_managed_key(
    db: AsyncSession, key_id: uuid.UUID, requester: User
) -> SshKey:
    result = await db.execute(select(SshKey).where(SshKey.id == key_id))
    key = result.scalar_one_or_none()
    if key is None:
        raise NotFoundError("SSH key", str(key_id))
    _assert_owner_or_admin(key.owner_id, requester)
    return key
