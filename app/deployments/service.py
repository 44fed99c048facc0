import uuid

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AppError
from app.deployments.models import DeployPermission, RepositoryDeploymentCredential
from app.keys.models import SshKey


async def add_deployment_credential(
    db: AsyncSession,
    ssh_key: SshKey,
    repository: str,
    permission: DeployPermission = DeployPermission.READ,
) -> RepositoryDeploymentCredential:
    if not ssh_key.is_deploy_key:
        raise AppError("Only deploy keys can be attached to a repository", status_code=422)
    if not ssh_key.active:
        raise AppError("Key is locked", status_code=422)
    cred = RepositoryDeploymentCredential(
        ssh_key_id=ssh_key.id,
        repository=repository,
        permission=permission,
        active=True,
    )
    db.add(cred)
    await db.flush()
    return cred


async def list_for_key(db: AsyncSession, ssh_key_id: uuid.UUID) -> list[RepositoryDeploymentCredential]:
    result = await db.execute(
        select(RepositoryDeploymentCredential)
        .where(RepositoryDeploymentCredential.ssh_key_id == ssh_key_id)
        .order_by(RepositoryDeploymentCredential.created_at)
    )
    return list(result.scalars().all())


async def delete_for_key(db: AsyncSession, ssh_key_id: uuid.UUID) -> int:
    """Delete every association of a key. Returns the number removed."""
    result = await db.execute(
        delete(RepositoryDeploymentCredential).where(
            RepositoryDeploymentCredential.ssh_key_id == ssh_key_id
        )
    )
    return result.rowcount or 0
