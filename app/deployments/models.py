import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin, UUIDMixin


class DeployPermission(str, enum.Enum):
    READ = "R"
    READ_WRITE = "RW+"


class RepositoryDeploymentCredential(UUIDMixin, TimestampMixin, Base):
    """Grants a deploy key access to one repository. Deleted with its key."""
    __tablename__ = "repository_deployment_credentials"
    __table_args__ = (
        UniqueConstraint("ssh_key_id", "repository", name="uq_deploy_cred_key_repo"),
        Index("ix_deploy_cred_ssh_key_id", "ssh_key_id"),
    )

    ssh_key_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("ssh_public_keys.id", ondelete="CASCADE"), nullable=False
    )
    # Repository path as gitolite knows it, e.g. "projects/website"
    repository: Mapped[str] = mapped_column(String(255), nullable=False)
    permission: Mapped[DeployPermission] = mapped_column(
        Enum(DeployPermission, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=DeployPermission.READ,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
