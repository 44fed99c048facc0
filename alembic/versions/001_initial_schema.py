"""Users, SSH public keys and repository deployment credentials

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

key_type_enum = sa.Enum("USER", "DEPLOY", name="keytype")
deploy_permission_enum = sa.Enum("R", "RW+", name="deploypermission")


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("login", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_login", "users", ["login"], unique=True)

    # --- ssh_public_keys ---
    op.create_table(
        "ssh_public_keys",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("owner_id", sa.UUID(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("identifier", sa.String(255), nullable=False),
        sa.Column("key", sa.Text(), nullable=False),
        sa.Column("key_type", key_type_enum, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("payload", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["owner_id"], ["users.id"], name="fk_ssh_public_keys_owner_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ssh_public_keys"),
    )
    op.create_index("ix_ssh_public_keys_owner_id", "ssh_public_keys", ["owner_id"])
    op.create_index(
        "uq_ssh_keys_owner_title",
        "ssh_public_keys",
        ["owner_id", sa.text("lower(title)")],
        unique=True,
    )
    op.create_index(
        "uq_ssh_keys_owner_identifier",
        "ssh_public_keys",
        ["owner_id", sa.text("lower(identifier)")],
        unique=True,
    )
    # Only active keys must have distinct payloads
    op.create_index(
        "uq_ssh_keys_active_payload",
        "ssh_public_keys",
        ["payload"],
        unique=True,
        postgresql_where=sa.text("active"),
    )

    # --- repository_deployment_credentials ---
    op.create_table(
        "repository_deployment_credentials",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("ssh_key_id", sa.UUID(), nullable=False),
        sa.Column("repository", sa.String(255), nullable=False),
        sa.Column("permission", deploy_permission_enum, nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["ssh_key_id"],
            ["ssh_public_keys.id"],
            name="fk_repository_deployment_credentials_ssh_key_id_ssh_public_keys",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_repository_deployment_credentials"),
        sa.UniqueConstraint("ssh_key_id", "repository", name="uq_deploy_cred_key_repo"),
    )
    op.create_index(
        "ix_deploy_cred_ssh_key_id", "repository_deployment_credentials", ["ssh_key_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_deploy_cred_ssh_key_id", table_name="repository_deployment_credentials")
    op.drop_table("repository_deployment_credentials")
    op.drop_index("uq_ssh_keys_active_payload", table_name="ssh_public_keys")
    op.drop_index("uq_ssh_keys_owner_identifier", table_name="ssh_public_keys")
    op.drop_index("uq_ssh_keys_owner_title", table_name="ssh_public_keys")
    op.drop_index("ix_ssh_public_keys_owner_id", table_name="ssh_public_keys")
    op.drop_table("ssh_public_keys")
    op.drop_index("ix_users_login", table_name="users")
    op.drop_table("users")
    deploy_permission_enum.drop(op.get_bind(), checkfirst=True)
    key_type_enum.drop(op.get_bind(), checkfirst=True)
