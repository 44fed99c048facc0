import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Index, String, Text, Uuid, event, func, inspect
from sqlalchemy.orm import Mapped, Session, mapped_column

from app.core.exceptions import ImmutableFieldChangedError, KeyValidationError
from app.db.base import Base, TimestampMixin, UUIDMixin
from app.keys.identifiers import split_identifier

TITLE_LENGTH_LIMIT = 255


class KeyType(str, enum.Enum):
    USER = "USER"
    DEPLOY = "DEPLOY"


class SshKey(UUIDMixin, TimestampMixin, Base):
    """SSH public key granting gitolite access. Identity fields are write-once."""
    __tablename__ = "ssh_public_keys"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(TITLE_LENGTH_LIMIT), nullable=False)
    identifier: Mapped[str] = mapped_column(String(255), nullable=False)
    key: Mapped[str] = mapped_column(Text, nullable=False)
    key_type: Mapped[KeyType] = mapped_column(Enum(KeyType), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Base64 body of `key`, set once at creation; backs the active-payload index
    payload: Mapped[str] = mapped_column(Text, nullable=False)

    def __str__(self) -> str:
        return self.title

    @property
    def is_deploy_key(self) -> bool:
        return self.key_type == KeyType.DEPLOY

    @property
    def owner_tag(self) -> str:
        return split_identifier(self.identifier)[0]

    @property
    def location_tag(self) -> str:
        return split_identifier(self.identifier)[1]


WRITE_ONCE_FIELDS = ("identifier", "key", "owner_id", "key_type")


def changed_write_once_fields(record: SshKey) -> list[str]:
    """Write-once attributes modified since the key was loaded. Empty for new keys."""
    state = inspect(record)
    if not state.has_identity:
        return []
    return [name for name in WRITE_ONCE_FIELDS if state.attrs[name].history.has_changes()]


@event.listens_for(Session, "before_flush")
def _reject_write_once_changes(session, flush_context, instances):
    for obj in session.dirty:
        if isinstance(obj, SshKey):
            changed = changed_write_once_fields(obj)
            if changed:
                raise KeyValidationError(
                    {field: [ImmutableFieldChangedError(field)] for field in changed}
                )


Index(
    "uq_ssh_keys_owner_title",
    SshKey.owner_id,
    func.lower(SshKey.title),
    unique=True,
)
Index(
    "uq_ssh_keys_owner_identifier",
    SshKey.owner_id,
    func.lower(SshKey.identifier),
    unique=True,
)
# Storage-level backstop for concurrent creation of the same key
Index(
    "uq_ssh_keys_active_payload",
    SshKey.payload,
    unique=True,
    postgresql_where=SshKey.active == True,  # noqa: E712
    sqlite_where=SshKey.active == True,  # noqa: E712
)
