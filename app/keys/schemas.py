import uuid
from datetime import datetime

from pydantic import BaseModel

from app.keys.models import KeyType


class KeyCreate(BaseModel):
    title: str  # trimmed and length-checked by validate_key
    key: str  # pasted public key text, cleaned up before validation
    key_type: KeyType = KeyType.USER


class KeyUpdate(BaseModel):
    title: str  # trimmed and length-checked by validate_key


class KeyResponse(BaseModel):
    model_config = {"from_attributes": True}
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    identifier: str
    key: str
    key_type: KeyType
    active: bool
    owner_tag: str
    location_tag: str
    created_at: datetime
