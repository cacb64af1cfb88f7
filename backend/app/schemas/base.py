"""Shared schema building blocks."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Read model populated straight from ORM rows."""

    # No whitespace stripping: message text is stored and returned verbatim
    model_config = ConfigDict(from_attributes=True)


class TimestampMixin(BaseModel):
    created_at: datetime
    updated_at: datetime


class IDMixin(BaseModel):
    id: UUID


class OwnerMixin(BaseModel):
    """The kid a conversation belongs to."""

    user_id: UUID
