from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DeleteRequestCreate(BaseModel):
    note_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=1000)


class DeleteRequestDecision(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class DeleteRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    note_id: uuid.UUID
    note_title: str
    requester_id: uuid.UUID
    reason: Optional[str] = None
    status: str
    decided_by: Optional[uuid.UUID] = None
    decided_at: Optional[datetime] = None
    decision_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
