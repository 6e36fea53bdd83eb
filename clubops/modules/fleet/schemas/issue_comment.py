"""
Схемы для комментариев к инцидентам
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class IssueCommentBase(BaseModel):
    content: str


class IssueCommentCreate(IssueCommentBase):
    pass


class IssueCommentUpdate(BaseModel):
    content: str


class IssueCommentOut(IssueCommentBase):
    id: UUID
    issue_id: UUID
    author_id: Optional[str] = None
    is_system_message: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
