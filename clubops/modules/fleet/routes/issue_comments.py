"""Роуты /fleet/issues/{id}/comments — комментарии к инцидентам."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clubops.modules.fleet.dependencies import get_current_actor_id, get_db
from clubops.modules.fleet.schemas.issue_comment import (
    IssueCommentCreate,
    IssueCommentOut,
    IssueCommentUpdate,
)
from clubops.modules.fleet.services import issue_tracker

router = APIRouter(prefix="/issues/{issue_id}/comments", tags=["issue-comments"])


@router.get("/", response_model=List[IssueCommentOut])
def get_issue_comments(issue_id: UUID, db: Session = Depends(get_db)) -> List[IssueCommentOut]:
    """Получить комментарии инцидента, включая системные"""
    return issue_tracker.list_comments(db, issue_id)


@router.post("/", response_model=IssueCommentOut, status_code=201)
def create_issue_comment(
    issue_id: UUID,
    payload: IssueCommentCreate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueCommentOut:
    return issue_tracker.add_comment(db, issue_id, actor_id, payload.content)


@router.patch("/{comment_id}", response_model=IssueCommentOut)
def update_issue_comment(
    issue_id: UUID,
    comment_id: UUID,
    payload: IssueCommentUpdate,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> IssueCommentOut:
    """Изменить свой комментарий"""
    return issue_tracker.update_comment(db, issue_id, comment_id, actor_id, payload.content)


@router.delete("/{comment_id}", status_code=200)
def delete_issue_comment(
    issue_id: UUID,
    comment_id: UUID,
    db: Session = Depends(get_db),
    actor_id: str = Depends(get_current_actor_id),
) -> dict:
    """Удалить свой комментарий"""
    issue_tracker.delete_comment(db, issue_id, comment_id, actor_id)
    return {"message": "Комментарий удалён"}
