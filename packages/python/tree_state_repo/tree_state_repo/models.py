from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from test_repo_tree.models import TreeViewState


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TreeViewStateDocument(BaseModel):
    """
    Stored view state of the test repository tree, one per user and project.

    The tree itself is always rebuilt from the entity lists; only what the
    user had open and selected is kept here.
    """

    user_id: str
    project_id: str
    view_state: TreeViewState = Field(default_factory=TreeViewState)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
