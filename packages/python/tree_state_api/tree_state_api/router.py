"""FastAPI router for persisting the test repository tree view state."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from test_repo_tree.models import SelectedNode, TreeViewState
from tree_state_repo import get_tree_view_state, update_tree_view_state

from .identity import get_user_id

router = APIRouter(prefix="/settings", tags=["settings"])


class TreeViewStatePayload(BaseModel):
    expanded_ids: list[str] = Field(default_factory=list)
    selected: Optional[SelectedNode] = None
    panel_width: Optional[int] = Field(default=None, ge=120, le=1200)


@router.get("/test-repo-tree/{project_id}", response_model=TreeViewState)
async def read_tree_view_state(project_id: str, user_id: str = Depends(get_user_id)):
    return await get_tree_view_state(user_id=user_id, project_id=project_id)


@router.put("/test-repo-tree/{project_id}", response_model=TreeViewState)
async def update_tree_view_state_endpoint(
    project_id: str,
    payload: TreeViewStatePayload,
    user_id: str = Depends(get_user_id),
):
    return await update_tree_view_state(
        user_id=user_id,
        project_id=project_id,
        expanded_ids=payload.expanded_ids,
        selected=payload.selected,
        panel_width=payload.panel_width,
    )
