from __future__ import annotations

from typing import Iterable, List, Optional

from test_repo_tree.models import SelectedNode, TreeViewState

from .repository import get_document, upsert_view_state


def _dedupe(values: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        if not value or value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result


async def get_tree_view_state(user_id: str, project_id: str) -> TreeViewState:
    doc = await get_document(user_id, project_id)
    return doc.view_state


async def update_tree_view_state(
    user_id: str,
    project_id: str,
    expanded_ids: Iterable[str],
    selected: Optional[SelectedNode],
    panel_width: Optional[int] = None,
) -> TreeViewState:
    if panel_width is None:
        # Keep the stored width when the caller does not send one.
        panel_width = (await get_document(user_id, project_id)).view_state.panel_width
    state = TreeViewState(
        expanded_ids=_dedupe(expanded_ids),
        selected=selected,
        panel_width=panel_width,
    )
    doc = await upsert_view_state(user_id, project_id, state)
    return doc.view_state
