"""Tree view state repository: per-user, per-project expansion and selection."""

from .models import TreeViewStateDocument
from .service import get_tree_view_state, update_tree_view_state

__all__ = [
    "TreeViewStateDocument",
    "get_tree_view_state",
    "update_tree_view_state",
]
