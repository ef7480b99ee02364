from __future__ import annotations

from typing import Any

from loguru import logger
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from test_repo_tree.models import TreeViewState

from . import db
from .models import TreeViewStateDocument, utcnow

COLLECTION_NAME = "tree_view_state"


def _collection():
    return db.get_db()[COLLECTION_NAME]


def _document_id(user_id: str, project_id: str) -> str:
    return f"{user_id}:{project_id}"


def _doc_to_model(doc: dict[str, Any]) -> TreeViewStateDocument:
    payload = {
        "user_id": doc["user_id"],
        "project_id": doc["project_id"],
        "view_state": doc.get("view_state") or {},
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }
    return TreeViewStateDocument.model_validate(payload)


async def get_document(user_id: str, project_id: str) -> TreeViewStateDocument:
    """Load the stored state, creating the default document on first access."""

    collection = _collection()
    doc_id = _document_id(user_id, project_id)
    doc = await collection.find_one({"_id": doc_id})
    if doc:
        return _doc_to_model(doc)

    now = utcnow()
    record = {
        "_id": doc_id,
        "user_id": user_id,
        "project_id": project_id,
        "view_state": TreeViewState().model_dump(mode="json"),
        "created_at": now,
        "updated_at": now,
    }
    try:
        await collection.insert_one(record)
    except DuplicateKeyError:
        # Another request created it between our read and write.
        doc = await collection.find_one({"_id": doc_id})
        if doc:
            return _doc_to_model(doc)
        raise
    logger.debug("Created tree view state {doc_id}", doc_id=doc_id)
    return _doc_to_model(record)


async def upsert_view_state(
    user_id: str,
    project_id: str,
    view_state: TreeViewState,
) -> TreeViewStateDocument:
    collection = _collection()
    doc_id = _document_id(user_id, project_id)
    now = utcnow()
    doc = await collection.find_one_and_update(
        {"_id": doc_id},
        {
            "$set": {
                "user_id": user_id,
                "project_id": project_id,
                "view_state": view_state.model_dump(mode="json"),
                "updated_at": now,
            },
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    if not doc:
        doc = {
            "_id": doc_id,
            "user_id": user_id,
            "project_id": project_id,
            "view_state": view_state.model_dump(mode="json"),
            "created_at": now,
            "updated_at": now,
        }
    return _doc_to_model(doc)
