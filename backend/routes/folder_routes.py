import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from auth import get_current_user
from database import get_store
from services.folder_service import build_folder_tree, folder_belongs_to

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["Folders"])


class FolderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = ""
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    color: str = "#6B7280"
    icon: str = "folder"


class FolderUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, alias="parentId")


@router.get("")
async def list_folders(tree: bool = False, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    try:
        folders = await store.select(
            "folders",
            filters={"user_id": user_id, "is_archived": False},
            order="sort_order.asc",
        )
    except Exception as e:
        logger.error(f"Error fetching folders: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch folders")
    return {"folders": build_folder_tree(folders) if tree else folders}


@router.post("")
async def create_folder(body: FolderCreate, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Folder name is required")
    try:
        if body.parent_id and not await folder_belongs_to(store, body.parent_id, user_id):
            raise HTTPException(status_code=404, detail="Parent folder not found")
        folder = await store.insert("folders", {
            "user_id": user_id,
            "name": body.name.strip(),
            "parent_id": body.parent_id,
            "color": body.color,
            "icon": body.icon,
        })
        return {"folder": folder}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating folder: {e}")
        raise HTTPException(status_code=500, detail="Failed to create folder")


@router.put("/{folder_id}")
async def update_folder(
    folder_id: str,
    body: FolderUpdate,
    user_id: str = Depends(get_current_user),
    store=Depends(get_store),
):
    changes = body.model_dump(exclude_unset=True)
    parent_id = changes.get("parent_id")
    try:
        if parent_id and (parent_id == folder_id or not await folder_belongs_to(store, parent_id, user_id)):
            raise HTTPException(status_code=404, detail="Parent folder not found")
        if changes:
            rows = await store.update("folders", {"id": folder_id, "user_id": user_id}, changes)
        else:
            rows = await store.select("folders", filters={"id": folder_id, "user_id": user_id}, limit=1)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating folder {folder_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update folder")
    if not rows:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"folder": rows[0]}


@router.delete("/{folder_id}")
async def delete_folder(folder_id: str, user_id: str = Depends(get_current_user), store=Depends(get_store)):
    """Archive the folder. Children are not touched and surface at the root of the tree."""
    try:
        await store.update("folders", {"id": folder_id, "user_id": user_id}, {"is_archived": True})
        return {"success": True}
    except Exception as e:
        logger.error(f"Error deleting folder {folder_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete folder")
