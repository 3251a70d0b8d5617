def build_folder_tree(folders: list[dict]) -> list[dict]:
    """
    Nest folder rows under their parents, keeping input order at every level.
    A folder whose parent is missing (archived or foreign) is promoted to the root.
    """
    by_id = {folder["id"]: {**folder, "children": []} for folder in folders}
    roots: list[dict] = []
    for folder in folders:
        node = by_id[folder["id"]]
        parent = by_id.get(folder.get("parent_id")) if folder.get("parent_id") else None
        if parent is not None and parent is not node:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


async def folder_belongs_to(store, folder_id: str, user_id: str) -> bool:
    """True if `folder_id` names an active folder owned by `user_id`."""
    rows = await store.select(
        "folders",
        filters={"id": folder_id, "user_id": user_id, "is_archived": False},
        columns="id",
        limit=1,
    )
    return bool(rows)
