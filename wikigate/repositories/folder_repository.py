"""Folder repository, including the batched ancestry load used to resolve
inherited file visibility."""

from typing import Iterable, List, Optional

from ..core.access import MAX_FOLDER_DEPTH, FolderNode, ResourceSnapshot, Visibility
from ..exceptions import FolderNotFoundError
from ..models import Folder
from .base import BaseRepository


def folder_snapshot(folder: Folder) -> ResourceSnapshot:
    return ResourceSnapshot.folder(
        folder.id,
        visibility=Visibility(folder.visibility or 0),
        is_deleted=bool(folder.is_deleted),
        created_by=folder.created_by,
        created_on=folder.created_on,
    )


def folder_node(folder: Folder) -> FolderNode:
    return FolderNode(
        id=folder.id,
        parent_id=folder.parent_id,
        visibility=Visibility(folder.visibility or 0),
    )


class FolderRepository(BaseRepository[Folder]):
    """Data access layer for folders."""

    model_class = Folder
    not_found_error = FolderNotFoundError

    def create(
        self,
        name: str,
        parent_id: Optional[int] = None,
        visibility: Visibility = Visibility.INHERIT,
        created_by: Optional[str] = None,
    ) -> Folder:
        folder = Folder(
            name=name,
            parent_id=parent_id,
            visibility=int(visibility),
            created_by=created_by,
        )
        self.db.add(folder)
        self.db.flush()
        self.db.refresh(folder)
        return folder

    def load_ancestry(self, folder_ids: Iterable[int]) -> dict[int, FolderNode]:
        """Load the given folders and all their ancestors.

        Walks up one level per query: every distinct parent id discovered at
        one level is fetched together at the next, so the number of queries
        is bounded by tree depth, never by the number of files. Missing
        folders are simply absent; the resolver reports them.
        """
        loaded: dict[int, FolderNode] = {}
        frontier = {fid for fid in folder_ids if fid is not None}

        for _ in range(MAX_FOLDER_DEPTH + 1):
            if not frontier:
                break
            rows = self.db.query(Folder).filter(Folder.id.in_(frontier)).all()
            next_frontier: set[int] = set()
            for row in rows:
                node = folder_node(row)
                loaded[node.id] = node
                if node.parent_id is not None and node.parent_id not in loaded:
                    next_frontier.add(node.parent_id)
            frontier = next_frontier - loaded.keys()

        return loaded

    def ancestor_ids(self, folder_id: int) -> List[int]:
        """*folder_id* followed by its ancestors, nearest first.

        Stops early on a cycle; the resolver reports those.
        """
        nodes = self.load_ancestry([folder_id])
        chain: List[int] = []
        current: Optional[int] = folder_id
        while current is not None and current in nodes and current not in chain:
            chain.append(current)
            current = nodes[current].parent_id
        return chain

    def subtree_levels(self, folder_id: int) -> List[List[int]]:
        """Live descendants of *folder_id*, one list per level, one query per level."""
        levels: List[List[int]] = []
        seen = {folder_id}
        frontier = [folder_id]
        while frontier and len(levels) <= MAX_FOLDER_DEPTH:
            rows = (
                self.db.query(Folder.id)
                .filter(Folder.parent_id.in_(frontier), Folder.is_deleted.is_(False))
                .all()
            )
            frontier = [row.id for row in rows if row.id not in seen]
            seen.update(frontier)
            if frontier:
                levels.append(frontier)
        return levels
