"""Resolution of inherited visibility.

A resource marked ``Visibility.INHERIT`` takes its effective visibility from
the scope that contains it:

    - pages inherit the site-wide "allow anonymous reading" setting
    - files inherit from their folder, which may itself inherit from its
      parent, up to the root; a chain that stays INHERIT all the way up
      falls back to the site-wide setting
    - folders follow the same chain starting at themselves

The resolver works on folders that were loaded up front (see
``FolderRepository.load_ancestry``) so resolving a batch of files never
costs one query per file. Results are memoised per folder for the lifetime
of the resolver, which is one request.
"""

from __future__ import annotations

from typing import Mapping, Optional

from ..core.access import MAX_FOLDER_DEPTH, FolderNode, ResourceKind, ResourceSnapshot, Visibility
from ..exceptions import VisibilityResolutionError


def site_default(allow_anonymous_reading: bool) -> Visibility:
    return Visibility.PUBLIC if allow_anonymous_reading else Visibility.PRIVATE


class VisibilityResolver:
    """Turns INHERIT snapshots into concrete ones.

    Raises ``VisibilityResolutionError`` when a folder chain references a
    folder that was not loaded, loops back on itself, or is deeper than
    ``MAX_FOLDER_DEPTH``. Batch callers catch it per item.
    """

    def __init__(self, folders: Mapping[int, FolderNode], allow_anonymous_reading: bool):
        self._folders = folders
        self._default = site_default(allow_anonymous_reading)
        self._memo: dict[int, Visibility] = {}

    def resolve(self, snapshot: ResourceSnapshot) -> ResourceSnapshot:
        if snapshot.visibility.is_concrete:
            return snapshot
        if snapshot.kind is ResourceKind.FOLDER:
            return snapshot.with_visibility(self.folder_visibility(snapshot.id))
        if snapshot.kind is ResourceKind.FILE and snapshot.folder_id is not None:
            return snapshot.with_visibility(self.folder_visibility(snapshot.folder_id))
        return snapshot.with_visibility(self._default)

    def __call__(self, snapshot: ResourceSnapshot) -> ResourceSnapshot:
        return self.resolve(snapshot)

    def folder_visibility(self, folder_id: int) -> Visibility:
        """Effective visibility of a folder, walking up until a concrete value."""
        if folder_id in self._memo:
            return self._memo[folder_id]

        chain: list[int] = []
        seen: set[int] = set()
        current: Optional[int] = folder_id
        resolved = self._default

        while current is not None:
            if current in self._memo:
                resolved = self._memo[current]
                break
            if current in seen:
                raise VisibilityResolutionError(
                    f"Folder hierarchy contains a cycle at folder {current}", folder_id=current
                )
            if len(chain) >= MAX_FOLDER_DEPTH:
                raise VisibilityResolutionError(
                    f"Folder hierarchy deeper than {MAX_FOLDER_DEPTH} levels", folder_id=folder_id
                )
            node = self._folders.get(current)
            if node is None:
                raise VisibilityResolutionError(
                    f"Folder {current} was not loaded", folder_id=current
                )
            seen.add(current)
            chain.append(current)
            if node.visibility.is_concrete:
                resolved = node.visibility
                break
            current = node.parent_id

        for visited in chain:
            self._memo[visited] = resolved
        return resolved
