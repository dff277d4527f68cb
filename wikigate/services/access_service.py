"""Access service: loads snapshots and hands them to the decision engine.

Deep module: call sites ask "may this principal do X to page 7?" or "which of
these 200 files may they see?" and never deal with snapshot projection,
inherited visibility, or how many queries it takes.

Loading strategy:
    - single checks: one query for the resource, plus one query per folder
      level for Inherit files and folders
    - batch checks: one query for all resources, one query per folder level
      for all distinct folders together
    - ids that do not exist map to False in batch results, and so do rows
      that cannot be projected into a snapshot
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.access import Decision, Operation, Principal, ResourceKind, ResourceSnapshot, Visibility
from ..core.config import settings
from ..models import Folder, Page, StoredFile
from ..repositories.file_repository import FileRepository, file_snapshot
from ..repositories.folder_repository import FolderRepository, folder_snapshot
from ..repositories.page_repository import PageRepository, page_snapshot
from .batch_authorization import authorize_batch, filter_authorized, project_snapshots
from .permission_service import evaluate
from .visibility import VisibilityResolver

logger = logging.getLogger(__name__)


class AccessService:
    """Authorization checks backed by the repositories.

    Public methods:
        page_snapshot / file_snapshot -- load one snapshot (or None)
        check_page / check_file       -- single decision
        check_folder                  -- single decision on a loaded folder row
        check_pages / check_files     -- {id: bool} for many ids
        visible_pages / visible_files -- filter already-loaded rows
        file_permissions              -- {id: bool} for already-loaded rows
        resolver_for / files_resolver -- VisibilityResolver for a set of resources
    """

    def __init__(self, db: Session, allow_anonymous_reading: Optional[bool] = None):
        self.db = db
        self.page_repo = PageRepository(db)
        self.file_repo = FileRepository(db)
        self.folder_repo = FolderRepository(db)
        if allow_anonymous_reading is None:
            allow_anonymous_reading = settings.allow_anonymous_reading
        self.allow_anonymous_reading = allow_anonymous_reading

    # ------------------------------------------------------------------
    # Snapshots and resolvers
    # ------------------------------------------------------------------

    def page_snapshot(self, page_id: int) -> Optional[ResourceSnapshot]:
        return self.page_repo.get_snapshot(page_id)

    def file_snapshot(self, file_id: str) -> Optional[ResourceSnapshot]:
        return self.file_repo.get_snapshot(file_id)

    def resolver_for(self, snapshots: Iterable[ResourceSnapshot]) -> VisibilityResolver:
        """Build a resolver with every folder the given snapshots inherit from."""
        folder_ids = set()
        for s in snapshots:
            if s.visibility.is_concrete:
                continue
            if s.kind is ResourceKind.FOLDER:
                folder_ids.add(s.id)
            elif s.kind is ResourceKind.FILE and s.folder_id is not None:
                folder_ids.add(s.folder_id)
        return self._resolver(folder_ids)

    def files_resolver(self, files: Iterable[StoredFile]) -> VisibilityResolver:
        """Resolver for file rows, built from the raw columns.

        Reading the columns directly keeps a row with a malformed visibility
        from failing the load; the row itself is denied later.
        """
        folder_ids = {
            f.folder_id
            for f in files
            if f.folder_id is not None and (f.visibility or 0) == Visibility.INHERIT
        }
        return self._resolver(folder_ids)

    def _resolver(self, folder_ids: set) -> VisibilityResolver:
        folders = self.folder_repo.load_ancestry(folder_ids) if folder_ids else {}
        return VisibilityResolver(folders, self.allow_anonymous_reading)

    # ------------------------------------------------------------------
    # Single checks
    # ------------------------------------------------------------------

    def check_page(self, principal: Principal, page_id: int, operation: Operation) -> Decision:
        return self.decide(principal, self.page_snapshot(page_id), operation)

    def check_file(self, principal: Principal, file_id: str, operation: Operation) -> Decision:
        return self.decide(principal, self.file_snapshot(file_id), operation)

    def check_folder(self, principal: Principal, folder: Folder) -> Decision:
        """May the principal see this folder's contents?"""
        return self.decide(principal, folder_snapshot(folder), Operation.VIEW)

    def decide(
        self,
        principal: Principal,
        snapshot: Optional[ResourceSnapshot],
        operation: Operation,
    ) -> Decision:
        """Resolve inherited visibility for one snapshot, then evaluate.

        Resolution errors propagate; the framework adapter turns them into
        a logged denial.
        """
        if snapshot is None:
            return Decision.deny("missing_resource")
        resolved = self.resolver_for([snapshot]).resolve(snapshot)
        return evaluate(principal, resolved, operation)

    # ------------------------------------------------------------------
    # Batch checks
    # ------------------------------------------------------------------

    def check_pages(
        self, principal: Principal, page_ids: Iterable[int], operation: Operation
    ) -> dict[int, bool]:
        page_ids = list(dict.fromkeys(page_ids))
        pairs = project_snapshots(self.page_repo.get_many(page_ids), page_snapshot)
        return self._batch(principal, page_ids, [s for _, s in pairs], operation)

    def check_files(
        self, principal: Principal, file_ids: Iterable[str], operation: Operation
    ) -> dict[str, bool]:
        file_ids = list(dict.fromkeys(file_ids))
        pairs = project_snapshots(self.file_repo.get_many(file_ids), file_snapshot)
        return self._batch(principal, file_ids, [s for _, s in pairs], operation)

    def visible_pages(self, principal: Principal, pages: Iterable[Page]) -> List[Page]:
        """Pages from *pages* the principal may view, in input order."""
        resolver = VisibilityResolver({}, self.allow_anonymous_reading)
        return filter_authorized(principal, pages, Operation.VIEW, page_snapshot, resolver)

    def visible_files(
        self,
        principal: Principal,
        files: Iterable[StoredFile],
        resolver: Optional[VisibilityResolver] = None,
    ) -> List[StoredFile]:
        """Files from *files* the principal may view, in input order.

        Pass *resolver* to reuse one folder-ancestry load across calls.
        """
        files = list(files)
        if resolver is None:
            resolver = self.files_resolver(files)
        return filter_authorized(principal, files, Operation.VIEW, file_snapshot, resolver)

    def file_permissions(
        self,
        principal: Principal,
        files: Iterable[StoredFile],
        operation: Operation,
        resolver: Optional[VisibilityResolver] = None,
    ) -> dict[str, bool]:
        """{file_id: allowed} for rows the caller already holds.

        Only view reads visibility, so edit and delete need no resolver.
        """
        files = list(files)
        if resolver is None and operation is Operation.VIEW:
            resolver = self.files_resolver(files)
        pairs = project_snapshots(files, file_snapshot)
        decided = authorize_batch(principal, [s for _, s in pairs], operation, resolver)
        return {f.id: decided.get(f.id, False) for f in files}

    def _batch(self, principal, ids, snapshots, operation) -> dict:
        resolver = self.resolver_for(snapshots)
        decided = authorize_batch(principal, snapshots, operation, resolver)
        missing = [i for i in ids if i not in decided]
        if missing:
            logger.debug("Batch check: %d requested ids not decided, denying them", len(missing))
        return {i: decided.get(i, False) for i in ids}
