"""Tests for the batch aggregator."""

import itertools

from wikigate.core.access import FolderNode, Operation, Principal, ResourceSnapshot, Visibility
from wikigate.services.batch_authorization import (
    authorize_batch,
    authorize_granted,
    filter_authorized,
    project_snapshots,
)
from wikigate.services.permission_service import check_permission
from wikigate.services.visibility import VisibilityResolver

ANONYMOUS = Principal.anonymous()
READER = Principal(user_id="r1", username="reader", is_authenticated=True)
EDITOR = Principal(user_id="e1", username="editor", is_authenticated=True, is_editor=True)
ADMIN = Principal(user_id="a1", username="admin", is_authenticated=True, is_admin=True)


def _mixed_pages(n: int = 100) -> list[ResourceSnapshot]:
    """Even ids public, odd ids private."""
    return [
        ResourceSnapshot.page(i, visibility=Visibility.PUBLIC if i % 2 == 0 else Visibility.PRIVATE)
        for i in range(n)
    ]


class TestAuthorizeBatch:

    def test_empty_input(self):
        assert authorize_batch(ADMIN, [], Operation.VIEW) == {}
        assert authorize_granted(ADMIN, [], Operation.VIEW) == {}

    def test_anonymous_sees_only_public_half(self):
        result = authorize_batch(ANONYMOUS, _mixed_pages(), Operation.VIEW)
        assert len(result) == 100
        granted = [i for i, ok in result.items() if ok]
        assert len(granted) == 50
        assert granted == list(range(0, 100, 2))

    def test_granted_mode_emits_only_true(self):
        result = authorize_granted(ANONYMOUS, _mixed_pages(), Operation.VIEW)
        assert set(result) == set(range(0, 100, 2))
        assert all(result.values())

    def test_duplicates_collapse_first_wins(self):
        first = ResourceSnapshot.page(7, visibility=Visibility.PUBLIC)
        second = ResourceSnapshot.page(7, visibility=Visibility.PRIVATE)
        result = authorize_batch(ANONYMOUS, [first, second], Operation.VIEW)
        assert result == {7: True}

    def test_order_of_first_appearance(self):
        snapshots = [ResourceSnapshot.page(i, visibility=Visibility.PUBLIC) for i in (5, 3, 9)]
        assert list(authorize_batch(READER, snapshots, Operation.VIEW)) == [5, 3, 9]

    def test_consistent_with_single_checks(self):
        snapshots = [
            ResourceSnapshot.page(i, visibility=vis, is_locked=locked, is_deleted=deleted)
            for i, (vis, locked, deleted) in enumerate(itertools.product(
                (Visibility.PUBLIC, Visibility.PRIVATE), (False, True), (False, True)
            ))
        ]
        for principal, op in itertools.product(
            (ANONYMOUS, READER, EDITOR, ADMIN), (Operation.VIEW, Operation.EDIT, Operation.DELETE)
        ):
            for snapshot in snapshots:
                single = check_permission(principal, snapshot, op)
                assert authorize_batch(principal, [snapshot], op) == {snapshot.id: single}


class TestPartialFailure:

    def test_broken_folder_chain_denies_only_that_file(self):
        folders = {1: FolderNode(1, None, Visibility.PUBLIC), 2: FolderNode(2, 404)}
        resolver = VisibilityResolver(folders, allow_anonymous_reading=True)
        snapshots = [
            ResourceSnapshot.file("good", folder_id=1),
            ResourceSnapshot.file("broken", folder_id=2),
            ResourceSnapshot.file("public", visibility=Visibility.PUBLIC),
        ]
        result = authorize_batch(ADMIN, snapshots, Operation.VIEW, resolver)
        assert result == {"good": True, "broken": False, "public": True}

    def test_failure_is_logged_at_error(self, caplog):
        resolver = VisibilityResolver({}, allow_anonymous_reading=True)
        with caplog.at_level("ERROR"):
            result = authorize_batch(
                READER, [ResourceSnapshot.file("orphan", folder_id=12)], Operation.VIEW, resolver
            )
        assert result == {"orphan": False}
        assert any(getattr(r, "resource_id", None) == "orphan" for r in caplog.records)

    def test_unsupported_operation_denies_every_item(self):
        result = authorize_batch(ADMIN, _mixed_pages(4), Operation.UPLOAD)
        assert result == {0: False, 1: False, 2: False, 3: False}

    def test_inherit_without_resolver_is_denied(self):
        result = authorize_batch(ADMIN, [ResourceSnapshot.page(1)], Operation.VIEW)
        assert result == {1: False}


class TestFilterAuthorized:

    def test_keeps_input_order_and_items(self):
        rows = [{"id": i, "vis": Visibility.PUBLIC if i != 2 else Visibility.PRIVATE} for i in (4, 2, 8)]
        kept = filter_authorized(
            ANONYMOUS,
            rows,
            Operation.VIEW,
            lambda row: ResourceSnapshot.page(row["id"], visibility=row["vis"]),
        )
        assert [row["id"] for row in kept] == [4, 8]

    def test_duplicate_items_kept_once(self):
        row = {"id": 1}
        kept = filter_authorized(
            ANONYMOUS,
            [row, row],
            Operation.VIEW,
            lambda r: ResourceSnapshot.page(r["id"], visibility=Visibility.PUBLIC),
        )
        assert kept == [row]

    def test_unprojectable_item_dropped_rest_kept(self, caplog):
        rows = [{"id": 1, "vis": 1}, {"id": 2, "vis": 7}, {"id": 3, "vis": 1}]
        with caplog.at_level("ERROR"):
            kept = filter_authorized(
                ANONYMOUS,
                rows,
                Operation.VIEW,
                lambda r: ResourceSnapshot.page(r["id"], visibility=Visibility(r["vis"])),
            )
        assert [r["id"] for r in kept] == [1, 3]
        assert any(r.levelname == "ERROR" for r in caplog.records)


class TestProjectSnapshots:

    def test_pairs_in_order_without_failures(self):
        rows = [{"id": 5, "vis": 2}, {"id": 6, "vis": 99}, {"id": 4, "vis": 0}]
        pairs = project_snapshots(rows, lambda r: ResourceSnapshot.page(r["id"], visibility=Visibility(r["vis"])))
        assert [(row["id"], snap.visibility) for row, snap in pairs] == [
            (5, Visibility.PRIVATE),
            (4, Visibility.INHERIT),
        ]
