"""Tests for the access service: snapshot loading plus decisions, against the database."""

from contextlib import contextmanager

import pytest
from sqlalchemy import event, text

from wikigate.core.access import Operation, Principal, ResourceSnapshot, Visibility
from wikigate.database import engine
from wikigate.exceptions import VisibilityResolutionError
from wikigate.repositories import FileRepository, FolderRepository, PageRepository
from wikigate.services import AccessService

ANONYMOUS = Principal.anonymous()
READER = Principal(user_id="r1", username="reader", is_authenticated=True)
EDITOR = Principal(user_id="e1", username="editor", is_authenticated=True, is_editor=True)
ADMIN = Principal(user_id="a1", username="admin", is_authenticated=True, is_admin=True)


@contextmanager
def count_queries():
    """Count SELECT statements issued inside the block."""
    statements = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        if statement.lstrip().upper().startswith("SELECT"):
            statements.append(statement)

    event.listen(engine, "before_cursor_execute", _record)
    try:
        yield statements
    finally:
        event.remove(engine, "before_cursor_execute", _record)


def _folder_chain(db, depth: int, top_visibility: Visibility):
    """Create nested folders; only the top one sets a visibility. Returns the leaf."""
    repo = FolderRepository(db)
    folder = repo.create("level-0", visibility=top_visibility)
    for level in range(1, depth):
        folder = repo.create(f"level-{level}", parent_id=folder.id)
    db.commit()
    return folder


class TestPages:

    def test_single_check_uses_site_setting_for_inherit(self, db):
        page = PageRepository(db).create("Home", "home")
        db.commit()
        assert AccessService(db, allow_anonymous_reading=True).check_page(ANONYMOUS, page.id, Operation.VIEW)
        assert not AccessService(db, allow_anonymous_reading=False).check_page(ANONYMOUS, page.id, Operation.VIEW)
        assert AccessService(db, allow_anonymous_reading=False).check_page(READER, page.id, Operation.VIEW)

    def test_missing_page_is_denied(self, db):
        decision = AccessService(db).check_page(ADMIN, 12345, Operation.VIEW)
        assert decision.allowed is False
        assert decision.reason == "missing_resource"

    def test_batch_maps_missing_ids_to_false(self, db):
        repo = PageRepository(db)
        public = repo.create("Public", "public", visibility=Visibility.PUBLIC)
        private = repo.create("Private", "private", visibility=Visibility.PRIVATE)
        db.commit()

        result = AccessService(db).check_pages(ANONYMOUS, [public.id, private.id, 999], Operation.VIEW)
        assert result == {public.id: True, private.id: False, 999: False}

    def test_batch_pages_single_query(self, db):
        repo = PageRepository(db)
        ids = [repo.create(f"Page {i}", f"page-{i}").id for i in range(30)]
        db.commit()

        with count_queries() as statements:
            result = AccessService(db).check_pages(EDITOR, ids, Operation.EDIT)
        assert all(result.values())
        assert len(statements) == 1

    def test_visible_pages_preserves_order(self, db):
        repo = PageRepository(db)
        a = repo.create("A", "a", visibility=Visibility.PRIVATE)
        b = repo.create("B", "b", visibility=Visibility.PUBLIC)
        c = repo.create("C", "c")
        db.commit()

        visible = AccessService(db, allow_anonymous_reading=True).visible_pages(ANONYMOUS, [c, a, b])
        assert [p.slug for p in visible] == ["c", "b"]

    def test_deleted_page_visible_to_admin_only(self, db):
        page = PageRepository(db).create("Gone", "gone", visibility=Visibility.PUBLIC)
        page.is_deleted = True
        db.commit()

        service = AccessService(db)
        assert service.check_page(ADMIN, page.id, Operation.VIEW).allowed is True
        assert service.check_page(EDITOR, page.id, Operation.VIEW).allowed is False
        assert service.check_page(ADMIN, page.id, Operation.DELETE).allowed is False


class TestFiles:

    def test_file_inherits_private_folder(self, db):
        leaf = _folder_chain(db, depth=3, top_visibility=Visibility.PRIVATE)
        stored = FileRepository(db).create("notes.txt", folder_id=leaf.id)
        db.commit()

        service = AccessService(db, allow_anonymous_reading=True)
        assert service.check_file(ANONYMOUS, stored.id, Operation.VIEW).allowed is False
        assert service.check_file(READER, stored.id, Operation.VIEW).allowed is True

    def test_own_visibility_overrides_folder(self, db):
        leaf = _folder_chain(db, depth=2, top_visibility=Visibility.PRIVATE)
        stored = FileRepository(db).create("logo.png", folder_id=leaf.id, visibility=Visibility.PUBLIC)
        db.commit()

        assert AccessService(db).check_file(ANONYMOUS, stored.id, Operation.VIEW).allowed is True

    @pytest.mark.parametrize("file_count", [5, 60])
    def test_folder_lookups_scale_with_depth_not_file_count(self, db, file_count):
        leaf = _folder_chain(db, depth=4, top_visibility=Visibility.PRIVATE)
        sibling = FolderRepository(db).create("sibling", parent_id=leaf.parent_id)
        files = FileRepository(db)
        ids = [
            files.create(f"f{i}.txt", folder_id=leaf.id if i % 2 else sibling.id).id
            for i in range(file_count)
        ]
        db.commit()

        with count_queries() as statements:
            result = AccessService(db).check_files(READER, ids, Operation.VIEW)

        assert len(result) == file_count
        assert all(result.values())
        # One query for the files, one per folder level.
        assert len(statements) == 1 + 4

    def test_broken_chain_denies_only_affected_file(self, db):
        folders = FolderRepository(db)
        ok_folder = folders.create("ok", visibility=Visibility.PUBLIC)
        loop_a = folders.create("loop-a")
        loop_b = folders.create("loop-b", parent_id=loop_a.id)
        loop_a.parent_id = loop_b.id
        db.commit()
        files = FileRepository(db)
        good = files.create("good.txt", folder_id=ok_folder.id)
        bad = files.create("bad.txt", folder_id=loop_a.id)
        db.commit()

        result = AccessService(db).check_files(ADMIN, [good.id, bad.id], Operation.VIEW)
        assert result == {good.id: True, bad.id: False}

    def test_single_check_resolution_error_propagates(self, db):
        broken = ResourceSnapshot.file("x", folder_id=424242)

        with pytest.raises(VisibilityResolutionError):
            AccessService(db).decide(ADMIN, broken, Operation.VIEW)

    def test_file_permissions_for_loaded_rows(self, db):
        leaf = _folder_chain(db, depth=1, top_visibility=Visibility.PUBLIC)
        files = FileRepository(db)
        rows = [files.create(f"{i}.txt", folder_id=leaf.id) for i in range(3)]
        db.commit()

        service = AccessService(db)
        assert service.file_permissions(EDITOR, rows, Operation.EDIT) == {r.id: True for r in rows}
        assert service.file_permissions(EDITOR, rows, Operation.DELETE) == {r.id: False for r in rows}
        assert service.file_permissions(ADMIN, rows, Operation.DELETE) == {r.id: True for r in rows}


def _corrupt_visibility(db, table: str, row_id):
    """Store a visibility value outside the enum, as a bad migration might."""
    db.execute(text(f"UPDATE {table} SET visibility = 7 WHERE id = :id"), {"id": row_id})
    db.commit()


class TestMalformedRows:

    def test_page_batch_denies_only_bad_row(self, db):
        repo = PageRepository(db)
        good = repo.create("Good", "good", visibility=Visibility.PUBLIC)
        bad = repo.create("Bad", "bad", visibility=Visibility.PUBLIC)
        db.commit()
        _corrupt_visibility(db, "pages", bad.id)

        service = AccessService(db)
        assert service.check_pages(ANONYMOUS, [good.id, bad.id], Operation.VIEW) == {good.id: True, bad.id: False}
        assert service.visible_pages(ANONYMOUS, [good, bad]) == [good]

    def test_file_batch_denies_only_bad_row(self, db):
        files = FileRepository(db)
        good = files.create("good.txt", visibility=Visibility.PUBLIC)
        bad = files.create("bad.txt", visibility=Visibility.PUBLIC)
        db.commit()
        _corrupt_visibility(db, "files", bad.id)

        service = AccessService(db)
        assert service.check_files(ADMIN, [good.id, bad.id], Operation.VIEW) == {good.id: True, bad.id: False}
        assert service.visible_files(ADMIN, [good, bad]) == [good]
        assert service.file_permissions(ADMIN, [good, bad], Operation.DELETE) == {good.id: True, bad.id: False}


class TestFolders:

    def test_folder_view_follows_chain(self, db):
        leaf = _folder_chain(db, depth=3, top_visibility=Visibility.PRIVATE)
        service = AccessService(db, allow_anonymous_reading=True)
        assert service.check_folder(ANONYMOUS, leaf).allowed is False
        assert service.check_folder(READER, leaf).allowed is True

    def test_one_ancestry_load_for_a_listing(self, db):
        leaf = _folder_chain(db, depth=3, top_visibility=Visibility.PUBLIC)
        files = FileRepository(db)
        rows = [files.create(f"{i}.txt", folder_id=leaf.id) for i in range(10)]
        db.commit()
        for row in rows:
            db.refresh(row)

        service = AccessService(db)
        with count_queries() as statements:
            resolver = service.files_resolver(rows)
            visible = service.visible_files(EDITOR, rows, resolver)
            service.file_permissions(EDITOR, visible, Operation.EDIT, resolver)
            service.file_permissions(EDITOR, visible, Operation.DELETE, resolver)
        assert len(visible) == 10
        assert len(statements) == 3
