"""Tests for the page endpoints, with authentication enabled."""

from sqlalchemy import text

from wikigate.core.access import Visibility
from wikigate.core.config import settings
from wikigate.repositories import PageRepository


def _make_page(db, title="Page", visibility=Visibility.INHERIT, is_locked=False, tags=None):
    slug = title.lower().replace(" ", "-")
    page = PageRepository(db).create(title, slug, visibility=visibility, is_locked=is_locked, tags=tags)
    db.commit()
    return page.id


class TestView:

    def test_anonymous_views_public_page(self, client, db):
        page_id = _make_page(db, visibility=Visibility.PUBLIC)
        resp = client.get(f"/api/pages/{page_id}")
        assert resp.status_code == 200
        assert resp.json()["title"] == "Page"

    def test_anonymous_private_page_redirects_to_login(self, client, db):
        page_id = _make_page(db, visibility=Visibility.PRIVATE)
        resp = client.get(f"/api/pages/{page_id}")
        assert resp.status_code == 303
        assert resp.headers["location"] == f"/account/login?return_url=%2Fapi%2Fpages%2F{page_id}"

    def test_authenticated_reader_views_private_page(self, client, db, reader_headers):
        page_id = _make_page(db, visibility=Visibility.PRIVATE)
        assert client.get(f"/api/pages/{page_id}", headers=reader_headers).status_code == 200

    def test_inherit_follows_anonymous_reading_setting(self, client, db, monkeypatch):
        page_id = _make_page(db)
        assert client.get(f"/api/pages/{page_id}").status_code == 200

        monkeypatch.setattr(settings, "allow_anonymous_reading", False)
        assert client.get(f"/api/pages/{page_id}").status_code == 303

    def test_missing_page_is_404_not_redirect(self, client):
        resp = client.get("/api/pages/4242")
        assert resp.status_code == 404
        assert resp.json()["error"] == "PAGE_NOT_FOUND"

    def test_invalid_token_is_anonymous(self, client, db):
        page_id = _make_page(db, visibility=Visibility.PRIVATE)
        resp = client.get(f"/api/pages/{page_id}", headers={"Authorization": "Bearer not.a.token"})
        assert resp.status_code == 303


class TestEdit:

    def test_reader_forbidden_not_redirected(self, client, db, reader_headers):
        page_id = _make_page(db, visibility=Visibility.PUBLIC)
        resp = client.put(f"/api/pages/{page_id}", json={"title": "New"}, headers=reader_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "FORBIDDEN"
        assert "location" not in resp.headers

    def test_anonymous_edit_redirects(self, client, db):
        page_id = _make_page(db, visibility=Visibility.PUBLIC)
        resp = client.put(f"/api/pages/{page_id}", json={"title": "New"})
        assert resp.status_code == 303
        assert resp.headers["location"].startswith("/account/login?return_url=")

    def test_editor_edits_unlocked_page(self, client, db, editor_headers):
        page_id = _make_page(db)
        resp = client.put(f"/api/pages/{page_id}", json={"title": "Renamed"}, headers=editor_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "Renamed"
        assert body["modified_by"] == "editor-1"

    def test_editor_cannot_edit_locked_page(self, client, db, editor_headers):
        page_id = _make_page(db, is_locked=True)
        resp = client.put(f"/api/pages/{page_id}", json={"title": "Nope"}, headers=editor_headers)
        assert resp.status_code == 403

    def test_admin_edits_locked_page(self, client, db, admin_headers):
        page_id = _make_page(db, is_locked=True)
        resp = client.put(f"/api/pages/{page_id}", json={"title": "Yes"}, headers=admin_headers)
        assert resp.status_code == 200

    def test_only_admin_changes_lock(self, client, db, editor_headers, admin_headers):
        page_id = _make_page(db)
        resp = client.put(f"/api/pages/{page_id}", json={"is_locked": True}, headers=editor_headers)
        assert resp.status_code == 403

        resp = client.put(f"/api/pages/{page_id}", json={"is_locked": True}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_locked"] is True

    def test_visibility_change(self, client, db, editor_headers):
        page_id = _make_page(db, visibility=Visibility.PUBLIC)
        resp = client.put(f"/api/pages/{page_id}", json={"visibility": 2}, headers=editor_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/pages/{page_id}").status_code == 303


class TestDeleteAndRestore:

    def test_editor_cannot_delete(self, client, db, editor_headers):
        page_id = _make_page(db)
        assert client.delete(f"/api/pages/{page_id}", headers=editor_headers).status_code == 403

    def test_delete_lifecycle(self, client, db, admin_headers, editor_headers):
        page_id = _make_page(db, visibility=Visibility.PUBLIC)

        assert client.delete(f"/api/pages/{page_id}", headers=admin_headers).status_code == 204

        # Hidden from everyone but admins, including anonymous visitors.
        assert client.get(f"/api/pages/{page_id}", headers=editor_headers).status_code == 403
        assert client.get(f"/api/pages/{page_id}").status_code == 303
        resp = client.get(f"/api/pages/{page_id}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_deleted"] is True

        # Deleting twice is refused, even for admins.
        assert client.delete(f"/api/pages/{page_id}", headers=admin_headers).status_code == 403

        resp = client.post(f"/api/pages/{page_id}/restore", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["is_deleted"] is False
        assert client.get(f"/api/pages/{page_id}").status_code == 200

    def test_restore_requires_admin(self, client, db, editor_headers):
        page_id = _make_page(db)
        assert client.post(f"/api/pages/{page_id}/restore", headers=editor_headers).status_code == 403
        assert client.post(f"/api/pages/{page_id}/restore").status_code == 401


class TestCreate:

    def test_editor_creates_page(self, client, editor_headers):
        resp = client.post(
            "/api/pages",
            json={"title": "Release Notes", "visibility": 2, "tags": ["Ops"]},
            headers=editor_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["slug"] == "release-notes"
        assert body["visibility"] == 2
        assert body["tags"] == ["ops"]
        assert body["created_by"] == "editor-1"

    def test_duplicate_titles_get_distinct_slugs(self, client, editor_headers):
        first = client.post("/api/pages", json={"title": "Intro"}, headers=editor_headers).json()
        second = client.post("/api/pages", json={"title": "Intro"}, headers=editor_headers).json()
        assert first["slug"] == "intro"
        assert second["slug"] == "intro-2"

    def test_reader_cannot_create(self, client, reader_headers):
        assert client.post("/api/pages", json={"title": "X"}, headers=reader_headers).status_code == 403

    def test_anonymous_cannot_create(self, client):
        assert client.post("/api/pages", json={"title": "X"}).status_code == 401


class TestListings:

    def test_tag_listing_filters_private_for_anonymous(self, client, db, reader_headers):
        _make_page(db, "Open Runbook", Visibility.PUBLIC, tags=["ops"])
        _make_page(db, "Secret Runbook", Visibility.PRIVATE, tags=["ops"])
        _make_page(db, "Unrelated", Visibility.PUBLIC, tags=["misc"])

        anon = client.get("/api/pages", params={"tag": "ops"}).json()
        assert [p["title"] for p in anon] == ["Open Runbook"]

        reader = client.get("/api/pages", params={"tag": "OPS"}, headers=reader_headers).json()
        assert [p["title"] for p in reader] == ["Open Runbook", "Secret Runbook"]

    def test_search_filters_private_for_anonymous(self, client, db, reader_headers):
        _make_page(db, "Deploy Guide", Visibility.PUBLIC)
        _make_page(db, "Deploy Secrets", Visibility.PRIVATE)

        anon = client.get("/api/search", params={"q": "deploy"}).json()
        assert {p["title"] for p in anon} == {"Deploy Guide"}

        reader = client.get("/api/search", params={"q": "deploy"}, headers=reader_headers).json()
        assert {p["title"] for p in reader} == {"Deploy Guide", "Deploy Secrets"}

    def test_search_skips_deleted_pages(self, client, db, admin_headers):
        page_id = _make_page(db, "Old Plan", Visibility.PUBLIC)
        client.delete(f"/api/pages/{page_id}", headers=admin_headers)
        assert client.get("/api/search", params={"q": "plan"}, headers=admin_headers).json() == []


class TestPermissionsEndpoint:

    def test_view_map_for_anonymous(self, client, db):
        public_id = _make_page(db, "A", Visibility.PUBLIC)
        private_id = _make_page(db, "B", Visibility.PRIVATE)

        resp = client.get("/api/pages/permissions", params={"ids": f"{public_id},{private_id},999"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["operation"] == "view"
        assert body["permissions"] == {str(public_id): True, str(private_id): False, "999": False}

    def test_edit_map_respects_lock(self, client, db, editor_headers):
        open_id = _make_page(db, "Open")
        locked_id = _make_page(db, "Locked", is_locked=True)

        resp = client.get(
            "/api/pages/permissions",
            params={"ids": f"{open_id},{locked_id}", "operation": "edit"},
            headers=editor_headers,
        )
        assert resp.json()["permissions"] == {str(open_id): True, str(locked_id): False}

    def test_empty_ids(self, client):
        resp = client.get("/api/pages/permissions", params={"ids": ""})
        assert resp.status_code == 200
        assert resp.json()["permissions"] == {}

    def test_bad_ids_rejected(self, client):
        resp = client.get("/api/pages/permissions", params={"ids": "1,two"})
        assert resp.status_code == 400
        assert resp.json()["details"] == {"field": "ids"}

    def test_file_only_operation_rejected(self, client):
        resp = client.get("/api/pages/permissions", params={"ids": "1", "operation": "upload"})
        assert resp.status_code == 400

    def test_unknown_operation_rejected(self, client):
        resp = client.get("/api/pages/permissions", params={"ids": "1", "operation": "publish"})
        assert resp.status_code == 422


class TestMalformedPage:

    def _corrupt(self, db, page_id):
        db.execute(text("UPDATE pages SET visibility = 7 WHERE id = :id"), {"id": page_id})
        db.commit()

    def test_single_route_denies_instead_of_failing(self, client, db, reader_headers):
        page_id = _make_page(db, "Broken", Visibility.PUBLIC)
        self._corrupt(db, page_id)

        anon = client.get(f"/api/pages/{page_id}")
        assert anon.status_code == 303
        assert client.get(f"/api/pages/{page_id}", headers=reader_headers).status_code == 403

    def test_listing_and_permissions_keep_good_pages(self, client, db):
        good = _make_page(db, "Good Runbook", Visibility.PUBLIC, tags=["ops"])
        bad = _make_page(db, "Bad Runbook", Visibility.PUBLIC, tags=["ops"])
        self._corrupt(db, bad)

        listed = client.get("/api/pages", params={"tag": "ops"}).json()
        assert [p["title"] for p in listed] == ["Good Runbook"]

        searched = client.get("/api/search", params={"q": "runbook"}).json()
        assert [p["title"] for p in searched] == ["Good Runbook"]

        perms = client.get("/api/pages/permissions", params={"ids": f"{good},{bad}"}).json()
        assert perms["permissions"] == {str(good): True, str(bad): False}


class TestSearchWildcards:

    def test_percent_and_underscore_match_literally(self, client, db):
        _make_page(db, "Growth 100% plan", Visibility.PUBLIC)
        _make_page(db, "Growth 1000 plan", Visibility.PUBLIC)
        _make_page(db, "snake_case guide", Visibility.PUBLIC)
        _make_page(db, "snakeXcase guide", Visibility.PUBLIC)

        assert [p["title"] for p in client.get("/api/search", params={"q": "100%"}).json()] == ["Growth 100% plan"]
        assert [p["title"] for p in client.get("/api/search", params={"q": "e_c"}).json()] == ["snake_case guide"]
