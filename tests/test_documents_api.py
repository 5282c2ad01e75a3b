"""Tests for the document API endpoints."""

from tests.conftest import OWNER_B, make_document, owner_headers


def _create(client, headers=None, **payload):
    resp = client.post("/api/documents", json=make_document(**payload), headers=headers or owner_headers())
    assert resp.status_code == 201, resp.text
    return resp.json()


def _create_folder(client, name, headers=None):
    resp = client.post("/api/folders", json={"name": name}, headers=headers or owner_headers())
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestIdentity:

    def test_missing_owner_header_is_401(self, client):
        assert client.get("/api/documents").status_code == 401
        assert client.post("/api/documents", json=make_document()).status_code == 401

    def test_other_owners_document_is_404(self, client):
        doc = _create(client, headers=owner_headers(OWNER_B))
        resp = client.get(f"/api/documents/{doc['id']}", headers=owner_headers())
        assert resp.status_code == 404
        assert resp.json()["error"] == "DOCUMENT_NOT_FOUND"


class TestCreateAndRead:

    def test_create_returns_version_one(self, client):
        doc = _create(client, title="Essay")
        assert doc["title"] == "Essay"
        assert doc["version"] == 1
        assert doc["owner_id"] == "owner-a"
        assert doc["last_modified_by"] == "owner-a"
        assert doc["formatting"] == {"ranges": [], "paragraphs": {}}

    def test_create_with_formatting_in_short_form(self, client):
        doc = _create(
            client,
            content="Hello world",
            formatting={"ranges": [{"start": 0, "end": 5, "attributes": {"bold": True}}]},
        )
        assert doc["formatting"]["ranges"] == [
            {"startOffset": 0, "endOffset": 5, "attributes": {"bold": True}}
        ]

    def test_formatting_out_of_bounds_is_400(self, client):
        resp = client.post(
            "/api/documents",
            json=make_document(content="Hi", formatting={"ranges": [{"start": 0, "end": 3}]}),
            headers=owner_headers(),
        )
        assert resp.status_code == 400
        assert resp.json()["details"] == {"field": "formatting"}

    def test_unknown_document_type_is_422(self, client):
        resp = client.post("/api/documents", json=make_document(document_type="video"), headers=owner_headers())
        assert resp.status_code == 422

    def test_create_in_folder_reports_folder_name(self, client):
        folder = _create_folder(client, "Essays")
        doc = _create(client, folder_id=folder["id"])
        fetched = client.get(f"/api/documents/{doc['id']}", headers=owner_headers()).json()
        assert fetched["folder_id"] == folder["id"]
        assert fetched["folder_name"] == "Essays"

    def test_create_in_other_owners_folder_is_404(self, client):
        theirs = _create_folder(client, "Theirs", headers=owner_headers(OWNER_B))
        resp = client.post(
            "/api/documents", json=make_document(folder_id=theirs["id"]), headers=owner_headers()
        )
        assert resp.status_code == 404
        assert client.get("/api/documents", headers=owner_headers()).json() == []


class TestList:

    def test_list_omits_body_and_formatting(self, client):
        _create(client)
        entry = client.get("/api/documents", headers=owner_headers()).json()[0]
        assert "content" not in entry
        assert "formatting" not in entry

    def test_folder_filter(self, client):
        folder = _create_folder(client, "F")
        filed = _create(client, title="filed", folder_id=folder["id"])
        loose = _create(client, title="loose")

        everything = client.get("/api/documents", headers=owner_headers()).json()
        in_folder = client.get(
            "/api/documents", params={"folder_id": folder["id"]}, headers=owner_headers()
        ).json()
        unfiled = client.get("/api/documents", params={"folder_id": "null"}, headers=owner_headers()).json()

        assert {d["id"] for d in everything} == {filed["id"], loose["id"]}
        assert [d["id"] for d in in_folder] == [filed["id"]]
        assert [d["id"] for d in unfiled] == [loose["id"]]

    def test_tenant_filter(self, client):
        school = _create(client, headers=owner_headers(tenant_id="school-1"))
        _create(client)
        docs = client.get("/api/documents", params={"tenant_id": "school-1"}, headers=owner_headers()).json()
        assert [d["id"] for d in docs] == [school["id"]]

    def test_limit_and_skip(self, client):
        for i in range(3):
            _create(client, title=f"d{i}")
        first = client.get("/api/documents", params={"limit": 2}, headers=owner_headers()).json()
        rest = client.get("/api/documents", params={"skip": 2}, headers=owner_headers()).json()
        assert len(first) == 2
        assert len(rest) == 1
        assert rest[0]["id"] not in {d["id"] for d in first}


class TestVersionedUpdate:

    def test_update_increments_version(self, client):
        doc = _create(client)
        resp = client.put(
            f"/api/documents/{doc['id']}", json={"version": 1, "content": "New body"}, headers=owner_headers()
        )
        assert resp.status_code == 200
        assert resp.json()["version"] == 2
        assert resp.json()["content"] == "New body"

    def test_stale_version_is_409_with_latest_document(self, client):
        doc = _create(client, content="original")
        client.put(f"/api/documents/{doc['id']}", json={"version": 1, "content": "first"}, headers=owner_headers())

        resp = client.put(
            f"/api/documents/{doc['id']}", json={"version": 1, "content": "second"}, headers=owner_headers()
        )

        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "Version conflict"
        assert body["client_version"] == 1
        assert body["current_version"] == 2
        assert body["latest_document"]["content"] == "first"
        assert body["latest_document"]["version"] == 2

    def test_stale_formatting_is_409_not_400(self, client):
        doc = _create(client, content="Hello world")
        client.put(f"/api/documents/{doc['id']}", json={"version": 1, "content": "Hi"}, headers=owner_headers())

        resp = client.put(
            f"/api/documents/{doc['id']}",
            json={"version": 1, "formatting": {"ranges": [{"start": 0, "end": 11, "attributes": {"bold": True}}]}},
            headers=owner_headers(),
        )

        assert resp.status_code == 409
        body = resp.json()
        assert body["client_version"] == 1
        assert body["current_version"] == 2
        assert body["latest_document"]["content"] == "Hi"

    def test_rebased_retry_succeeds(self, client):
        doc = _create(client)
        client.put(f"/api/documents/{doc['id']}", json={"version": 1, "title": "A"}, headers=owner_headers())
        conflict = client.put(
            f"/api/documents/{doc['id']}", json={"version": 1, "title": "B"}, headers=owner_headers()
        ).json()

        retry = client.put(
            f"/api/documents/{doc['id']}",
            json={"version": conflict["current_version"], "title": "B"},
            headers=owner_headers(),
        )
        assert retry.status_code == 200
        assert retry.json()["version"] == 3

    def test_missing_version_is_422(self, client):
        doc = _create(client)
        resp = client.put(f"/api/documents/{doc['id']}", json={"content": "x"}, headers=owner_headers())
        assert resp.status_code == 422

    def test_version_only_is_400(self, client):
        doc = _create(client)
        resp = client.put(f"/api/documents/{doc['id']}", json={"version": 1}, headers=owner_headers())
        assert resp.status_code == 400

    def test_null_title_is_400(self, client):
        doc = _create(client)
        resp = client.put(
            f"/api/documents/{doc['id']}", json={"version": 1, "title": None}, headers=owner_headers()
        )
        assert resp.status_code == 400
        assert resp.json()["details"] == {"field": "title"}

    def test_update_unknown_document_is_404(self, client):
        resp = client.put("/api/documents/nope", json={"version": 1, "content": "x"}, headers=owner_headers())
        assert resp.status_code == 404

    def test_update_other_owners_document_is_404(self, client):
        doc = _create(client, headers=owner_headers(OWNER_B))
        resp = client.put(
            f"/api/documents/{doc['id']}", json={"version": 1, "content": "x"}, headers=owner_headers()
        )
        assert resp.status_code == 404


class TestMove:

    def test_move_keeps_version(self, client):
        folder = _create_folder(client, "Target")
        doc = _create(client)

        resp = client.put(
            f"/api/documents/{doc['id']}/move", json={"folder_id": folder["id"]}, headers=owner_headers()
        )

        assert resp.status_code == 200
        assert resp.json()["folder_id"] == folder["id"]
        assert resp.json()["version"] == 1

    def test_move_to_null_unfiles(self, client):
        folder = _create_folder(client, "F")
        doc = _create(client, folder_id=folder["id"])
        resp = client.put(f"/api/documents/{doc['id']}/move", json={"folder_id": None}, headers=owner_headers())
        assert resp.json()["folder_id"] is None

    def test_move_into_other_owners_folder_is_404(self, client):
        theirs = _create_folder(client, "Theirs", headers=owner_headers(OWNER_B))
        doc = _create(client)
        resp = client.put(
            f"/api/documents/{doc['id']}/move", json={"folder_id": theirs["id"]}, headers=owner_headers()
        )
        assert resp.status_code == 404
        assert client.get(f"/api/documents/{doc['id']}", headers=owner_headers()).json()["folder_id"] is None

    def test_bulk_move(self, client):
        folder = _create_folder(client, "Bulk")
        ids = [_create(client, title=f"d{i}")["id"] for i in range(2)]

        resp = client.post(
            "/api/documents/move", json={"document_ids": ids, "folder_id": folder["id"]}, headers=owner_headers()
        )

        assert resp.status_code == 200
        assert resp.json() == {"moved": 2, "folder_id": folder["id"]}

    def test_bulk_move_with_foreign_id_moves_nothing(self, client):
        folder = _create_folder(client, "Bulk")
        mine = _create(client)
        foreign = _create(client, headers=owner_headers(OWNER_B))

        resp = client.post(
            "/api/documents/move",
            json={"document_ids": [mine["id"], foreign["id"]], "folder_id": folder["id"]},
            headers=owner_headers(),
        )

        assert resp.status_code == 404
        assert client.get(f"/api/documents/{mine['id']}", headers=owner_headers()).json()["folder_id"] is None

    def test_bulk_move_requires_ids(self, client):
        resp = client.post("/api/documents/move", json={"document_ids": []}, headers=owner_headers())
        assert resp.status_code == 422


class TestDeleteAndSearch:

    def test_delete_then_404(self, client):
        doc = _create(client)
        assert client.delete(f"/api/documents/{doc['id']}", headers=owner_headers()).status_code == 204
        assert client.get(f"/api/documents/{doc['id']}", headers=owner_headers()).status_code == 404
        assert client.delete(f"/api/documents/{doc['id']}", headers=owner_headers()).status_code == 404

    def test_search_by_formatting(self, client):
        bold = _create(
            client,
            content="Hello",
            formatting={"ranges": [{"start": 0, "end": 5, "attributes": {"bold": True}}]},
        )
        _create(client, content="Hello")

        resp = client.post(
            "/api/documents/search/formatting",
            json={"fragment": {"ranges": [{"attributes": {"bold": True}}]}},
            headers=owner_headers(),
        )

        assert resp.status_code == 200
        assert [d["id"] for d in resp.json()] == [bold["id"]]
