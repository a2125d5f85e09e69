from datetime import date, timedelta
from uuid import UUID

import pytest

from todo_api.repositories import TodoRepository


def create_todo_payload(
    title="Test Task",
    description="Do something",
    status="open",
    due_date=None,
):
    payload = {
        "title": title,
        "description": description,
        "status": status,
    }
    if due_date is not None:
        payload["due_date"] = due_date
    return payload


def assert_todo_shape(todo: dict):
    for key in ["id", "title", "description", "status", "due_date", "created_at", "is_deleted"]:
        assert key in todo
    UUID(todo["id"])
    assert isinstance(todo["title"], str)
    assert isinstance(todo["is_deleted"], bool)
    if todo["due_date"] is not None:
        date.fromisoformat(todo["due_date"])


def create(client, **kwargs) -> dict:
    res = client.post("/todo/create", json=create_todo_payload(**kwargs))
    assert res.status_code == 201
    return res.json()


class TestHealth:
    def test_health_check(self, client):
        res = client.get("/")
        assert res.status_code == 200
        data = res.json()
        assert data["message"] == "Healthy"
        assert data["database"] == "ok"


class TestCreateAndFetch:
    def test_create_then_fetch_round_trip(self, client):
        res = client.post("/todo/create", json={"title": "a", "status": "open", "due_date": "2024-01-01"})
        assert res.status_code == 201
        created = res.json()
        assert_todo_shape(created)
        assert created["due_date"] == "2024-01-01"
        assert created["is_deleted"] is False

        res_get = client.get("/todo", params={"id": created["id"]})
        assert res_get.status_code == 200
        fetched = res_get.json()
        assert fetched == created
        assert fetched["is_deleted"] is False

    def test_due_date_round_trip(self, client):
        created = create(client, due_date="2024-03-15")
        fetched = client.get("/todo", params={"id": created["id"]}).json()
        assert fetched["due_date"] == "2024-03-15"

    @pytest.mark.parametrize("due_date", [None, "", "null"])
    def test_absent_due_date_is_null(self, client, due_date):
        payload = create_todo_payload(title="No due date")
        if due_date is not None:
            payload["due_date"] = due_date
        res = client.post("/todo/create", json=payload)
        assert res.status_code == 201
        assert res.json()["due_date"] is None

    def test_create_minimal_defaults(self, client):
        res = client.post("/todo/create", json={"title": "Buy milk"})
        assert res.status_code == 201
        todo = res.json()
        assert todo["description"] == ""
        assert todo["status"] == ""
        assert todo["due_date"] is None

    def test_generated_ids_are_unique(self, client):
        ids = {create(client, title="Same")["id"] for _ in range(20)}
        assert len(ids) == 20

    def test_create_missing_title(self, client):
        res = client.post("/todo/create", json={"description": "no title"})
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Invalid request payload"
        assert isinstance(body["detail"], list)

    def test_create_malformed_json(self, client):
        res = client.post(
            "/todo/create",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert res.status_code == 400
        assert res.json()["error"] == "ValidationError"

    def test_create_bad_due_date(self, client):
        res = client.post("/todo/create", json=create_todo_payload(due_date="15/03/2024"))
        assert res.status_code == 400

    def test_fetch_missing_id(self, client):
        res = client.get("/todo")
        assert res.status_code == 400
        assert res.json()["detail"] == "Missing ID parameter"

    def test_fetch_invalid_id(self, client):
        res = client.get("/todo", params={"id": "not-a-uuid"})
        assert res.status_code == 400
        assert res.json()["detail"] == "Invalid ID format"

    def test_fetch_unknown_id(self, client):
        res = client.get("/todo", params={"id": "6f1c2a44-9a0b-4f8e-8f57-2b3c1f0e9d11"})
        assert res.status_code == 404
        assert res.json()["detail"] == "Todo not found"


class TestUpdate:
    def test_partial_update(self, client):
        created = create(client, title="Partial", description="X", status="open")

        res = client.put("/todo/update/", params={"id": created["id"]}, json={"title": "Partial Updated"})
        assert res.status_code == 200
        body = res.json()
        assert body["message"] == "Todo updated successfully"
        assert body["previous"]["title"] == "Partial"
        assert body["todo"]["title"] == "Partial Updated"
        # untouched fields keep their values
        assert body["todo"]["description"] == "X"
        assert body["todo"]["status"] == "open"
        assert body["todo"]["id"] == created["id"]
        assert body["todo"]["created_at"] == created["created_at"]

    def test_update_alias_path_and_due_date(self, client):
        created = create(client, due_date="2024-01-01")
        res = client.put(
            "/update-todo",
            params={"id": created["id"]},
            json={"status": "done", "due_date": "2024-02-02"},
        )
        assert res.status_code == 200
        todo = res.json()["todo"]
        assert todo["status"] == "done"
        assert todo["due_date"] == "2024-02-02"

    def test_empty_fields_are_not_applied(self, client):
        created = create(client, title="Keep", description="Keep me")
        res = client.put(
            "/todo/update/",
            params={"id": created["id"]},
            json={"title": "", "description": "", "status": "done", "due_date": None},
        )
        assert res.status_code == 200
        todo = res.json()["todo"]
        assert todo["title"] == "Keep"
        assert todo["description"] == "Keep me"
        assert todo["status"] == "done"

    def test_nothing_to_update(self, client):
        created = create(client, title="Unchanged")
        res = client.put("/todo/update/", params={"id": created["id"]}, json={"title": "", "status": ""})
        assert res.status_code == 400
        assert res.json()["detail"] == "No fields to update"

        fetched = client.get("/todo", params={"id": created["id"]}).json()
        assert fetched == created

    def test_update_missing_and_invalid_id(self, client):
        res_missing = client.put("/todo/update/", json={"title": "x"})
        assert res_missing.status_code == 400
        assert res_missing.json()["detail"] == "Missing todo ID"

        res_invalid = client.put("/todo/update/", params={"id": "123"}, json={"title": "x"})
        assert res_invalid.status_code == 400
        assert res_invalid.json()["detail"] == "Invalid ID format"

    def test_update_bad_body(self, client):
        created = create(client)
        res = client.put("/todo/update/", params={"id": created["id"]}, json={"due_date": "not-a-date"})
        assert res.status_code == 400
        assert res.json()["error"] == "ValidationError"

    def test_update_unknown_or_deleted(self, client):
        res = client.put(
            "/todo/update/",
            params={"id": "6f1c2a44-9a0b-4f8e-8f57-2b3c1f0e9d11"},
            json={"title": "Nope"},
        )
        assert res.status_code == 404

        created = create(client)
        assert client.put("/todo/delete/", params={"id": created["id"]}).status_code == 200
        res_deleted = client.put("/todo/update/", params={"id": created["id"]}, json={"title": "Nope"})
        assert res_deleted.status_code == 404
        assert res_deleted.json()["detail"] == "Todo not found"


class TestDelete:
    def test_soft_delete(self, client, database):
        created = create(client, title="ToDelete")

        res = client.put("/todo/delete/", params={"id": created["id"]})
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "success"
        assert body["message"] == "Todo deleted successfully"
        assert body["todo"]["id"] == created["id"]
        assert body["todo"]["is_deleted"] is True

        assert client.get("/todo", params={"id": created["id"]}).status_code == 404

        # The row is still there, only flagged.
        row = database.fetch_one("SELECT is_deleted FROM todos WHERE id = ?", (created["id"],))
        assert row == {"is_deleted": 1}

    def test_delete_twice_is_not_found(self, client):
        created = create(client)
        assert client.put("/todo/delete/", params={"id": created["id"]}).status_code == 200

        res_again = client.put("/todo/delete/", params={"id": created["id"]})
        assert res_again.status_code == 404
        assert res_again.json()["detail"] == "Todo not found or already deleted"

    def test_repository_soft_delete_reports_missing_rows(self, client, database):
        created = create(client)
        repo = TodoRepository(database)
        assert repo.soft_delete(UUID(created["id"])) is True
        assert repo.soft_delete(UUID(created["id"])) is False
        assert repo.soft_delete(UUID("6f1c2a44-9a0b-4f8e-8f57-2b3c1f0e9d11")) is False

    def test_delete_bad_id(self, client):
        assert client.put("/todo/delete/").status_code == 400
        assert client.put("/todo/delete/", params={"id": "zzz"}).status_code == 400


class TestListAll:
    def test_empty_list_is_not_found(self, client):
        res = client.get("/todos")
        assert res.status_code == 404
        assert res.json() == {
            "status": "404 Not Found",
            "message": "No todos found",
            "total_todos": 0,
            "server_status": "OK",
        }

    def test_list_excludes_deleted(self, client):
        keep = create(client, title="Keep")
        gone = create(client, title="Gone")
        client.put("/todo/delete/", params={"id": gone["id"]})

        res = client.get("/todos")
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == "200 OK"
        assert body["server_status"] == "OK"
        assert body["total_todos"] == 1
        assert [t["id"] for t in body["todos"]] == [keep["id"]]


class TestListPaginationFilteringSorting:
    def seed_todos(self, client, count=12):
        base = date(2024, 1, 1)
        created = []
        for i in range(count):
            created.append(
                create(
                    client,
                    title=f"Task {i:02d}",
                    description=f"Desc {i}",
                    status="done" if i % 3 == 0 else "open",
                    due_date=(base + timedelta(days=i % 4)).isoformat(),
                )
            )
        return created

    def test_defaults(self, client):
        self.seed_todos(client, 12)
        res = client.get("/todoss")
        assert res.status_code == 200
        body = res.json()
        assert body["status"] == 200
        assert body["current_page"] == 1
        assert body["total_todos"] == 12
        assert body["total_pages"] == 2
        assert len(body["todos"]) == 10

    @pytest.mark.parametrize(
        "params",
        [
            {"page": "0", "limit": "0"},
            {"page": "-3", "limit": "-1"},
            {"page": "abc", "limit": "x"},
            {"page": "", "limit": ""},
            {"page": "99999999999999999999"},
            {"limit": "99999999999999999999"},
            {"page": str(2**62), "limit": "10"},
        ],
    )
    def test_invalid_page_and_limit_fall_back(self, client, params):
        self.seed_todos(client, 12)
        body = client.get("/todoss", params=params).json()
        assert body["current_page"] == 1
        assert len(body["todos"]) == 10
        assert body["total_pages"] == 2

    def test_pages(self, client):
        self.seed_todos(client, 12)
        page2 = client.get("/todoss", params={"page": 2, "limit": 5}).json()
        assert page2["current_page"] == 2
        assert page2["total_pages"] == 3
        assert len(page2["todos"]) == 5

        page3 = client.get("/todoss", params={"page": 3, "limit": 5}).json()
        assert len(page3["todos"]) == 2

        page4 = client.get("/todoss", params={"page": 4, "limit": 5}).json()
        assert page4["todos"] == []
        assert page4["total_todos"] == 12

    def test_filters(self, client):
        self.seed_todos(client, 12)
        done = client.get("/todoss", params={"status": "done", "limit": 100}).json()
        assert done["total_todos"] == 4
        assert all(t["status"] == "done" for t in done["todos"])

        due = client.get("/todoss", params={"due_date": "2024-01-02", "limit": 100}).json()
        assert due["total_todos"] == 3
        assert all(t["due_date"] == "2024-01-02" for t in due["todos"])

        both = client.get(
            "/todoss", params={"status": "open", "due_date": "2024-01-02", "limit": 100}
        ).json()
        # i in {1, 5}; i == 9 is "done"
        assert both["total_todos"] == 2
        assert both["total_pages"] == 1

    def test_no_matches_gives_zero_pages(self, client):
        self.seed_todos(client, 3)
        body = client.get("/todoss", params={"status": "archived"}).json()
        assert body["todos"] == []
        assert body["total_todos"] == 0
        assert body["total_pages"] == 0

    def test_sorting(self, client):
        created = self.seed_todos(client, 5)
        titles = [t["title"] for t in created]

        asc = client.get("/todoss", params={"sort_by": "title", "sort_order": "ASC"}).json()
        assert [t["title"] for t in asc["todos"]] == sorted(titles)

        # Only the exact string "ASC" is ascending.
        lower = client.get("/todoss", params={"sort_by": "title", "sort_order": "asc"}).json()
        assert [t["title"] for t in lower["todos"]] == sorted(titles, reverse=True)

        # Unknown sort fields fall back to created_at, newest first.
        fallback = client.get("/todoss", params={"sort_by": "title; DROP TABLE todos"}).json()
        assert [t["title"] for t in fallback["todos"]] == list(reversed(titles))

        oldest_first = client.get("/todoss", params={"sort_order": "ASC"}).json()
        assert [t["title"] for t in oldest_first["todos"]] == titles

    def test_deleted_are_excluded(self, client):
        created = self.seed_todos(client, 4)
        client.put("/todo/delete/", params={"id": created[0]["id"]})
        body = client.get("/todoss").json()
        assert body["total_todos"] == 3
        assert created[0]["id"] not in {t["id"] for t in body["todos"]}
