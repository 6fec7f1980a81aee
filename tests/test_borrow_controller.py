import pytest

from circulation.extensions import db
from circulation.models.book import Book


@pytest.fixture
def seed(app, make_user, make_book):
    """Ayrı app context'te kullanıcı + kitap ekler; (user_id, book_id) döner."""

    def _seed(user_status="active"):
        with app.app_context():
            ids = make_user(status=user_status), make_book()
            db.session.remove()
        return ids

    return _seed


def _borrow(client, user_id, book_id, **extra):
    return client.post("/api/borrow", json={"user_id": user_id, "book_id": book_id, **extra})


def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}


def test_unknown_route_returns_json_404(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.get_json()["code"] == "NOT_FOUND"


def test_borrow_endpoint(app, client, seed):
    user_id, book_id = seed()

    res = _borrow(client, user_id, book_id, notes="front desk")

    assert res.status_code == 201
    body = res.get_json()
    assert body["success"] is True
    assert body["message"] == "Book borrowed successfully"
    data = body["data"]
    assert data["status"] == "active"
    assert data["borrow_date"] == "2024-03-01T12:00:00"
    assert data["due_date"] == "2024-03-15T12:00:00"
    assert data["return_date"] is None
    assert data["notes"] == "front desk"
    assert data["user"]["id"] == user_id
    assert data["book"]["id"] == book_id
    assert data["days_overdue"] == 0
    assert data["calculated_fine"] == 0

    with app.app_context():
        assert db.session.get(Book, book_id).available is False


def test_borrow_accepts_utc_designator(client, seed):
    user_id, book_id = seed()
    res = _borrow(client, user_id, book_id, due_date="2024-03-05T12:00:00Z")
    assert res.status_code == 201
    assert res.get_json()["data"]["due_date"] == "2024-03-05T12:00:00"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"user_id": 1},
        {"user_id": "abc", "book_id": 1},
        {"user_id": True, "book_id": 1},
        {"user_id": 1, "book_id": 1.9},
        {"user_id": 1, "book_id": 1, "due_date": "not-a-date"},
        {"user_id": 1, "book_id": 1, "notes": "x" * 501},
    ],
)
def test_borrow_validation(client, payload):
    res = client.post("/api/borrow", json=payload)
    assert res.status_code == 400
    body = res.get_json()
    assert body["success"] is False
    assert body["code"] == "VALIDATION_ERROR"


def test_borrow_error_codes(client, seed):
    user_id, book_id = seed()
    inactive_id, other_book = seed(user_status="suspended")

    res = _borrow(client, 9999, book_id)
    assert res.status_code == 404
    assert res.get_json()["code"] == "USER_NOT_FOUND"

    res = _borrow(client, user_id, 9999)
    assert res.status_code == 404
    assert res.get_json()["code"] == "BOOK_NOT_FOUND"

    res = _borrow(client, inactive_id, other_book)
    assert res.status_code == 400
    assert res.get_json()["code"] == "USER_NOT_ACTIVE"

    assert _borrow(client, user_id, book_id).status_code == 201
    res = _borrow(client, user_id, book_id)
    assert res.status_code == 400
    assert res.get_json()["code"] == "ALREADY_BORROWED"


def test_return_endpoint(app, client, seed):
    user_id, book_id = seed()
    borrow_id = _borrow(client, user_id, book_id).get_json()["data"]["id"]

    res = client.post("/api/return", json={"borrow_id": borrow_id})
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["status"] == "returned"
    assert data["return_date"] == "2024-03-01T12:00:00"

    with app.app_context():
        assert db.session.get(Book, book_id).available is True

    res = client.post("/api/return", json={"borrow_id": borrow_id})
    assert res.status_code == 400
    assert res.get_json()["code"] == "ALREADY_RETURNED"

    res = client.post("/api/return", json={})
    assert res.status_code == 400
    assert res.get_json()["code"] == "VALIDATION_ERROR"


def test_list_and_get_records(client, seed, clock):
    first = seed()
    second = seed()
    first_id = _borrow(client, *first).get_json()["data"]["id"]
    clock.advance(hours=1)
    second_id = _borrow(client, *second).get_json()["data"]["id"]

    res = client.get("/api/borrow-records?limit=1")
    assert res.status_code == 200
    body = res.get_json()
    assert [r["id"] for r in body["data"]] == [second_id]
    assert body["pagination"]["total_items"] == 2
    assert body["pagination"]["total_pages"] == 2
    assert body["pagination"]["has_next"] is True

    res = client.get(f"/api/borrow-records?user_id={first[0]}")
    assert [r["id"] for r in res.get_json()["data"]] == [first_id]

    res = client.get("/api/borrow-records?status=borrowed")
    assert res.status_code == 400

    res = client.get(f"/api/borrow-records/{first_id}")
    assert res.status_code == 200
    assert res.get_json()["data"]["id"] == first_id

    res = client.get("/api/borrow-records/9999")
    assert res.status_code == 404
    assert res.get_json() == {"success": False, "message": "Borrow record not found", "code": "BORROW_NOT_FOUND"}


def test_extend_renew_and_lost_endpoints(client, seed):
    borrow_id = _borrow(client, *seed()).get_json()["data"]["id"]

    res = client.patch(f"/api/borrow-records/{borrow_id}/extend", json={"due_date": "2024-04-01T00:00:00"})
    assert res.status_code == 200
    assert res.get_json()["data"]["due_date"] == "2024-04-01T00:00:00"

    res = client.patch(f"/api/borrow-records/{borrow_id}/extend", json={"due_date": "2024-02-01T00:00:00"})
    assert res.status_code == 400
    assert res.get_json()["code"] == "INVALID_DUE_DATE"

    res = client.patch(f"/api/borrow-records/{borrow_id}/extend", json={})
    assert res.status_code == 400
    assert res.get_json()["code"] == "VALIDATION_ERROR"

    res = client.post(f"/api/borrow-records/{borrow_id}/renew")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["renewal_count"] == 1
    assert data["due_date"] == "2024-04-15T00:00:00"

    res = client.post(f"/api/borrow-records/{borrow_id}/lost")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert data["status"] == "lost"
    assert data["fine_amount"] == 2000
    assert data["calculated_fine"] == 2000

    res = client.post(f"/api/borrow-records/{borrow_id}/renew")
    assert res.status_code == 400
    assert res.get_json()["code"] == "NOT_ACTIVE"


def test_histories(client, seed):
    user_id, book_id = seed()
    borrow_id = _borrow(client, user_id, book_id).get_json()["data"]["id"]
    client.post("/api/return", json={"borrow_id": borrow_id})
    _borrow(client, user_id, book_id)

    res = client.get(f"/api/users/{user_id}/borrow-history")
    assert len(res.get_json()["data"]) == 2

    res = client.get(f"/api/books/{book_id}/borrow-history")
    assert [r["status"] for r in res.get_json()["data"]] == ["active", "returned"]


def test_overdue_and_due_soon_reports(client, seed, clock):
    late_id = _borrow(client, *seed(), due_date="2024-03-02T12:00:00").get_json()["data"]["id"]
    soon_id = _borrow(client, *seed(), due_date="2024-03-05T12:00:00").get_json()["data"]["id"]
    _borrow(client, *seed())

    clock.advance(days=1, hours=6)  # late kaydı 6 saat gecikmede

    res = client.get("/api/overdue-books")
    assert res.status_code == 200
    data = res.get_json()["data"]
    assert [r["id"] for r in data] == [late_id]
    assert data[0]["status"] == "overdue"
    assert data[0]["days_overdue"] == 1
    assert data[0]["calculated_fine"] == 50

    res = client.get("/api/due-soon")
    assert [r["id"] for r in res.get_json()["data"]] == [soon_id]

    res = client.get("/api/due-soon?days=-1")
    assert res.status_code == 400


def test_borrow_stats(client, seed):
    borrow_id = _borrow(client, *seed()).get_json()["data"]["id"]
    _borrow(client, *seed())
    client.post("/api/return", json={"borrow_id": borrow_id})

    res = client.get("/api/borrow-stats")
    assert res.status_code == 200
    assert res.get_json()["data"] == {
        "total_borrows": 2,
        "active_borrows": 1,
        "returned_borrows": 1,
        "overdue_borrows": 0,
        "lost_borrows": 0,
        "monthly_borrows": {"2024-03": 2},
    }
