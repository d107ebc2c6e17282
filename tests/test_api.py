import pytest
from fastapi.testclient import TestClient

from lending import api as api_module
from lending.config import settings
from lending.library import Library

HEADERS = {"X-API-Key": settings.api_key}


@pytest.fixture
def client(monkeypatch):
    # Fresh in-memory library per test
    monkeypatch.setattr(api_module, "library", Library(auto_reserve=True))
    return TestClient(api_module.app)


def add_patron(client, name):
    response = client.post("/patrons", headers=HEADERS, json={"name": name, "email": f"{name.lower()}@example.com"})
    assert response.status_code == 200
    return response.json()["id"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_add_book_with_valid_api_key(client):
    payload = {"isbn": "X-1", "title": "X", "author": "Author", "publication_year": 2001, "copies": 2}
    response = client.post("/books", headers=HEADERS, json=payload)
    assert response.status_code == 200
    data = response.json()
    assert data["isbn"] == "X-1"
    assert data["available"] == 2
    assert data["status"] == "AVAILABLE"


def test_add_book_with_invalid_api_key(client):
    response = client.post("/books", headers={"X-API-Key": "invalid-key"}, json={"isbn": "X-1"})
    assert response.status_code == 403


def test_add_book_with_invalid_copies(client):
    response = client.post("/books", headers=HEADERS, json={"isbn": "X-1", "copies": 0})
    assert response.status_code == 400


def test_list_books_skips_titles_purged_while_listing(client, monkeypatch):
    for isbn in ("X-1", "Y-1"):
        client.post("/books", headers=HEADERS, json={"isbn": isbn, "title": isbn, "author": "Author"})
    library = api_module.library
    real_stock = library.stock

    def stock_after_purge(isbn):
        # X-1 is withdrawn between listing and reading its counters
        if isbn == "X-1":
            library.remove_book("X-1", 1)
        return real_stock(isbn)

    monkeypatch.setattr(library, "stock", stock_after_purge)
    response = client.get("/books")

    assert response.status_code == 200
    assert [b["isbn"] for b in response.json()] == ["Y-1"]
    assert response.json()[0]["available"] == 1


def test_get_missing_book(client):
    assert client.get("/books/NOPE").status_code == 404


def test_reservation_hand_off(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "X", "author": "Author", "copies": 1})
    alice = add_patron(client, "Alice")
    bob = add_patron(client, "Bob")

    response = client.post("/books/X-1/checkout", headers=HEADERS, json={"patron_id": alice})
    assert response.status_code == 200
    assert response.json()["outcome"] == "checked_out"

    response = client.post("/books/X-1/checkout", headers=HEADERS, json={"patron_id": bob})
    assert response.status_code == 409
    assert response.json()["detail"]["reserved"] is True

    waiting = client.get("/books/X-1/reservations").json()["waiting"]
    assert [p["name"] for p in waiting] == ["Bob"]

    response = client.post("/books/X-1/return", headers=HEADERS, json={"patron_id": alice})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "RESERVED"
    assert (data["available"], data["borrowed"], data["earmarked"]) == (0, 0, 1)

    notices = client.get("/notifications").json()
    assert [(n["patron_name"], n["title"]) for n in notices] == [("Bob", "X")]
    assert client.get("/notifications", params={"patron_id": alice}).json() == []

    response = client.post("/books/X-1/collect", headers=HEADERS, json={"patron_id": bob})
    assert response.status_code == 200
    assert response.json()["status"] == "BORROWED"
    assert client.get(f"/patrons/{bob}").json()["borrowed"] == ["X-1"]


def test_return_without_loan(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "X", "author": "Author"})
    alice = add_patron(client, "Alice")

    response = client.post("/books/X-1/return", headers=HEADERS, json={"patron_id": alice})
    assert response.status_code == 409
    assert client.get("/books/X-1").json()["available"] == 2


def test_unknown_patron(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "X", "author": "Author"})
    response = client.post("/books/X-1/checkout", headers=HEADERS, json={"patron_id": 99})
    assert response.status_code == 404


def test_search_falls_back_to_title(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "Clean Code", "author": "Robert C. Martin"})
    response = client.get("/books/search", params={"q": "clean", "kind": "publisher"})
    assert response.status_code == 200
    assert [b["isbn"] for b in response.json()] == ["X-1"]

    response = client.get("/books/search", params={"q": "martin", "kind": "author"})
    assert [b["isbn"] for b in response.json()] == ["X-1"]


def test_update_and_delete(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "Old", "author": "Author", "copies": 2})

    response = client.put("/books/X-1", headers=HEADERS, json={"title": "New"})
    assert response.status_code == 200
    assert response.json()["title"] == "New"
    assert client.put("/books/X-1", headers=HEADERS, json={}).status_code == 400

    assert client.delete("/books/X-1", headers=HEADERS, params={"copies": 3}).status_code == 409
    response = client.delete("/books/X-1", headers=HEADERS, params={"copies": 2})
    assert response.status_code == 200
    assert response.json()["purged"] is True
    assert client.get("/books/X-1").status_code == 404


def test_recommendations_and_stats(client):
    client.post("/books", headers=HEADERS, json={"isbn": "X-1", "title": "X", "author": "A", "publication_year": 2000})
    client.post("/books", headers=HEADERS, json={"isbn": "Y-1", "title": "Y", "author": "B", "publication_year": 2010})
    alice = add_patron(client, "Alice")

    recs = client.get(f"/patrons/{alice}/recommendations").json()
    assert [b["isbn"] for b in recs] == ["Y-1", "X-1"]

    stats = client.get("/stats").json()
    assert stats["total_books"] == 2
    assert stats["total_patrons"] == 1


def test_add_patron_rejects_blank_name(client):
    response = client.post("/patrons", headers=HEADERS, json={"name": "  "})
    assert response.status_code == 400
