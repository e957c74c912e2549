import json

import httpx
import pytest

import http_client
from http_client import LibraryAPIError, LibraryClient, ServerUnavailableError


def make_client(handler, retries=3):
    http = httpx.Client(base_url="http://library.test", transport=httpx.MockTransport(handler))
    return LibraryClient(base_url="http://library.test", http=http, retries=retries)


@pytest.fixture
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(http_client.time, "sleep", delays.append)
    return delays


def test_get_is_retried_after_connection_errors(no_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"categories": ["Classics"]})

    client = make_client(handler)

    assert client.list_categories() == ["Classics"]
    assert len(calls) == 3
    assert no_sleep == [0.5, 1.0]


def test_get_gives_up_after_last_attempt(no_sleep):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler, retries=2)

    with pytest.raises(ServerUnavailableError) as exc:
        client.stats()
    assert exc.value.kind == "unavailable"
    assert "http://library.test" in exc.value.message
    assert len(no_sleep) == 1


def test_post_is_sent_once(no_sleep):
    calls = []

    def handler(request):
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(ServerUnavailableError):
        client.borrow(1, 1)
    assert len(calls) == 1
    assert no_sleep == []


def test_error_payload_becomes_api_error():
    def handler(request):
        return httpx.Response(400, json={"message": "No copies available for borrowing", "error": "conflict"})

    client = make_client(handler)

    with pytest.raises(LibraryAPIError) as exc:
        client.borrow(1, 2)
    assert exc.value.status_code == 400
    assert exc.value.message == "No copies available for borrowing"
    assert exc.value.kind == "conflict"


def test_error_without_json_body():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    client = make_client(handler)

    with pytest.raises(LibraryAPIError) as exc:
        client.list_borrowers()
    assert exc.value.status_code == 502
    assert exc.value.message == "Bad Gateway"
    assert exc.value.kind is None


def test_query_parameters():
    seen = []

    def handler(request):
        seen.append(dict(request.url.params))
        return httpx.Response(200, json={"books": [], "total": 0})

    client = make_client(handler)
    client.list_books(q="dune", available=False)
    client.list_books(category="", available=True)
    client.list_books()

    assert seen == [{"q": "dune", "available": "false"}, {"available": "true"}, {}]


def test_borrow_payload_is_camel_case():
    bodies = []

    def handler(request):
        bodies.append(request.read())
        return httpx.Response(201, json={"message": "ok", "borrowRecord": {"id": 1}})

    client = make_client(handler)

    assert client.borrow(3, 4) == {"id": 1}
    assert client.borrow(3, 4, days_to_return=7) == {"id": 1}
    assert json.loads(bodies[0]) == {"bookId": 3, "borrowerId": 4}
    assert json.loads(bodies[1]) == {"bookId": 3, "borrowerId": 4, "daysToReturn": 7}


def test_round_trip_against_app(api_client):
    book = api_client.add_book("Dune", "Frank Herbert", "123", 2)
    borrower = api_client.register_borrower("Alice", "a@x.com")
    record = api_client.borrow(book["id"], borrower["id"])

    assert api_client.get_book(book["id"])["availableCopies"] == 1
    assert api_client.list_borrowed()["total"] == 1

    returned = api_client.return_book(record["id"])
    assert returned["returned"] is True
    assert api_client.delete_book(book["id"]) == "Book deleted successfully"
