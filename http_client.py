import logging
import time
from typing import Any, Dict, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class LibraryAPIError(Exception):
    """The server answered with an error payload."""

    def __init__(self, status_code: int, message: str, kind: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.kind = kind


class ServerUnavailableError(LibraryAPIError):
    """No response could be obtained from the server."""

    def __init__(self, message: str) -> None:
        super().__init__(0, message, "unavailable")


class LibraryClient:
    """Synchronous client for the library HTTP API.

    Read-only requests are retried with exponential backoff on transport
    errors. Mutating requests are sent once: a borrow that reached the server
    must not be repeated.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 retries: Optional[int] = None, backoff: float = 0.5,
                 http: Optional[httpx.Client] = None) -> None:
        self.base_url = base_url or settings.server_url
        self.retries = settings.client_retries if retries is None else retries
        self.backoff = backoff
        self._owns_http = http is None
        self._http = http or httpx.Client(
            base_url=self.base_url,
            timeout=settings.client_timeout if timeout is None else timeout,
        )

    # ------------------------- Books ------------------------- #
    def list_books(self, q: Optional[str] = None, category: Optional[str] = None,
                   available: Optional[bool] = None) -> Dict[str, Any]:
        return self._get("/books", params=self._params(q=q, category=category, available=available))

    def search_books(self, q: Optional[str] = None, category: Optional[str] = None,
                     author: Optional[str] = None, available: Optional[bool] = None) -> Dict[str, Any]:
        return self._get("/books/search",
                         params=self._params(q=q, category=category, author=author, available=available))

    def get_book(self, book_id: Any) -> Dict[str, Any]:
        return self._get(f"/books/{book_id}")["book"]

    def add_book(self, title: str, author: str, isbn: str, copies: int,
                 category: Optional[str] = None, description: Optional[str] = None) -> Dict[str, Any]:
        payload = {"title": title, "author": author, "isbn": isbn, "copies": copies,
                   "category": category, "description": description}
        return self._send("POST", "/books", json=self._drop_none(payload))["book"]

    def update_book(self, book_id: Any, **fields: Any) -> Dict[str, Any]:
        return self._send("PUT", f"/books/{book_id}", json=self._drop_none(fields))["book"]

    def delete_book(self, book_id: Any) -> str:
        return self._send("DELETE", f"/books/{book_id}")["message"]

    def list_categories(self) -> list:
        return self._get("/categories")["categories"]

    # ------------------------- Borrowers ------------------------- #
    def list_borrowers(self) -> Dict[str, Any]:
        return self._get("/borrowers")

    def register_borrower(self, name: str, email: str, phone: Optional[str] = None) -> Dict[str, Any]:
        payload = self._drop_none({"name": name, "email": email, "phone": phone})
        return self._send("POST", "/borrowers", json=payload)["borrower"]

    # ------------------------- Loans ------------------------- #
    def borrow(self, book_id: Any, borrower_id: Any, days_to_return: Optional[int] = None) -> Dict[str, Any]:
        payload = self._drop_none({"bookId": book_id, "borrowerId": borrower_id, "daysToReturn": days_to_return})
        return self._send("POST", "/borrow", json=payload)["borrowRecord"]

    def return_book(self, borrow_id: Any) -> Dict[str, Any]:
        return self._send("POST", "/return", json={"borrowId": borrow_id})["borrowRecord"]

    def list_borrowed(self) -> Dict[str, Any]:
        return self._get("/borrowed")

    def list_overdue(self) -> Dict[str, Any]:
        return self._get("/borrowed/overdue")

    def stats(self) -> Dict[str, Any]:
        return self._get("/stats")

    # ------------------------- Transport ------------------------- #
    def _get(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        for attempt in range(self.retries):
            try:
                return self._handle(self._http.get(path, **kwargs))
            except httpx.RequestError as e:
                if attempt < self.retries - 1:
                    wait = self.backoff * (2 ** attempt)
                    logger.warning(f"GET {path} failed ({e}); retrying in {wait:.1f}s")
                    time.sleep(wait)
                else:
                    raise ServerUnavailableError(f"Library server unreachable at {self.base_url}") from e
        raise ServerUnavailableError(f"Library server unreachable at {self.base_url}")

    def _send(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            raise ServerUnavailableError(f"Library server unreachable at {self.base_url}") from e
        return self._handle(response)

    @staticmethod
    def _handle(response: httpx.Response) -> Dict[str, Any]:
        if response.is_success:
            return response.json()
        try:
            body = response.json()
        except ValueError:
            body = {}
        raise LibraryAPIError(response.status_code, body.get("message") or response.text, body.get("error"))

    @staticmethod
    def _params(available: Optional[bool] = None, **values: Optional[str]) -> Dict[str, str]:
        params = {k: v for k, v in values.items() if v}
        if available is not None:
            params["available"] = "true" if available else "false"
        return params

    @staticmethod
    def _drop_none(payload: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in payload.items() if v is not None}

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "LibraryClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
