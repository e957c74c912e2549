import subprocess
import sys
from functools import wraps
from typing import Optional

import typer

from config import settings
from http_client import LibraryAPIError, LibraryClient
from ui_helpers import (
    print_book,
    print_books,
    print_borrower,
    print_borrowers,
    print_categories,
    print_record,
    print_records,
    print_stats_result,
    set_output_mode,
)

APP_NAME = "Library CLI"

_server_url: Optional[str] = None


def get_client() -> LibraryClient:
    """Client for the server selected with --server (or configured)."""
    return LibraryClient(base_url=_server_url or settings.server_url)


def handle_api_errors(func):
    """Print server-side rejections as 'Error: ...' and exit non-zero."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except LibraryAPIError as e:
            print(f"Error: {e.message}")
            raise typer.Exit(code=1)
    return wrapper


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    server: Optional[str] = typer.Option(None, "--server", "-s", help="Library server URL"),
):
    """Global options for the CLI (output mode, server)."""
    global _server_url
    if output:
        set_output_mode(output)
    if server:
        _server_url = server


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.api_port, "--port", help="Port to listen on"),
):
    """Start the HTTP API with uvicorn (state lives only as long as the process)."""
    print(f"Starting library server on http://{host}:{port}")
    command = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    try:
        subprocess.run(command, check=False)
    except KeyboardInterrupt:
        print("Server stopped.")


# --- Books ---
@app.command("books")
@handle_api_errors
def cli_books(
    q: Optional[str] = typer.Option(None, "--q", "-q", help="Text to match in title, author or ISBN"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Exact category"),
    available: Optional[bool] = typer.Option(None, "--available/--unavailable", help="Filter by availability"),
):
    """List books, optionally filtered."""
    with get_client() as client:
        data = client.list_books(q=q, category=category, available=available)
    print_books(data["books"], data["total"])


@app.command("search")
@handle_api_errors
def cli_search(
    query: Optional[str] = typer.Argument(None, help="Text to match, descriptions included"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Partial author name"),
    category: Optional[str] = typer.Option(None, "--category", "-c", help="Exact category"),
    available: Optional[bool] = typer.Option(None, "--available/--unavailable", help="Filter by availability"),
):
    """Search across title, author, ISBN and description."""
    with get_client() as client:
        data = client.search_books(q=query, category=category, author=author, available=available)
    print_books(data["results"], data["total"])


@app.command("book")
@handle_api_errors
def cli_book(book_id: int):
    """Show one book."""
    with get_client() as client:
        print_book(client.get_book(book_id))


@app.command("add-book")
@handle_api_errors
def cli_add_book(
    title: str,
    author: str,
    isbn: str,
    copies: int = typer.Option(1, "--copies", "-n", help="Number of physical copies"),
    category: Optional[str] = typer.Option(None, "--category", "-c"),
    description: Optional[str] = typer.Option(None, "--description", "-d"),
):
    """Add a book to the catalog."""
    with get_client() as client:
        book = client.add_book(title, author, isbn, copies, category=category, description=description)
    print(f"Book added: {book['id']}. {book['title']} by {book['author']}")


@app.command("update-book")
@handle_api_errors
def cli_update_book(
    book_id: int,
    title: Optional[str] = typer.Option(None, "--title"),
    author: Optional[str] = typer.Option(None, "--author"),
    isbn: Optional[str] = typer.Option(None, "--isbn"),
    copies: Optional[int] = typer.Option(None, "--copies"),
    category: Optional[str] = typer.Option(None, "--category"),
    description: Optional[str] = typer.Option(None, "--description"),
):
    """Change some fields of a book."""
    with get_client() as client:
        book = client.update_book(book_id, title=title, author=author, isbn=isbn, copies=copies,
                                  category=category, description=description)
    print_book(book)


@app.command("delete-book")
@handle_api_errors
def cli_delete_book(book_id: int):
    """Remove a book that has no copies out on loan."""
    with get_client() as client:
        client.delete_book(book_id)
    print(f"Book {book_id} deleted.")


@app.command("categories")
@handle_api_errors
def cli_categories():
    """List the categories in use."""
    with get_client() as client:
        print_categories(client.list_categories())


# --- Borrowers ---
@app.command("borrowers")
@handle_api_errors
def cli_borrowers():
    """List registered borrowers."""
    with get_client() as client:
        data = client.list_borrowers()
    print_borrowers(data["borrowers"], data["total"])


@app.command("register")
@handle_api_errors
def cli_register(name: str, email: str, phone: Optional[str] = typer.Option(None, "--phone", "-p")):
    """Register a new borrower."""
    with get_client() as client:
        print_borrower(client.register_borrower(name, email, phone=phone))


# --- Loans ---
@app.command("borrow")
@handle_api_errors
def cli_borrow(
    book_id: int,
    borrower_id: int,
    days: Optional[int] = typer.Option(None, "--days", help="Days until due (server default: 14)"),
):
    """Lend one copy of a book to a borrower."""
    with get_client() as client:
        print_record(client.borrow(book_id, borrower_id, days_to_return=days))


@app.command("return")
@handle_api_errors
def cli_return(borrow_id: int):
    """Close an active loan."""
    with get_client() as client:
        print_record(client.return_book(borrow_id))


@app.command("loans")
@handle_api_errors
def cli_loans():
    """List active loans."""
    with get_client() as client:
        data = client.list_borrowed()
    print_records(data["borrowedBooks"], data["total"], title="Active loans")


@app.command("overdue")
@handle_api_errors
def cli_overdue():
    """List active loans past their due date."""
    with get_client() as client:
        data = client.list_overdue()
    print_records(data["overdueBooks"], data["total"], title="Overdue loans")


@app.command("stats")
@handle_api_errors
def cli_stats():
    """Show library statistics."""
    with get_client() as client:
        print_stats_result(client.stats())


if __name__ == "__main__":
    app()
