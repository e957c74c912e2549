import json
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture
def stocked(cli):
    runner.invoke(cli, ["add-book", "Dune", "Frank Herbert", "123", "--copies", "2",
                        "--category", "Science Fiction"])
    runner.invoke(cli, ["add-book", "Emma", "Jane Austen", "456", "--category", "Classics",
                        "--description", "Matchmaking in Highbury"])
    runner.invoke(cli, ["register", "Alice", "a@x.com"])
    return cli


def test_add_book(cli):
    result = runner.invoke(cli, ["add-book", "Dune", "Frank Herbert", "123", "-n", "2"])

    assert result.exit_code == 0, result.output
    assert "Book added: 1. Dune by Frank Herbert" in result.output


def test_books_plain(stocked):
    result = runner.invoke(stocked, ["books"])

    assert result.exit_code == 0
    assert "1. Dune by Frank Herbert [123] - 2/2 available (Science Fiction)" in result.output
    assert "2. Emma by Jane Austen [456] - 1/1 available (Classics)" in result.output
    assert "Total: 2" in result.output


def test_books_filters(stocked):
    result = runner.invoke(stocked, ["books", "-q", "austen"])
    assert "Emma" in result.output
    assert "Dune" not in result.output

    runner.invoke(stocked, ["borrow", "2", "1"])
    result = runner.invoke(stocked, ["books", "--unavailable"])
    assert "Emma" in result.output
    assert "Total: 1" in result.output


def test_books_json(stocked):
    result = runner.invoke(stocked, ["-o", "json", "books", "--category", "classics"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["total"] == 1
    assert payload["books"][0]["title"] == "Emma"
    assert payload["books"][0]["availableCopies"] == 1


def test_books_rich(stocked):
    result = runner.invoke(stocked, ["--output", "rich", "books"])

    assert result.exit_code == 0
    assert "Dune" in result.output
    assert "2/2" in result.output


def test_books_empty(cli):
    result = runner.invoke(cli, ["books"])
    assert result.exit_code == 0
    assert "No books found." in result.output


def test_book_detail(stocked):
    result = runner.invoke(stocked, ["book", "2"])

    assert result.exit_code == 0
    assert "Title: Emma" in result.output
    assert "Description: Matchmaking in Highbury" in result.output


def test_search(stocked):
    result = runner.invoke(stocked, ["search", "highbury"])
    assert "Emma" in result.output

    result = runner.invoke(stocked, ["search", "--author", "herb"])
    assert "Dune" in result.output
    assert "Emma" not in result.output


def test_update_book(stocked):
    result = runner.invoke(stocked, ["update-book", "1", "--title", "Dune Messiah", "--copies", "4"])

    assert result.exit_code == 0
    assert "Title: Dune Messiah" in result.output
    assert "Available: 4/4" in result.output


def test_categories(stocked):
    result = runner.invoke(stocked, ["categories"])
    assert "Categories (2):" in result.output
    assert "- Science Fiction" in result.output
    assert "- Classics" in result.output


def test_categories_empty(cli):
    assert "No categories yet." in runner.invoke(cli, ["categories"]).output


def test_register_and_borrowers(cli):
    result = runner.invoke(cli, ["register", "Alice", "a@x.com", "--phone", "555-0100"])
    assert "Borrower 1: Alice <a@x.com>" in result.output

    result = runner.invoke(cli, ["borrowers"])
    assert "1. Alice <a@x.com> - 0 active loan(s)" in result.output


def test_borrowers_empty(cli):
    assert "No borrowers registered." in runner.invoke(cli, ["borrowers"]).output


def test_borrow_return_cycle(stocked):
    result = runner.invoke(stocked, ["borrow", "1", "1", "--days", "7"])
    assert result.exit_code == 0
    assert "Loan 1: Dune -> Alice (due 2024-03-08T09:30:00.000Z)" in result.output

    result = runner.invoke(stocked, ["loans"])
    assert "1. Dune -> Alice (due 2024-03-08T09:30:00.000Z)" in result.output

    result = runner.invoke(stocked, ["return", "1"])
    assert result.exit_code == 0
    assert "Loan 1: Dune -> Alice (returned 2024-03-01T09:30:00.000Z)" in result.output

    assert "No active loans." in runner.invoke(stocked, ["loans"]).output


def test_overdue(stocked, clock):
    runner.invoke(stocked, ["borrow", "1", "1", "--days", "1"])
    runner.invoke(stocked, ["borrow", "2", "1", "--days", "30"])

    assert "No overdue loans." in runner.invoke(stocked, ["overdue"]).output

    clock.advance(days=2)
    result = runner.invoke(stocked, ["overdue"])
    assert "1. Dune -> Alice" in result.output
    assert "Emma" not in result.output


def test_stats(stocked):
    runner.invoke(stocked, ["borrow", "1", "1"])

    result = runner.invoke(stocked, ["stats"])

    assert result.exit_code == 0
    assert "Total Books: 2" in result.output
    assert "Copies Available: 2/3" in result.output
    assert "Active Loans: 1" in result.output


def test_missing_book_is_reported(cli):
    result = runner.invoke(cli, ["book", "9"])

    assert result.exit_code == 1
    assert "Error: Book not found" in result.output


def test_delete_refused_while_on_loan(stocked):
    runner.invoke(stocked, ["borrow", "1", "1"])

    result = runner.invoke(stocked, ["delete-book", "1"])
    assert result.exit_code == 1
    assert "Error: Cannot delete book with borrowed copies" in result.output

    runner.invoke(stocked, ["return", "1"])
    result = runner.invoke(stocked, ["delete-book", "1"])
    assert result.exit_code == 0
    assert "Book 1 deleted." in result.output


def test_duplicate_registration_is_reported(stocked):
    result = runner.invoke(stocked, ["register", "Alicia", "a@x.com"])
    assert result.exit_code == 1
    assert "Error: Borrower with this email already exists" in result.output


def test_serve_launches_uvicorn(cli, monkeypatch):
    import main

    run = MagicMock()
    monkeypatch.setattr(main.subprocess, "run", run)

    result = runner.invoke(cli, ["serve", "--port", "8123"])

    assert result.exit_code == 0
    assert "Starting library server on http://127.0.0.1:8123" in result.output
    command = run.call_args[0][0]
    assert command[1:4] == ["-m", "uvicorn", "api:app"]
    assert command[-2:] == ["--port", "8123"]
