import json
import os
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable controlling CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False))


def print_books(books: List[Dict[str, Any]], total: int) -> None:
    """Print books according to the output mode.
    - plain: '<id>. Title by Author [ISBN] - available/copies (Category)' lines
    - json: {"books": [...], "total": n}
    - rich: table
    """
    mode = get_output_mode()
    if mode == "json":
        _print_json({"books": books, "total": total})
        return
    if not books:
        print("No books found.")
        return
    if mode == "rich":
        table = Table(title=f"📚 Books ({total})", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("ISBN", style="dim")
        table.add_column("Available", justify="right")
        table.add_column("Category")
        for b in books:
            table.add_row(str(b["id"]), b["title"], b["author"], b["isbn"],
                          f"{b['availableCopies']}/{b['copies']}", b["category"])
        _console.print(table)
    else:
        for b in books:
            print(f"{b['id']}. {b['title']} by {b['author']} [{b['isbn']}] - "
                  f"{b['availableCopies']}/{b['copies']} available ({b['category']})")
        print(f"Total: {total}")


def print_book(book: Dict[str, Any]) -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json(book)
    elif mode == "rich":
        content = (
            f"[bold]{book['title']}[/] by {book['author']}\n"
            f"ISBN: {book['isbn']}\nCategory: {book['category']}\n"
            f"Available: {book['availableCopies']}/{book['copies']}\n"
            f"Added: {book['dateAdded']}"
        )
        if book.get("description"):
            content += f"\n\n{book['description']}"
        _console.print(Panel.fit(content, title=f"📖 Book {book['id']}", border_style="blue"))
    else:
        print(f"ID: {book['id']}")
        print(f"Title: {book['title']}")
        print(f"Author: {book['author']}")
        print(f"ISBN: {book['isbn']}")
        print(f"Category: {book['category']}")
        print(f"Available: {book['availableCopies']}/{book['copies']}")
        if book.get("description"):
            print(f"Description: {book['description']}")


def print_categories(categories: List[str]) -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json({"categories": categories})
    elif not categories:
        print("No categories yet.")
    else:
        print(f"Categories ({len(categories)}):")
        for c in categories:
            print(f"- {c}")


def print_borrowers(borrowers: List[Dict[str, Any]], total: int) -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json({"borrowers": borrowers, "total": total})
        return
    if not borrowers:
        print("No borrowers registered.")
        return
    if mode == "rich":
        table = Table(title=f"👥 Borrowers ({total})", header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name")
        table.add_column("Email")
        table.add_column("Phone", style="dim")
        table.add_column("Active loans", justify="right")
        for b in borrowers:
            table.add_row(str(b["id"]), b["name"], b["email"], b["phone"], str(b["activeLoans"]))
        _console.print(table)
    else:
        for b in borrowers:
            print(f"{b['id']}. {b['name']} <{b['email']}> - {b['activeLoans']} active loan(s)")
        print(f"Total: {total}")


def print_borrower(borrower: Dict[str, Any]) -> None:
    if get_output_mode() == "json":
        _print_json(borrower)
    else:
        print(f"Borrower {borrower['id']}: {borrower['name']} <{borrower['email']}>")


def print_records(records: List[Dict[str, Any]], total: int, title: str = "Loans") -> None:
    mode = get_output_mode()
    if mode == "json":
        _print_json({"records": records, "total": total})
        return
    if not records:
        print(f"No {title.lower()}.")
        return
    if mode == "rich":
        table = Table(title=f"🔖 {title} ({total})", header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Book")
        table.add_column("Borrower")
        table.add_column("Borrowed")
        table.add_column("Due", style="yellow")
        for r in records:
            table.add_row(str(r["id"]), r["bookTitle"], r["borrowerName"], r["borrowDate"], r["dueDate"])
        _console.print(table)
    else:
        for r in records:
            print(f"{r['id']}. {r['bookTitle']} -> {r['borrowerName']} (due {r['dueDate']})")
        print(f"Total: {total}")


def print_record(record: Dict[str, Any]) -> None:
    if get_output_mode() == "json":
        _print_json(record)
        return
    status = f"returned {record['returnDate']}" if record.get("returned") else f"due {record['dueDate']}"
    print(f"Loan {record['id']}: {record['bookTitle']} -> {record['borrowerName']} ({status})")


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics according to the output mode."""
    mode = get_output_mode()
    if mode == "json":
        _print_json(stats)
        return
    lines = [
        ("Total Books", stats.get("totalBooks", 0)),
        ("Copies Available", f"{stats.get('availableCopies', 0)}/{stats.get('totalCopies', 0)}"),
        ("Unique Authors", stats.get("uniqueAuthors", 0)),
        ("Categories", stats.get("categories", 0)),
        ("Borrowers", stats.get("totalBorrowers", 0)),
        ("Active Loans", stats.get("activeLoans", 0)),
        ("Overdue Loans", stats.get("overdueLoans", 0)),
    ]
    if mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {value}" for label, value in lines)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for label, value in lines:
            print(f"{label}: {value}")
