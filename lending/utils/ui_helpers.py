import os
import json
from typing import Any, Dict, List, Optional
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LENDING_CLI_OUTPUT"

_console = Console()

def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode

def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()

def print_list_result(books: List[Any], stock: Optional[Dict[str, Dict[str, Any]]] = None) -> None:
    """Print books according to the current output mode.
    - plain: 'ISBN - Title by Author [STATUS]' lines, or 'No books in library.'
    - json: JSON array of book dicts (with counters when given)
    - rich: Rich table
    """
    mode = get_output_mode()
    stock = stock or {}

    if not books:
        print("No books in library.")
        return

    if mode == "json":
        payload = []
        for b in books:
            item = b.to_dict()
            counters = stock.get(b.isbn)
            if counters:
                item.update(available=counters["available"], borrowed=counters["borrowed"],
                            earmarked=counters["earmarked"])
            payload.append(item)
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Year", justify="right")
        table.add_column("Status", style="green")
        table.add_column("Avail/Borrowed", justify="center")
        for b in books:
            counters = stock.get(b.isbn) or {}
            table.add_row(b.isbn, b.title, b.author, str(b.publication_year or ""), b.status.value,
                          f"{counters.get('available', '-')}/{counters.get('borrowed', '-')}")
        _console.print(table)
    else:
        for b in books:
            print(f"{b.isbn} - {b.title} by {b.author} [{b.status.value}]")

def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics according to the current output mode."""
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    labels = [
        ("total_books", "Total Books"),
        ("total_copies", "Total Copies"),
        ("available_copies", "Available Copies"),
        ("borrowed_copies", "Borrowed Copies"),
        ("earmarked_copies", "Earmarked Copies"),
        ("unique_authors", "Unique Authors"),
        ("total_patrons", "Patrons"),
        ("pending_reservations", "Pending Reservations"),
    ]

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in labels)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, label in labels:
            print(f"{label}: {stats.get(key, 0)}")

def print_notifications(notices: List[Any]) -> None:
    mode = get_output_mode()
    if not notices:
        print("No notifications sent.")
        return
    if mode == "json":
        print(json.dumps([n.to_dict() for n in notices], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="🔔 Notifications", header_style="bold cyan")
        table.add_column("Patron", style="white")
        table.add_column("Email", style="dim")
        table.add_column("Title", style="white")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        for n in notices:
            table.add_row(n.patron_name, n.patron_email, n.title, n.isbn)
        _console.print(table)
    else:
        for n in notices:
            print(f"Notified {n.patron_name}: '{n.title}' ({n.isbn}) is ready for pickup")
