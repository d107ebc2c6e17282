import logging
import subprocess
import sys
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt
from rich.table import Table

from lending.book import BookStatus
from lending.config import settings
from lending.library import CheckoutOutcome, Library
from lending.sample_data import seed
from lending.utils.ui_helpers import (
    print_list_result,
    print_notifications,
    print_stats_result,
    set_output_mode,
)

APP_NAME = "Lending Desk CLI"

console = Console()


# Nothing is persisted, so every CLI process works on its own library seeded with the sample catalog
class LibraryManager:
    _instance: Optional[Library] = None

    @classmethod
    def get_instance(cls) -> Library:
        if cls._instance is None:
            cls._instance = Library()
            seed(cls._instance)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def _stock_map(lib: Library, books) -> dict:
    return {b.isbn: lib.stock(b.isbn) for b in books}


# --- Typer CLI application ---
app = typer.Typer(help=APP_NAME)

@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global options for the CLI (e.g. output mode)."""
    if output:
        set_output_mode(output)

@app.command("list")
def cli_list():
    """List every title in the catalog with its status."""
    lib = LibraryManager.get_instance()
    books = lib.list_books()
    print_list_result(books, _stock_map(lib, books))

@app.command("find")
def cli_find(isbn: str):
    """Find a title by ISBN and show its copy counters."""
    lib = LibraryManager.get_instance()
    book = lib.find_book(isbn)
    if not book:
        print(f"Book with ISBN {isbn} not found.")
        return
    counters = lib.stock(book.isbn)
    print("Book Found")
    print(f"Title: {book.title}")
    print(f"Author: {book.author}")
    print(f"ISBN: {book.isbn}")
    print(f"Status: {book.status.value}")
    print(f"Available: {counters['available']}  Borrowed: {counters['borrowed']}")

@app.command("search")
def cli_search(
    query: str = typer.Argument(..., help="Search query"),
    kind: str = typer.Option("title", "--kind", "-k", help="title | author | isbn (unknown kinds search titles)"),
    limit: int = typer.Option(settings.default_search_limit, "--limit", "-l", help="Maximum results to show"),
):
    """Search the catalog by title, author or ISBN."""
    lib = LibraryManager.get_instance()
    books = lib.search(kind, query)[:limit]
    if not books:
        print("No books matched the criteria.")
        return
    print(f"Found {len(books)} books:")
    print_list_result(books, _stock_map(lib, books))

@app.command("stats")
def cli_stats():
    """Show catalog statistics."""
    print_stats_result(LibraryManager.get_instance().get_statistics())

@app.command("recommend")
def cli_recommend(
    patron_id: int,
    limit: int = typer.Option(settings.default_recommendation_limit, "--limit", "-l", help="Maximum recommendations"),
):
    """Recommend available titles for a patron."""
    lib = LibraryManager.get_instance()
    if not lib.get_patron(patron_id):
        print(f"Patron {patron_id} not found.")
        return
    print_list_result(lib.recommend_for_patron(patron_id, limit))

@app.command("demo")
def cli_demo():
    """Walk through checkout, reservation, return hand-off and recommendations."""
    lib = Library(auto_reserve=True)
    patrons = seed(lib)
    alice, bob = patrons["Alice"], patrons["Bob"]

    found = lib.search_title("clean")
    print(f"Search results for 'clean': {', '.join(str(b) for b in found)}")

    checked = lib.checkout("ISBN-002", bob.id)
    print(f"Bob checked out Clean Code? {checked}")

    alice_checked = lib.checkout("ISBN-002", alice.id)
    waiting = [p.name for p in lib.waiting_list("ISBN-002")]
    print(f"Alice checked out Clean Code? {alice_checked} (waiting list: {', '.join(waiting)})")

    lib.return_book("ISBN-002", bob.id)
    book = lib.find_book("ISBN-002")
    print(f"Bob returned Clean Code; status is now {book.status.value}")
    print_notifications(lib.notifications)

    collected = lib.checkout("ISBN-002", alice.id)
    print(f"Alice collected her reserved copy? {collected}")

    recs = lib.recommend_for_patron(alice.id, 3)
    print(f"Recommendations for Alice: {', '.join(str(b) for b in recs) or 'none'}")

@app.command("menu")
def cli_menu():
    """Interactive menu over a live in-memory library."""
    run_menu()

@app.command("serve")
def cli_serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Port"),
):
    """Start the HTTP API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [sys.executable, "-m", "uvicorn", "lending.api:app", "--host", host, "--port", str(port)]
    try:
        subprocess.run(args)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] `uvicorn` was not found. Make sure it is installed in your environment.")

# --- Interactive menu ---
def _ask_patron(lib: Library):
    patron_id = IntPrompt.ask("Patron id")
    patron = lib.get_patron(patron_id)
    if not patron:
        console.print(f"[yellow]⚠️ Patron {patron_id} not found.[/]")
    return patron

def add_book(lib: Library) -> None:
    isbn = Prompt.ask("ISBN").strip()
    title = Prompt.ask("Title", default="")
    author = Prompt.ask("Author", default="")
    year = IntPrompt.ask("Publication year", default=0)
    copies = IntPrompt.ask("Copies", default=1)
    try:
        book = lib.add_book(isbn, title, author, year, copies)
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return
    console.print(Panel.fit(f"[green]Added {copies} copies of[/] [bold]{book.title}[/] - {book.author}",
                            title="✅ Success", border_style="green"))

def remove_book(lib: Library) -> None:
    isbn = Prompt.ask("ISBN").strip()
    copies = IntPrompt.ask("Copies to remove", default=1)
    try:
        removed = lib.remove_book(isbn, copies)
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return
    if removed:
        console.print(f"[green]✅ Removed {copies} copies of {isbn}.[/]")
    else:
        console.print(f"[yellow]⚠️ Not enough available copies of {isbn} to remove.[/]")

def add_patron(lib: Library) -> None:
    name = Prompt.ask("Name")
    email = Prompt.ask("Email", default="")
    try:
        patron = lib.add_patron(name, email)
    except ValueError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return
    console.print(f"[green]✅ Patron #{patron.id} {patron.name} registered.[/]")

def checkout(lib: Library) -> None:
    patron = _ask_patron(lib)
    if not patron:
        return
    isbn = Prompt.ask("ISBN").strip()
    outcome = lib.checkout_outcome(isbn, patron.id)
    messages = {
        CheckoutOutcome.CHECKED_OUT: "[green]✅ Checked out.[/]",
        CheckoutOutcome.COLLECTED: "[green]✅ Reserved copy collected.[/]",
        CheckoutOutcome.RESERVED: "[yellow]No copy free - added to the waiting list.[/]",
        CheckoutOutcome.UNAVAILABLE: "[yellow]No copy free.[/]",
        CheckoutOutcome.NOT_FOUND: f"[yellow]⚠️ Book {isbn} not found.[/]",
    }
    console.print(messages[outcome])

def return_book(lib: Library) -> None:
    patron = _ask_patron(lib)
    if not patron:
        return
    isbn = Prompt.ask("ISBN").strip()
    if lib.return_book(isbn, patron.id):
        console.print("[green]✅ Returned.[/]")
        book = lib.find_book(isbn)
        if book and book.status == BookStatus.RESERVED:
            console.print("[cyan]🔔 Copy set aside for the next patron in line.[/]")
    else:
        console.print(f"[yellow]⚠️ No outstanding loan of {isbn} was recorded.[/]")

def reserve(lib: Library) -> None:
    patron = _ask_patron(lib)
    if not patron:
        return
    isbn = Prompt.ask("ISBN").strip()
    if lib.reserve(isbn, patron.id):
        console.print(f"[green]✅ Reserved. Position {len(lib.waiting_list(isbn))} in line.[/]")
    else:
        console.print(f"[yellow]⚠️ Book {isbn} not found.[/]")

def search(lib: Library) -> None:
    kind = Prompt.ask("Search by", choices=["title", "author", "isbn"], default="title")
    query = Prompt.ask("Query")
    books = lib.search(kind, query)
    if not books:
        console.print(f"[yellow]🔍 No books matched '{query}'.[/]")
        return
    table = Table(title=f"🔎 Results for '{query}'", show_lines=True, header_style="bold cyan")
    table.add_column("ISBN", style="magenta", no_wrap=True)
    table.add_column("Title", style="white")
    table.add_column("Author", style="white")
    table.add_column("Status", style="green")
    for book in books:
        table.add_row(book.isbn, book.title, book.author, book.status.value)
    console.print(table)

def recommend(lib: Library) -> None:
    patron = _ask_patron(lib)
    if not patron:
        return
    books = lib.recommend_for_patron(patron.id)
    if not books:
        console.print("[yellow]Nothing to recommend right now.[/]")
        return
    for book in books:
        console.print(f"⭐ {book}")

def run_menu():
    """Simple interactive menu for the lending desk."""
    lib = LibraryManager.get_instance()
    actions = {
        "1": ("List books", "📚", lambda: print_list_result(lib.list_books(), _stock_map(lib, lib.list_books()))),
        "2": ("Add copies", "➕", lambda: add_book(lib)),
        "3": ("Remove copies", "🗑️", lambda: remove_book(lib)),
        "4": ("Register patron", "🧑", lambda: add_patron(lib)),
        "5": ("Checkout", "📤", lambda: checkout(lib)),
        "6": ("Return", "📥", lambda: return_book(lib)),
        "7": ("Reserve", "⏳", lambda: reserve(lib)),
        "8": ("Search", "🔎", lambda: search(lib)),
        "9": ("Recommend", "💡", lambda: recommend(lib)),
        "10": ("Statistics", "📊", lambda: print_stats_result(lib.get_statistics())),
        "11": ("Notifications", "🔔", lambda: print_notifications(lib.notifications)),
    }

    def render_menu() -> None:
        table = Table.grid(padding=(0, 2))
        table.add_column(justify="right", style="bold cyan", width=4)
        table.add_column(justify="left", style="white")
        for key, (label, icon, _) in actions.items():
            table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
        table.add_row("[reverse]0[/]", "🚪 Exit")
        console.print(Panel(table, title=APP_NAME, border_style="cyan", box=box.HEAVY, padding=(1, 2)))

    while True:
        render_menu()
        choice = Prompt.ask("Choose an option", choices=[*actions.keys(), "0"], default="1").strip()
        if choice == "0":
            console.print("[green]Goodbye![/]")
            break
        actions[choice][2]()
        print()

def main() -> None:
    logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(name)s: %(message)s")
    app()

if __name__ == "__main__":
    main()
