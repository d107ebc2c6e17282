import json
from unittest.mock import patch

from typer.testing import CliRunner

from lending.main import LibraryManager, app

runner = CliRunner()


def test_list_sample_catalog():
    result = runner.invoke(app, ["list"])
    assert result.exit_code == 0
    assert "ISBN-001 - Effective Java by Joshua Bloch [AVAILABLE]" in result.stdout
    assert "ISBN-002 - Clean Code by Robert C. Martin [AVAILABLE]" in result.stdout


def test_list_json_output():
    result = runner.invoke(app, ["--output", "json", "list"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert len(payload) == 3
    effective_java = next(item for item in payload if item["isbn"] == "ISBN-001")
    assert effective_java["available"] == 2
    assert effective_java["borrowed"] == 0


def test_list_empty_catalog():
    lib = LibraryManager.get_instance()
    for book in lib.list_books():
        lib.remove_book(book.isbn, lib.stock(book.isbn)["available"])

    result = runner.invoke(app, ["list"])
    assert "No books in library." in result.stdout


def test_find_book():
    result = runner.invoke(app, ["find", "isbn-002"])
    assert result.exit_code == 0
    assert "Book Found" in result.stdout
    assert "Title: Clean Code" in result.stdout
    assert "Status: AVAILABLE" in result.stdout
    assert "Available: 1  Borrowed: 0" in result.stdout


def test_find_book_not_found():
    result = runner.invoke(app, ["find", "nonexistent"])
    assert result.exit_code == 0
    assert "Book with ISBN nonexistent not found." in result.stdout


def test_search_kinds():
    result = runner.invoke(app, ["search", "clean"])
    assert "Found 1 books:" in result.stdout
    assert "Clean Code" in result.stdout

    result = runner.invoke(app, ["search", "bloch", "--kind", "author"])
    assert "Effective Java" in result.stdout

    # unknown kinds fall back to title search
    result = runner.invoke(app, ["search", "design", "--kind", "publisher"])
    assert "Design Patterns" in result.stdout

    result = runner.invoke(app, ["search", "cobol"])
    assert "No books matched the criteria." in result.stdout


def test_stats():
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Total Books: 3" in result.stdout
    assert "Total Copies: 4" in result.stdout
    assert "Patrons: 2" in result.stdout


def test_recommend():
    result = runner.invoke(app, ["recommend", "1", "--limit", "1"])
    assert result.exit_code == 0
    assert "Effective Java" in result.stdout
    assert "Clean Code" not in result.stdout

    result = runner.invoke(app, ["recommend", "99"])
    assert "Patron 99 not found." in result.stdout


def test_demo_walkthrough():
    result = runner.invoke(app, ["demo"])
    assert result.exit_code == 0
    assert "Bob checked out Clean Code? True" in result.stdout
    assert "Alice checked out Clean Code? False (waiting list: Alice)" in result.stdout
    assert "status is now RESERVED" in result.stdout
    assert "Notified Alice: 'Clean Code' (ISBN-002) is ready for pickup" in result.stdout
    assert "Alice collected her reserved copy? True" in result.stdout


@patch("lending.main.subprocess.run")
def test_serve_command(mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--port", "9001"])
    assert result.exit_code == 0
    assert "Starting API on http://" in result.stdout
    mock_subprocess_run.assert_called_once()
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "lending.api:app" in args
    assert "9001" in args
