import pytest

from lending.library import Library
from lending.main import LibraryManager
from lending.utils.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture
def lib():
    # Each test gets its own library; auto-reserve on so the facade policy is exercised
    return Library(auto_reserve=True)


@pytest.fixture(autouse=True)
def fresh_cli_state(monkeypatch):
    monkeypatch.delenv(OUTPUT_MODE_ENV, raising=False)
    LibraryManager.reset()
    yield
    LibraryManager.reset()
