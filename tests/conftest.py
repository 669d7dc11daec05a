from datetime import datetime

import pytest

from credo.application.catalog import Catalog
from credo.application.state import AppState
from credo.domain.models import Principle, RuleSet
from credo.infrastructure.store import MemoryStore


def local_ms(*args: int) -> int:
    """Epoch milliseconds for a naive local datetime."""
    return int(datetime(*args).timestamp() * 1000)


@pytest.fixture
def catalog():
    return Catalog(
        principles=[
            Principle(1, "Own your results and stop assigning blame to others.", "mindset"),
            Principle(2, "Small daily habits beat rare heroic effort.", "discipline"),
            Principle(3, "Spend less than you earn.", "wealth"),
        ],
        rule_sets=[
            RuleSet(1, "Own the Morning", "The start sets the terms.", ("Wake early", "Move")),
            RuleSet(2, "Review Weekly", "What gets reviewed improves.", ("Block an hour",)),
        ],
    )


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def app_state(store, catalog):
    return AppState(store, catalog)


@pytest.fixture(name="local_ms")
def local_ms_fixture():
    return local_ms


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/data
    monkeypatch.setenv("HOME", str(home))
    for var in ("CREDO_DATA_FILE", "CREDO_CATALOG_PATH", "CREDO_NAMESPACE"):
        monkeypatch.delenv(var, raising=False)
    return home
