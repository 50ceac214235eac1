import pytest

from bgg_library.database import GameCatalog, UserLibrary


@pytest.fixture
def db_path(tmp_path):
    """Fresh SQLite database file per test."""
    return tmp_path / "bgg_library_test.db"


@pytest.fixture
def catalog(db_path):
    return GameCatalog(db_path)


@pytest.fixture
def library(db_path):
    return UserLibrary(db_path)


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []
    return delays.append, delays
