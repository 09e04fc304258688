from collections.abc import Generator

import pytest

import invitechan.util.db as db_module
from invitechan.util.db import configure_engine, init_db


@pytest.fixture
def memory_db() -> Generator[None, None, None]:
    configure_engine("sqlite:///:memory:")
    init_db()
    yield
    # Reset module-level engine to avoid polluting other tests
    db_module._engine = None
