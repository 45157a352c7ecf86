import os
import tempfile
from pathlib import Path

_DB_DIR = Path(tempfile.mkdtemp(prefix="inventory-sync-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{_DB_DIR / 'test.db'}")

import pytest  # noqa: E402

from backend.app.db import models  # noqa: E402
from backend.app.db.session import ENGINE  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _schema():
    models.Base.metadata.create_all(ENGINE)
    yield
    models.Base.metadata.drop_all(ENGINE)
