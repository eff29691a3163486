import pytest

from valinor.core.db import base
from valinor.core.db.migrations import migrate_if_needed


@pytest.fixture(autouse=True)
def db(tmp_path):
    base.configure(str(tmp_path / "valinor-test.db"))
    con = base.get_conn()
    migrate_if_needed(con)
    yield con
    base.close_conn()
