import shutil
import tempfile
from pathlib import Path

import pytest

from commitsmith.models import FileDiff


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Temporarily move any existing user-level commitsmith config out of the way.

    Some tests expect no user-level config to exist. This fixture moves the
    file aside for the duration of the test session and restores it afterwards.
    """
    config_path = Path.home() / ".commitsmith" / "config.json"
    backup_dir = None
    if config_path.exists():
        backup_dir = Path(tempfile.mkdtemp(prefix="commitsmith_backup_"))
        shutil.move(str(config_path), str(backup_dir / "config.json"))

    try:
        yield
    finally:
        if backup_dir is not None:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup_dir / "config.json"), str(config_path))
            shutil.rmtree(str(backup_dir), ignore_errors=True)


@pytest.fixture
def make_diff():
    """Build a FileDiff with a small unified diff body by default."""

    def _make(path="src/app.py", additions=3, deletions=1, changes=None, **flags):
        if changes is None:
            changes = (
                f"diff --git a/{path} b/{path}\n"
                "@@ -1,2 +1,4 @@\n"
                "-old_value = 1\n"
                "+new_value = 2\n"
                "+def helper():\n"
                "+    return new_value\n"
            )
        return FileDiff(path=path, additions=additions, deletions=deletions, changes=changes, **flags)

    return _make
