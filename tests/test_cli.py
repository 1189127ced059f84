"""Tests for the scripts/backup_admin.py operator CLI."""

import json
import os
import subprocess
import sys
from pathlib import Path
from typing import List

import pytest

SCRIPT_PATH = Path(__file__).parent.parent / "scripts" / "backup_admin.py"


@pytest.fixture
def live_dir(tmp_path) -> Path:
    path = tmp_path / "databases"
    path.mkdir()
    (path / "attendance.db").write_bytes(b"attendance" * 100)
    (path / "auth.db").write_bytes(b"auth" * 100)
    return path


def run_cli(args: List[str], tmp_path: Path, live_dir: Path) -> subprocess.CompletedProcess:
    """Run backup_admin.py against a temporary backup tree.

    Returns:
        CompletedProcess with stdout, stderr, returncode
    """
    cmd = [
        sys.executable,
        str(SCRIPT_PATH),
        "--backup-dir",
        str(tmp_path / "backups"),
        "--data-dir",
        str(live_dir),
        *args,
    ]
    env = {k: v for k, v in os.environ.items() if not k.startswith("ATTENDANCE_BACKUP_")}
    return subprocess.run(cmd, capture_output=True, text=True, env=env, cwd=tmp_path)


def create(tmp_path, live_dir, tier="manual") -> str:
    result = run_cli(["create", "--tier", tier], tmp_path, live_dir)
    assert result.returncode == 0, result.stderr
    return result.stdout.splitlines()[0].split(": ", 1)[1]


class TestBackupAdminCLI:
    """End-to-end CLI behaviour."""

    def test_no_command_prints_help(self, tmp_path, live_dir):
        result = run_cli([], tmp_path, live_dir)
        assert result.returncode == 1
        assert "usage" in result.stdout.lower()

    def test_create_and_list_json(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)
        assert backup_id.startswith("manual-")

        result = run_cli(["list", "--format", "json"], tmp_path, live_dir)

        assert result.returncode == 0, result.stderr
        backups = json.loads(result.stdout)
        assert [b["id"] for b in backups] == [backup_id]
        assert backups[0]["tier"] == "manual"
        assert backups[0]["created_by"] == "operator"

    def test_list_empty(self, tmp_path, live_dir):
        result = run_cli(["list"], tmp_path, live_dir)
        assert result.returncode == 0
        assert "No backups found" in result.stdout

    def test_list_table(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir, tier="daily")
        result = run_cli(["list"], tmp_path, live_dir)

        assert backup_id in result.stdout
        assert "Total: 1 backups" in result.stdout

    def test_show(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)
        result = run_cli(["show", backup_id], tmp_path, live_dir)

        assert result.returncode == 0
        assert json.loads(result.stdout)["id"] == backup_id

    def test_verify_ok_and_corrupt(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)

        ok = run_cli(["verify", backup_id], tmp_path, live_dir)
        assert ok.returncode == 0
        assert "VALID" in ok.stdout

        (tmp_path / "backups" / "manual" / f"{backup_id}-auth.db").write_bytes(b"bad")
        bad = run_cli(["verify", backup_id], tmp_path, live_dir)
        assert bad.returncode == 1
        assert "INVALID" in bad.stdout

    def test_restore(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)
        original = (live_dir / "auth.db").read_bytes()
        (live_dir / "auth.db").write_bytes(b"broken")

        result = run_cli(["restore", backup_id], tmp_path, live_dir)

        assert result.returncode == 0, result.stderr
        assert "Pre-restore backup: manual-" in result.stdout
        assert (live_dir / "auth.db").read_bytes() == original

    def test_delete_and_delete_again(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)

        first = run_cli(["delete", backup_id], tmp_path, live_dir)
        second = run_cli(["delete", backup_id], tmp_path, live_dir)

        assert first.returncode == 0
        assert second.returncode == 1
        assert "NOT_FOUND" in second.stderr

    def test_unknown_backup(self, tmp_path, live_dir):
        result = run_cli(["show", "daily-1999-01-01"], tmp_path, live_dir)
        assert result.returncode == 1
        assert "not found" in result.stderr

    def test_create_with_missing_source(self, tmp_path, live_dir):
        (live_dir / "auth.db").unlink()
        result = run_cli(["create"], tmp_path, live_dir)

        assert result.returncode == 1
        assert "SOURCE_MISSING" in result.stderr

    def test_rotate_usage_status(self, tmp_path, live_dir):
        create(tmp_path, live_dir, tier="daily")

        rotate = run_cli(["rotate"], tmp_path, live_dir)
        assert rotate.returncode == 0
        assert json.loads(rotate.stdout) == {"promoted": [], "deleted": [], "errors": []}

        usage = run_cli(["usage", "--format", "json"], tmp_path, live_dir)
        assert json.loads(usage.stdout)["count_by_tier"]["daily"] == 1

        status = run_cli(["status"], tmp_path, live_dir)
        data = json.loads(status.stdout)
        assert data["enabled"] is True
        assert data["last_backup"] is not None

    def test_cleanup(self, tmp_path, live_dir):
        backup_id = create(tmp_path, live_dir)
        (tmp_path / "backups" / "manual" / f"{backup_id}-attendance.db").unlink()

        result = run_cli(["cleanup"], tmp_path, live_dir)

        assert result.returncode == 0
        assert f"Removed orphan: {backup_id}" in result.stdout

    def test_bad_configuration(self, tmp_path, live_dir):
        result = run_cli(["--databases", "no-colon", "list"], tmp_path, live_dir)
        assert result.returncode == 1
        assert "CONFIGURATION_ERROR" in result.stderr
