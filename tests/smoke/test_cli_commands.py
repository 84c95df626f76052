"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work against a
fresh SQLite database.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent


@pytest.fixture
def cli_env(tmp_path):
    """Environment pointing the CLI at a throwaway database and model directory."""
    return {
        **os.environ,
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}",
        "CONTENT_ROOT": str(tmp_path),
        "LOG_FILE": "",
    }


def run_cli_command(args: list[str], env: dict, timeout: int = 60) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        args: Arguments after 'python -m adaptive_review.cli'
        env: Process environment
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    result = subprocess.run(
        [sys.executable, "-m", "adaptive_review.cli", *args],
        cwd=PROJECT_ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return result.returncode, result.stdout, result.stderr


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli_env):
        code, stdout, stderr = run_cli_command(["--help"], cli_env)

        assert code == 0, f"Help failed: {stderr}"
        assert "import-csv" in stdout
        assert "generate-synthetic" in stdout


class TestCLICommands:
    """Test commands against an initialized database."""

    @pytest.fixture
    def initialized_env(self, cli_env):
        code, _, stderr = run_cli_command(["init-db"], cli_env)
        assert code == 0, f"init-db failed: {stderr}"
        return cli_env

    def test_stats_on_empty_database(self, initialized_env):
        code, stdout, stderr = run_cli_command(["stats"], initialized_env)

        assert code == 0, f"stats failed: {stderr}"
        assert "Qualifying records" in stdout

    def test_predict_unknown_pair_exits_nonzero(self, initialized_env):
        code, stdout, _ = run_cli_command(["predict", "nobody", "1"], initialized_env)

        assert code == 1
        assert "No progress" in stdout

    def test_import_csv_reports_rejected_rows(self, initialized_env, tmp_path):
        path = tmp_path / "rows.csv"
        path.write_text(
            "header\nnobody,1,2.1,6,4,1.5,75.0,1.2,3,false,96.5\nbad,line\n",
            encoding="utf-8",
        )

        code, stdout, stderr = run_cli_command(["import-csv", str(path)], initialized_env)

        assert code == 0, f"import-csv failed: {stderr}"
        assert "Rejected rows (2)" in stdout

    def test_generate_synthetic_without_catalog_fails(self, initialized_env):
        code, _, _ = run_cli_command(["generate-synthetic", "5"], initialized_env)
        assert code == 1

    def test_purge_synthetic(self, initialized_env):
        code, stdout, stderr = run_cli_command(["purge-synthetic", "--yes"], initialized_env)

        assert code == 0, f"purge-synthetic failed: {stderr}"
        assert "Deleted 0 synthetic records" in stdout

    def test_retrain_without_data_fails(self, initialized_env):
        code, _, _ = run_cli_command(["retrain"], initialized_env)
        assert code == 1
