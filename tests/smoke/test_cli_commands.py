"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work against a
throwaway SQLite database and a scripted reasoning service.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

import wortschatz.cli.main as cli_main
from wortschatz.config import get_settings
from wortschatz.core.errors import PersistenceFailure
from wortschatz.delivery.state_store import SqlWordStore

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

runner = CliRunner()


def run_cli_command(command: str, timeout: int = 30) -> tuple[int, str, str]:
    """
    Run a CLI command in a subprocess and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m wortschatz')
        timeout: Maximum time to wait
    """
    result = subprocess.run(
        f"{sys.executable} -m wortschatz {command}",
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'words.db'}"


@pytest.fixture(autouse=True)
def cli_env(database_url, monkeypatch, service):
    """Point the CLI at a temporary database and the fake service."""
    monkeypatch.setenv("WORTSCHATZ_DATABASE_URL", database_url)
    get_settings.cache_clear()
    monkeypatch.setattr(cli_main, "get_service", lambda settings: service)
    yield
    get_settings.cache_clear()


def invoke(*args, input=None):
    return runner.invoke(cli_main.app, list(args), input=input)


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should list the commands."""
        code, stdout, stderr = run_cli_command("--help")

        assert code == 0, f"Help failed: {stderr}"
        for command in ("add", "remove", "list", "review", "show"):
            assert command in stdout

    def test_review_help(self):
        result = invoke("review", "--help")
        assert result.exit_code == 0
        assert "--anyway" in result.output


class TestCLIWords:
    """add / list / show / remove"""

    def test_add_and_list(self, service, haus_details):
        service.details["haus"] = haus_details

        result = invoke("add", "Haus")
        assert result.exit_code == 0, result.output
        assert "Added" in result.output
        assert "das Haus" in result.output

        listing = invoke("list")
        assert listing.exit_code == 0
        assert "das Haus" in listing.output
        assert "due" in listing.output

    def test_add_uses_cache_on_second_lookup(self, service, haus_details):
        service.details["haus"] = haus_details
        invoke("add", "Haus")
        invoke("remove", "Haus")

        result = invoke("add", "haus")
        assert result.exit_code == 0, result.output
        assert service.called("get_word_details") == 1

    def test_add_duplicate(self, service, haus_details):
        service.details["haus"] = haus_details
        invoke("add", "Haus")

        result = invoke("add", "HAUS")
        assert result.exit_code == 1
        assert "already" in result.output

    def test_add_noun_without_lookup_fails(self):
        result = invoke("add", "Baum")
        assert result.exit_code == 1

    def test_add_adverb_without_details(self, database_url):
        result = invoke("add", "oft", "--category", "adverb")
        assert result.exit_code == 0, result.output

        entry = SqlWordStore(database_url).get("oft")
        assert entry.details is None
        assert entry.category.value == "adverb"

    def test_add_unknown_category(self):
        result = invoke("add", "oft", "-c", "particle")
        assert result.exit_code == 2

    def test_show(self, service, haus_details):
        service.details["haus"] = haus_details
        invoke("add", "Haus")

        result = invoke("show", "haus")
        assert result.exit_code == 0
        assert "die Häuser" in result.output
        assert "Ease factor" in result.output

    def test_show_missing(self):
        assert invoke("show", "nichts").exit_code == 1

    def test_remove(self, service, haus_details):
        service.details["haus"] = haus_details
        invoke("add", "Haus")

        assert invoke("remove", "Haus").exit_code == 0
        assert invoke("remove", "Haus").exit_code == 1
        assert "No words" in invoke("list").output

    def test_list_filters(self, service, haus_details, gehen_details):
        service.details.update(haus=haus_details, gehen=gehen_details)
        invoke("add", "Haus")
        invoke("add", "gehen")

        result = invoke("list", "--category", "verb")
        assert "gehen" in result.output
        assert "Haus" not in result.output

    def test_list_marks_overdue_words(self, seen_noun, database_url):
        SqlWordStore(database_url).upsert(seen_noun)

        result = invoke("list")
        assert result.exit_code == 0, result.output
        assert "overdue" in result.output
        assert "1 due in total" in result.output


class TestCLIReview:
    """Interactive review sessions."""

    def test_flashcard_review(self, service, haus_details, database_url):
        service.details["haus"] = haus_details
        invoke("add", "Haus")

        # Reveal the card, then rate it easy
        result = invoke("review", input="\n3\n")
        assert result.exit_code == 0, result.output
        assert "FLASHCARD" in result.output
        assert "Session Summary" in result.output

        record = SqlWordStore(database_url).get("haus").record
        assert (record.interval, record.repetitions) == (1, 1)

    def test_nothing_due_offers_review_anyway(self, service, haus_details):
        service.details["haus"] = haus_details
        invoke("add", "Haus")
        invoke("review", input="\n3\n")

        result = invoke("review", input="n\n")
        assert result.exit_code == 0, result.output
        assert "Nothing due" in result.output

    def test_empty_list(self):
        result = invoke("review")
        assert result.exit_code == 0
        assert "No words yet" in result.output

    def test_quit_keeps_record(self, service, haus_details, database_url):
        service.details["haus"] = haus_details
        invoke("add", "Haus")

        result = invoke("review", input="q\n")
        assert result.exit_code == 0, result.output
        assert SqlWordStore(database_url).get("haus").record.is_unseen


class BrokenStore:
    """Word store whose every call fails like a locked database."""

    def _fail(self, *args, **kwargs):
        raise PersistenceFailure("database is locked")

    get_all = get = upsert = delete = log_review = count_due = review_history = _fail


class TestCLIStoreFailures:
    """Store failures end the command with a message, not a traceback."""

    @pytest.fixture(autouse=True)
    def broken_store(self, monkeypatch):
        monkeypatch.setattr(cli_main, "get_store", lambda settings: BrokenStore())

    @pytest.mark.parametrize(
        "args",
        [
            ("add", "oft", "--category", "adverb"),
            ("remove", "Haus"),
            ("list",),
            ("show", "Haus"),
            ("review",),
        ],
    )
    def test_reported_and_exit_1(self, args):
        result = invoke(*args)

        assert result.exit_code == 1
        assert not isinstance(result.exception, PersistenceFailure)
        assert "database is locked" in result.output
