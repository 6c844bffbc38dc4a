"""Tests for the agentsquare CLI commands."""

from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

from agentsquare.cli.main import app
from agentsquare.db.models import Agent, Settings
from agentsquare.services.settings_service import hash_password

runner = CliRunner()


@pytest.fixture
def cli_db(test_db, monkeypatch):
    """Point CLI commands at the in-memory test database."""

    @contextmanager
    def _context():
        yield test_db
        test_db.commit()

    monkeypatch.setattr("agentsquare.db.connection.get_db_context", _context)
    return test_db


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "serve" in result.stdout
    assert "agent" in result.stdout


class TestAgentCommands:
    def test_list_empty(self, cli_db):
        result = runner.invoke(app, ["agent", "list"])
        assert result.exit_code == 0
        assert "No agents found." in result.stdout

    def test_add_then_list(self, cli_db):
        result = runner.invoke(
            app,
            ["agent", "add", "Sticker Maker", "-p", "You make stickers.", "--min-images", "1"],
        )
        assert result.exit_code == 0, result.stdout
        assert "Created agent Sticker Maker" in result.stdout

        agent = cli_db.query(Agent).one()
        assert agent.min_reference_images == 1

        listing = runner.invoke(app, ["agent", "list", "--json"])
        assert listing.exit_code == 0
        assert "Sticker Maker" in listing.stdout

    def test_add_rejects_blank_prompt(self, cli_db):
        result = runner.invoke(app, ["agent", "add", "Sticker Maker", "-p", "  "])
        assert result.exit_code == 1
        assert "system_prompt must not be empty" in result.stdout

    def test_list_hides_inactive_unless_all(self, cli_db, make_agent):
        make_agent(name="Retired", is_active=False)
        assert "No agents found." in runner.invoke(app, ["agent", "list"]).stdout
        assert "Retired" in runner.invoke(app, ["agent", "list", "--all", "--json"]).stdout

    def test_remove(self, cli_db, make_agent):
        agent = make_agent()
        result = runner.invoke(app, ["agent", "remove", agent.id, "--yes"])
        assert result.exit_code == 0
        assert cli_db.query(Agent).count() == 0

    def test_remove_aborts_without_confirmation(self, cli_db, make_agent):
        agent = make_agent()
        result = runner.invoke(app, ["agent", "remove", agent.id], input="n\n")
        assert result.exit_code == 1
        assert cli_db.query(Agent).count() == 1

    def test_remove_missing(self, cli_db):
        result = runner.invoke(app, ["agent", "remove", "missing", "--yes"])
        assert result.exit_code == 1


class TestSettingsCommands:
    def test_show_masks_secrets(self, cli_db, configure_services):
        configure_services()
        result = runner.invoke(app, ["settings", "show", "--json"])
        assert result.exit_code == 0
        assert "sk-image-test-key" not in result.stdout
        assert "image-model" in result.stdout

    def test_set_password(self, cli_db):
        result = runner.invoke(
            app, ["admin", "set-password"], input="hunter22\nhunter22\n"
        )
        assert result.exit_code == 0
        assert "Admin password updated." in result.stdout
        settings = cli_db.get(Settings, "global")
        assert settings.admin_password_hash == hash_password("hunter22")
