"""CLI smoke tests against a throwaway data directory."""

import json

import pytest
from typer.testing import CliRunner

from focusflow import __version__
from focusflow.cli.main import app
from focusflow.core.config import get_config

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("FOCUSFLOW_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FOCUSFLOW_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("FOCUSFLOW_CONFIG_DIR", str(tmp_path / "config"))
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_add_toggle_and_list():
    added = runner.invoke(app, ["habit", "add", "Stretch", "--target", "2"])
    assert added.exit_code == 0, added.output
    assert "Stretch" in added.output

    first = runner.invoke(app, ["toggle", "stretch"])
    assert "1/2" in first.output

    second = runner.invoke(app, ["toggle", "Stretch"])
    assert "done for today" in second.output

    listed = runner.invoke(app, ["habit", "list"])
    assert listed.exit_code == 0
    assert "2/2" in listed.output


def test_unknown_habit_exits_with_error():
    result = runner.invoke(app, ["toggle", "nothing-here"])
    assert result.exit_code == 1
    assert "No habit matches" in result.output


def test_invalid_target_is_reported():
    result = runner.invoke(app, ["habit", "add", "Read", "--target", "0"])
    assert result.exit_code == 1


def test_remind_settings():
    result = runner.invoke(app, ["remind", "set", "--time", "07:15", "--on"])
    assert result.exit_code == 0
    assert "on" in result.output and "07:15" in result.output

    bad = runner.invoke(app, ["remind", "set", "--time", "7am"])
    assert bad.exit_code == 1


def test_achievements_listed():
    runner.invoke(app, ["habit", "add", "Read"])
    result = runner.invoke(app, ["achievements"])
    assert result.exit_code == 0
    assert "New Journey" in result.output


def test_add_from_template():
    result = runner.invoke(app, ["habit", "add", "--template", "10"])
    assert result.exit_code == 0, result.output
    assert "Drink 8 Glasses of Water" in result.output

    listed = runner.invoke(app, ["habit", "list"])
    assert "Health" in listed.output


def test_add_needs_title_or_template():
    result = runner.invoke(app, ["habit", "add"])
    assert result.exit_code == 1
    assert "--template" in result.output


def test_unknown_category_is_reported():
    result = runner.invoke(app, ["habit", "add", "Read", "--category", "general"])
    assert result.exit_code == 1
    assert "Unknown category" in result.output


def test_templates_filtered_by_category():
    runner.invoke(app, ["habit", "add", "--template", "Inbox Zero"])

    result = runner.invoke(app, ["habit", "templates", "--category", "work"])

    assert result.exit_code == 0, result.output
    assert "Plan Tomorrow" in result.output
    assert "(added)" in result.output
    assert "Meditation" not in result.output


def test_stats_focus_without_sessions():
    result = runner.invoke(app, ["stats", "focus", "--days", "30"])
    assert result.exit_code == 0, result.output
    assert "last 30 days" in result.output
    assert "No sessions yet" in result.output

    bad = runner.invoke(app, ["stats", "focus", "--days", "0"])
    assert bad.exit_code == 1


def test_export_to_file(tmp_path):
    runner.invoke(app, ["habit", "add", "--template", "4"])
    runner.invoke(app, ["toggle", "meditation"])
    target = tmp_path / "report.json"

    result = runner.invoke(app, ["export", "--output", str(target)])

    assert result.exit_code == 0, result.output
    data = json.loads(target.read_text())
    assert data["habits"][0]["title"] == "Meditation"
    assert data["habits"][0]["category"] == "mindfulness"
    assert data["habits"][0]["today_count"] == 1
    assert data["focus"]["session_count"] == 0
    assert any(a["id"] == "perfect_day" and a["unlocked"] for a in data["achievements"])
