import json
from datetime import date, datetime

import pytest

from habitual.lib import clock
from habitual.tasks import add_task
from tests.conftest import FnCLIRunner

runner = FnCLIRunner()


@pytest.fixture
def frozen_today(tmp_habitual_dir, monkeypatch):
    monkeypatch.setattr(clock, "today", lambda: date(2024, 1, 5))
    monkeypatch.setattr(clock, "now", lambda: datetime(2024, 1, 5, 9))
    return date(2024, 1, 5)


@pytest.fixture
def stretch(frozen_today):
    result = runner.invoke(["add", "stretch", "--pattern", "daily", "--due", "2024-01-01"])
    assert result.exit_code == 0
    assert "added: stretch" in result.stdout


def test_sweep_logs_misses(stretch):
    result = runner.invoke(["sweep"])

    assert result.exit_code == 0
    assert "processed 1, 4 new misses" in result.stdout

    result = runner.invoke(["sweep"])
    assert "processed 0, 0 new misses" in result.stdout


def test_detect_one(stretch):
    result = runner.invoke(["detect", "stretch"])

    assert result.exit_code == 0
    assert "stretch: 4 missed, next 2024-01-05" in result.stdout


def test_missed_with_limit(stretch):
    runner.invoke(["sweep"])

    result = runner.invoke(["missed", "stretch", "--limit", "2"])

    assert result.exit_code == 0
    assert "2024-01-04" in result.stdout
    assert "2024-01-03" in result.stdout
    assert "2024-01-02" not in result.stdout


def test_ledger_lists_all(stretch):
    runner.invoke(["sweep"])

    result = runner.invoke(["ledger"])

    assert result.exit_code == 0
    assert result.stdout.count("stretch") == 4


def test_habit_stats(stretch):
    runner.invoke(["sweep"])

    result = runner.invoke(["habit", "stretch"])

    assert result.exit_code == 0
    assert "missed 4" in result.stdout
    assert "due 2024-01-05" in result.stdout


def test_habits_json(stretch):
    runner.invoke(["sweep"])

    result = runner.invoke(["habits", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload[0]["total_missed"] == 4
    assert payload[0]["completion_rate"] == 0


def test_done_schedules_next(stretch):
    runner.invoke(["sweep"])

    result = runner.invoke(["done", "stretch"])

    assert result.exit_code == 0
    assert "next 2024-01-06" in result.stdout


def test_analytics_commands_run(stretch):
    for args in (["mastery"], ["lag", "--period", "week"], ["triage"]):
        result = runner.invoke(args)
        assert result.exit_code == 0, args


def test_unknown_ref_fails(frozen_today):
    result = runner.invoke(["detect", "nothing-here"])

    assert result.exit_code == 1
    assert "No task found" in result.stderr


def test_bad_period_fails(frozen_today):
    result = runner.invoke(["mastery", "--period", "fortnight"])

    assert result.exit_code == 1
    assert "unknown period" in result.stderr


def test_bad_pattern_fails(frozen_today):
    result = runner.invoke(["add", "stretch", "--pattern", "hourly"])

    assert result.exit_code == 1
    assert "unknown pattern" in result.stderr


def test_db_migrate(tmp_habitual_dir):
    result = runner.invoke(["db", "migrate"])

    assert result.exit_code == 0
    assert "migrations applied" in result.stdout


def test_detect_by_full_id(frozen_today):
    habit_id = add_task("stretch", deadline=date(2024, 1, 1), pattern="daily")

    result = runner.invoke(["detect", habit_id])

    assert result.exit_code == 0
    assert "stretch: 4 missed" in result.stdout
