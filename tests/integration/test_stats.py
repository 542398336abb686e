from datetime import date

from habitual.detect import detect_and_log_missed
from habitual.stats import HISTORY_DAYS, DayState, get_all_recurring_stats, get_recurring_stats
from habitual.tasks import add_task, complete_task

TODAY = date(2024, 1, 5)


def _tracked_habit() -> tuple[str, str]:
    root_id = add_task("stretch", deadline=date(2024, 1, 1), pattern="daily")
    instance = complete_task(root_id, on=date(2024, 1, 1))
    detect_and_log_missed(instance.id, today=TODAY)
    return root_id, instance.id


def test_recurring_stats(tmp_habitual_dir):
    root_id, _ = _tracked_habit()

    stats = get_recurring_stats(root_id, today=TODAY)

    assert stats.recurring_root_id == root_id
    assert stats.pattern == "daily"
    assert stats.total_completed == 1
    assert stats.total_missed == 3
    assert stats.completion_rate == 25
    assert stats.current_streak == 0
    assert stats.longest_streak == 1
    assert stats.deadline == TODAY
    assert [log.missed_date for log in stats.missed_logs] == [
        date(2024, 1, 4),
        date(2024, 1, 3),
        date(2024, 1, 2),
    ]


def test_history_strip(tmp_habitual_dir):
    root_id, _ = _tracked_habit()

    history = get_recurring_stats(root_id, today=TODAY).history

    assert len(history) == HISTORY_DAYS
    assert history[0].day == date(2023, 12, 7)
    assert history[-1].day == TODAY
    by_day = {h.day: h.status for h in history}
    assert by_day[date(2023, 12, 31)] is DayState.NONE
    assert by_day[date(2024, 1, 1)] is DayState.COMPLETED
    assert by_day[date(2024, 1, 2)] is DayState.MISSED
    assert by_day[date(2024, 1, 4)] is DayState.MISSED
    assert by_day[TODAY] is DayState.NONE


def test_instance_id_resolves_to_root(tmp_habitual_dir):
    root_id, instance_id = _tracked_habit()

    stats = get_recurring_stats(instance_id, today=TODAY)

    assert stats.recurring_root_id == root_id
    assert stats.total_missed == 3


def test_non_habits_have_no_stats(tmp_habitual_dir):
    plain = add_task("buy milk")

    assert get_recurring_stats(plain, today=TODAY) is None
    assert get_recurring_stats("missing", today=TODAY) is None


def test_new_habit_has_neutral_stats(tmp_habitual_dir):
    habit_id = add_task("read", deadline=TODAY, pattern="daily")

    stats = get_recurring_stats(habit_id, today=TODAY)

    assert stats.completion_rate == 0
    assert stats.missed_logs == ()
    assert all(h.status is DayState.NONE for h in stats.history)


def test_all_stats_worst_first(tmp_habitual_dir):
    root_id, _ = _tracked_habit()
    fresh = add_task("read", deadline=TODAY, pattern="weekly", days=[1])
    add_task("buy milk")

    all_stats = get_all_recurring_stats(today=TODAY)

    assert [s.recurring_root_id for s in all_stats] == [fresh, root_id]
    assert all_stats[0].recurring_days == (1,)
    assert all_stats[1].completion_rate == 25


def test_no_habits(tmp_habitual_dir):
    assert get_all_recurring_stats(today=TODAY) == []
