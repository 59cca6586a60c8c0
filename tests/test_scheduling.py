from datetime import datetime

from app.modules.campaigns.scheduling import already_ran, due_fire_time, is_campaign_due, next_run_utc
from app.shared.utils.dates import business_tz


def _local(*args):
    return datetime(*args, tzinfo=business_tz())


def test_due_right_after_fire_time():
    assert is_campaign_due("0 10 * * *", _local(2024, 5, 10, 10, 1))


def test_due_right_before_fire_time():
    assert is_campaign_due("0 10 * * *", _local(2024, 5, 10, 9, 59))


def test_not_due_outside_window():
    assert not is_campaign_due("0 10 * * *", _local(2024, 5, 10, 10, 30))
    assert not is_campaign_due("0 10 * * 1", _local(2024, 5, 10, 10, 0, 30))


def test_window_is_configurable():
    assert is_campaign_due("0 10 * * *", _local(2024, 5, 10, 10, 4), window_seconds=300)


def test_next_run_is_naive_utc():
    assert next_run_utc("0 10 * * *", _local(2024, 5, 10, 10, 30)) == datetime(2024, 5, 11, 13, 0)


def test_due_fire_time_picks_the_fire_inside_the_window():
    assert due_fire_time("0 10 * * *", _local(2024, 5, 10, 9, 59)) == _local(2024, 5, 10, 10, 0)
    assert due_fire_time("0 10 * * *", _local(2024, 5, 10, 10, 1)) == _local(2024, 5, 10, 10, 0)
    assert due_fire_time("0 10 * * *", _local(2024, 5, 10, 10, 30)) is None


def test_already_ran_for_the_same_fire():
    fire = _local(2024, 5, 10, 10, 0)
    assert not already_ran(None, fire)
    # 10:00 local son 13:00 UTC; la ventana arranca 12:58
    assert already_ran(datetime(2024, 5, 10, 12, 59), fire)
    assert already_ran(datetime(2024, 5, 10, 13, 1), fire)
    assert not already_ran(datetime(2024, 5, 9, 13, 0), fire)
