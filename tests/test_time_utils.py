from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from drink_tally.time_utils import local_date_string


def test_local_date_follows_zone_not_utc() -> None:
    dt = datetime(2024, 5, 1, 22, 30, tzinfo=timezone.utc)  # 00:30 next day in Oslo
    assert local_date_string(dt, "Europe/Oslo") == "2024-05-02"
    assert local_date_string(dt, "America/New_York") == "2024-05-01"


def test_naive_datetime_is_local() -> None:
    assert local_date_string(datetime(2024, 5, 1, 23, 59)) == "2024-05-01"
    assert local_date_string(datetime(2024, 5, 2, 0, 1, tzinfo=ZoneInfo("Europe/Oslo"))) == "2024-05-02"
