from __future__ import annotations

from datetime import date, time

import pytest
import pytz

from courtbook.core.exceptions import ValidationException
from courtbook.core.timezone_utils import get_timezone, local_label
from courtbook.utils.time_utils import minutes_to_label, minutes_to_time, parse_hhmm, time_to_minutes


class TestTimeUtils:
    def test_midnight_as_end_of_day(self) -> None:
        assert time_to_minutes(time(0, 0)) == 0
        assert time_to_minutes(time(0, 0), is_end_time=True) == 1440
        assert minutes_to_time(1440) == time(0, 0)
        assert minutes_to_label(1440) == "00:00"

    @pytest.mark.parametrize("value, minutes", [("08:00", 480), ("9:30", 570), ("23:59:00", 1439)])
    def test_parse(self, value: str, minutes: int) -> None:
        assert parse_hhmm(value) == minutes

    @pytest.mark.parametrize("value", ["24:30", "12:60", "noon", ""])
    def test_parse_rejects(self, value: str) -> None:
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_end_of_day(self) -> None:
        assert parse_hhmm("00:00", is_end_time=True) == 1440


class TestTimezoneUtils:
    def test_unknown_timezone(self) -> None:
        with pytest.raises(ValidationException) as exc:
            get_timezone("Nowhere/Town")

        assert exc.value.code == "INVALID_TIMEZONE"

    def test_no_timezone(self) -> None:
        assert get_timezone(None) is None

    def test_local_label_crosses_midnight(self) -> None:
        tokyo = pytz.timezone("Asia/Tokyo")

        assert local_label(date(2030, 1, 15), 20 * 60, tokyo) == "05:00"
        assert local_label(date(2030, 1, 15), 1440, tokyo) == "09:00"
