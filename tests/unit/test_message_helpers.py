"""Pure helpers: cursors, limits, LIKE escaping."""

from datetime import datetime, timezone

import pytest

from blverse.core.exceptions import ValidationException
from blverse.repositories.message_repository import escape_like
from blverse.services.message_service import clamp_limit, parse_cursor

pytestmark = pytest.mark.unit


class TestParseCursor:
    def test_empty_means_no_cursor(self):
        assert parse_cursor(None) is None
        assert parse_cursor("") is None

    def test_zulu_suffix(self):
        assert parse_cursor("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        assert parse_cursor("2024-05-01T10:00:00").tzinfo is not None

    def test_offset_converted_to_utc(self):
        assert parse_cursor("2024-05-01T12:00:00+02:00") == datetime(
            2024, 5, 1, 10, tzinfo=timezone.utc
        )

    def test_garbage_is_400(self):
        with pytest.raises(ValidationException):
            parse_cursor("yesterday")


@pytest.mark.parametrize(
    "requested,expected",
    [(None, 50), (0, 50), (-5, 1), (10, 10), (1000, 100)],
)
def test_clamp_limit(requested, expected):
    assert clamp_limit(requested, 50, 100) == expected


def test_escape_like_escapes_wildcards():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
