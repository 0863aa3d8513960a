import pytest

from rxcord.utils import (
    DISCORD_EPOCH_MS,
    get_full_error_info,
    get_short_error_info,
    redact,
    snowflake_timestamp_ms,
    snowflake_timestamp_raw_ms,
)


def test_error_info_functions():
    try:
        raise ValueError('oops')
    except Exception as e:
        short = get_short_error_info(e)
        full = get_full_error_info(e)

    assert short == 'ValueError: oops'
    assert 'Traceback' in full and 'oops' in full


def test_snowflake_timestamp_raw():
    assert snowflake_timestamp_raw_ms(175928847299117063) == 41944705796


def test_snowflake_timestamp_unix():
    assert snowflake_timestamp_ms(175928847299117063) == 1462015105796
    assert snowflake_timestamp_ms(0) == DISCORD_EPOCH_MS


@pytest.mark.parametrize(
    "token, expected",
    [
        ("abcdefgh", "****efgh"),
        ("abcd", "****"),
        ("", ""),
    ],
)
def test_redact(token, expected):
    assert redact(token) == expected
