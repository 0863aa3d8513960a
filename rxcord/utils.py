"""Utility helpers used across ``rxcord`` modules."""

import traceback

# Discord epoch (2015-01-01T00:00:00Z) in UNIX milliseconds.
DISCORD_EPOCH_MS = 1420070400000


def get_short_error_info(e: BaseException) -> str:
    """
    Get a short error information from an exception.

    Args:
        e (Exception): The exception to get the error information from.

    Returns:
        str: A short error information.
    """
    return f"{type(e).__name__}: {str(e)}"


# the function to get the full error information from an exception.
def get_full_error_info(e: BaseException) -> str:
    """
    Get the full error information from an exception.

    Args:
        e (Exception): The exception to get the error information from.

    Returns:
        str: The full error information.
    """
    return "".join(traceback.format_exception(type(e), e, e.__traceback__))


def snowflake_timestamp_raw_ms(snowflake: int) -> int:
    """Return the creation time embedded in a snowflake, in Discord epoch ms."""
    return snowflake >> 22


def snowflake_timestamp_ms(snowflake: int) -> int:
    """Return the creation time embedded in a snowflake, in UNIX epoch ms."""
    return snowflake_timestamp_raw_ms(snowflake) + DISCORD_EPOCH_MS


def redact(token: str, keep: int = 4) -> str:
    """Mask all but the last ``keep`` characters of a secret for logging."""
    if len(token) <= keep:
        return "*" * len(token)
    return "*" * (len(token) - keep) + token[-keep:]
