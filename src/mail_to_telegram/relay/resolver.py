"""Chat id resolution from recipient addresses."""

import re
from typing import Optional


CHAT_ID_PATTERN = re.compile(r"(\d*)@telegram-bot\.com")

MAX_CHAT_ID = 2**64 - 1


def resolve(
    address: str,
    fallback: Optional[int] = None,
    pattern: re.Pattern = CHAT_ID_PATTERN,
) -> Optional[int]:
    """Resolve the Telegram chat id for a recipient address.

    ``<digits>@telegram-bot.com`` carries the chat id in the local part.
    Any other address, or digits that do not fit an unsigned 64-bit
    integer, resolve to ``fallback``.

    Args:
        address: Recipient address from RCPT TO
        fallback: Chat id to use when the address carries none

    Returns:
        Chat id, or None if unresolved
    """
    match = pattern.search(address)
    if match and match.group(1):
        chat_id = int(match.group(1))
        if chat_id <= MAX_CHAT_ID:
            return chat_id
    return fallback


class DestinationResolver:
    """Resolves recipients with a fixed fallback chat id."""

    def __init__(self, fallback: Optional[int] = None, pattern: re.Pattern = CHAT_ID_PATTERN) -> None:
        self.fallback = fallback
        self._pattern = pattern

    def resolve(self, address: str) -> Optional[int]:
        return resolve(address, self.fallback, self._pattern)
