"""Telegram Bot API error classes."""


class TelegramAPIError(Exception):
    """Base class for Telegram Bot API errors."""

    pass


class AuthenticationError(TelegramAPIError):
    """The bot token was rejected."""

    pass


class ServerError(TelegramAPIError):
    """Server error or unexpected response."""

    pass


class NetworkError(TelegramAPIError):
    """Network error occurred."""

    pass
