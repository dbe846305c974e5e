"""Mail to Telegram gateway.

An SMTP listener that relays every received mail to Telegram chats, with the
chat resolved from the recipient address.
"""

__version__ = "0.1.0"

# Package metadata
__all__ = ["__version__"]
