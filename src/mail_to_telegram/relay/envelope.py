"""Data types passed between SMTP sessions and the relay worker."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Envelope:
    """A completed SMTP transaction ready to be relayed.

    Attributes:
        sender: Reverse path given with MAIL FROM
        recipients: Forward paths in the order they were given with RCPT TO
        body: Full DATA payload decoded as UTF-8
    """

    sender: str
    recipients: tuple[str, ...]
    body: str

    @property
    def size(self) -> int:
        """Size of the body in UTF-8 bytes."""
        return len(self.body.encode("utf-8"))

