"""Outbound email interface used for order confirmations."""

from abc import ABC, abstractmethod


class EmailPort(ABC):
    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Deliver a plain-text message to a single recipient.

        Adapters report delivery problems in the result, shaped as
        ``{"message_id": str | None, "status": "sent" | "failed", "error": str}``
        with ``error`` present only on failure. Raising is reserved for the
        transport being unreachable.
        """
