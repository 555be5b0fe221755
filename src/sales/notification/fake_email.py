"""In-memory email adapter for development and tests."""

from uuid import uuid4

from sales.notification.email_port import EmailPort


class FakeEmailAdapter(EmailPort):
    """Keeps every message it is asked to send in ``sent_emails``."""

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.should_succeed = True
        self.should_raise = False
        self.failure_reason = "Email delivery failed"

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        should_raise: bool = False,
    ):
        """Make later sends report a failure, or raise, instead of succeeding."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_raise = should_raise

    def send(self, to: str, subject: str, body: str) -> dict:
        if self.should_raise:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return {"message_id": None, "status": "failed", "error": self.failure_reason}

        message_id = f"msg-{uuid4().hex[:12]}"
        self.sent_emails.append({"message_id": message_id, "to": to, "subject": subject, "body": body})
        return {"message_id": message_id, "status": "sent"}
