"""
Test constants and small doubles shared across suites
"""

from datetime import datetime, timedelta, timezone

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)

ALICE = "user-alice"
BOB = "user-bob"
CAROL = "user-carol"
ADMIN = "user-admin"


class FakeClock:
    """Callable clock that tests can move forward"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingEmailProvider:
    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    def is_configured(self) -> bool:
        return True

    def send(self, to_email, subject, body_html) -> bool:
        self.sent.append((to_email, subject))
        return self.succeed
