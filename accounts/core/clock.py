from datetime import datetime, timezone

from ..domain.ports.gateways import Clock


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)
