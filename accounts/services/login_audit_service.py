"""Service recording login attempts."""

import logging
from typing import List, Optional

from accounts.core.clock import SystemClock
from accounts.domain.models.login_event import ClientContext, LoginEvent, LoginMethod
from accounts.domain.models.user import User
from accounts.domain.ports.gateways import Clock
from accounts.domain.ports.persistence import LoginEventRepository

logger = logging.getLogger(__name__)


class LoginAuditService:
    """Writes one immutable LoginEvent per login attempt."""

    def __init__(self, repository: LoginEventRepository, clock: Optional[Clock] = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    def record(
        self,
        user: User,
        successful: bool,
        method: LoginMethod,
        failure_reason: Optional[str] = None,
        client: Optional[ClientContext] = None,
    ) -> LoginEvent:
        """
        Record a login attempt.

        The write completes before returning so that no attempt goes
        unaudited; storage errors propagate to the caller.
        """
        client = client or ClientContext()
        event = self.repository.append(
            user_id=user.id,
            occurred_at=self.clock.now(),
            successful=successful,
            method=method,
            failure_reason=None if successful else failure_reason,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            device=client.device,
        )
        if successful:
            logger.info("Login succeeded for user %s via %s", user.id, method.value)
        else:
            logger.info("Login failed for user %s via %s: %s", user.id, method.value, failure_reason)
        return event

    def history(self, user_id: str, limit: int = 50) -> List[LoginEvent]:
        return self.repository.list_for_user(user_id, limit)
