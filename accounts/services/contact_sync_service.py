"""CRM contact synchronisation over HTTP."""

import logging
from typing import Any, Dict, Optional

import httpx

from accounts.domain.errors import ContactSyncError

logger = logging.getLogger(__name__)


class ContactSyncService:
    """Pushes newly registered users to the CRM contacts endpoint."""

    def __init__(
        self,
        contacts_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.contacts_url = contacts_url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self.enabled = bool(contacts_url and api_key)

    def create_contact(self, payload: Dict[str, Any]) -> None:
        """
        Create a CRM contact.

        Raises:
            ContactSyncError: If the CRM is unreachable or rejects the contact
        """
        if not self.enabled:
            logger.debug("CRM sync disabled; skipping contact %s", payload.get("email"))
            return

        try:
            with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = client.post(
                    self.contacts_url,
                    json={"properties": payload},
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as exc:
            raise ContactSyncError(f"CRM request failed: {exc}") from exc

        if response.status_code >= 400:
            raise ContactSyncError(
                f"CRM rejected contact ({response.status_code}): {response.text[:200]}"
            )
        logger.info("Synced contact %s to CRM", payload.get("email"))
