"""Exceptions raised by infrastructure adapters."""


class DuplicateEmailError(Exception):
    """Raised by the credential store when an email is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email already registered: {email}")
        self.email = email


class EmailDeliveryError(Exception):
    """Raised when an outbound email could not be handed to the SMTP server."""


class ContactSyncError(Exception):
    """Raised when the CRM rejects or cannot receive a contact."""
