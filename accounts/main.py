"""ASGI entrypoint for the accounts service (``uvicorn accounts.main:app``)."""

from .core.app_factory import create_application

app = create_application()

__all__ = ("app",)
