import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_SECRET = "change-me"


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/accounts.db")).resolve()
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_secret = os.getenv("ACCESS_TOKEN_SECRET", _DEFAULT_SECRET)
        self.access_token_exp_minutes = self._get_int("ACCESS_TOKEN_EXP_MINUTES", default=15)
        self.refresh_token_secret = os.getenv("REFRESH_TOKEN_SECRET", _DEFAULT_SECRET + "-refresh")
        self.refresh_token_exp_minutes = self._get_int("REFRESH_TOKEN_EXP_MINUTES", default=60 * 24 * 7)
        self.action_token_secret = os.getenv("ACTION_TOKEN_SECRET", _DEFAULT_SECRET + "-action")
        self.verification_token_exp_hours = self._get_int("VERIFICATION_TOKEN_EXP_HOURS", default=24)
        self.reset_token_exp_minutes = self._get_int("RESET_TOKEN_EXP_MINUTES", default=60)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:3000")
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "")
        self.crm_contacts_url = os.getenv("CRM_CONTACTS_URL")
        self.crm_api_key = os.getenv("CRM_API_KEY")
        self.crm_timeout_seconds = self._get_int("CRM_TIMEOUT_SECONDS", default=5)
        self.admin_default_email = os.getenv("ADMIN_EMAIL")
        self.admin_default_password = os.getenv("ADMIN_PASSWORD")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = ["*"]

    def warn_on_default_secrets(self) -> None:
        for name in ("access_token_secret", "refresh_token_secret", "action_token_secret"):
            if getattr(self, name).startswith(_DEFAULT_SECRET):
                logger.warning(
                    "%s is using the default value. Configure a secure secret in production.",
                    name.upper(),
                )

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
