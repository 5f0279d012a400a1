"""Bot Framework transport configuration."""

from __future__ import annotations

import os

from pydantic import BaseModel, SecretStr, model_validator


class BotFrameworkConfig(BaseModel):
    """Microsoft Bot Framework credentials.

    Leave both ``app_id`` and ``app_password`` empty to talk to a local
    Bot Framework Emulator without authentication::

        BotFrameworkConfig()
        BotFrameworkConfig(app_id="...", app_password="...")
    """

    app_id: str = ""
    app_password: SecretStr | None = None
    tenant_id: str = "common"

    @model_validator(mode="after")
    def _validate_credentials(self) -> BotFrameworkConfig:
        if self.app_id and self.app_password is None:
            msg = "app_password is required when app_id is set."
            raise ValueError(msg)
        if self.app_password is not None and not self.app_id:
            msg = "app_password was given without app_id."
            raise ValueError(msg)
        return self

    @classmethod
    def from_env(cls) -> BotFrameworkConfig:
        """Build a config from the ``MICROSOFT_APP_*`` environment variables."""
        app_id = os.environ.get("MICROSOFT_APP_ID", "")
        app_password = os.environ.get("MICROSOFT_APP_PASSWORD") or None
        return cls(
            app_id=app_id,
            app_password=app_password,
            tenant_id=os.environ.get("MICROSOFT_APP_TENANT_ID", "common"),
        )

    @property
    def password(self) -> str:
        """The plain-text password, or an empty string for the emulator."""
        return self.app_password.get_secret_value() if self.app_password is not None else ""
