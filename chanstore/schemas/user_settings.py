# chanstore/schemas/user_settings.py
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


class UserSettingsRecord(BaseModel):
    """Document persisted per channel: ``{count, userSettings, credentialsKey}``."""

    # Nombre d'abonnés qui partagent ces réglages
    count: int = Field(default=0, ge=0)
    # Payload opaque, jamais interprété par le provider
    userSettings: Any = None
    credentialsKey: Optional[str] = None


class UserSettingsView(BaseModel):
    channelLabel: str
    userSettings: Any = None
    # None si aucun auth record pour la credentialsKey
    authTokens: Any = None
