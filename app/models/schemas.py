"""
Pydantic models for the PNG relay.

Shared data models across the application.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Watcher Models
# =====================================================

class FileEvent(BaseModel):
    """A stable file reported as added under the watch root."""
    model_config = ConfigDict(frozen=True)

    path: Path
    detected_at: datetime = Field(default_factory=datetime.now)

    @property
    def filename(self) -> str:
        return self.path.name


# =====================================================
# Discord Models
# =====================================================

class BotIdentity(BaseModel):
    """Who the bot is logged in as."""
    tag: str
    id: int
    guilds: int = 0


class ChannelPermissions(BaseModel):
    """Permission flags the relay cares about for one channel."""
    send_messages: bool = False
    attach_files: bool = False
    view_channel: bool = False

    @property
    def can_upload(self) -> bool:
        return self.send_messages and self.attach_files


class ChannelAccessStatus(str, Enum):
    """Outcome of a destination channel check."""
    OK = "ok"
    NOT_FOUND = "not_found"
    NOT_TEXT_CHANNEL = "not_text_channel"
    MISSING_PERMISSIONS = "missing_permissions"
    ERROR = "error"


class ChannelAccessReport(BaseModel):
    """Result of verifying the destination channel at startup."""
    channel_id: int
    status: ChannelAccessStatus
    channel_name: Optional[str] = None
    permissions: Optional[ChannelPermissions] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == ChannelAccessStatus.OK
