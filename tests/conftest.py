"""Shared fixtures: a fake Discord session and a loguru capture sink."""

import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest
from loguru import logger

from app.models.schemas import BotIdentity, ChannelPermissions
from app.utils.config import read_settings

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
CHANNEL_ID = 123456789


class FakeChannel:
    """Stands in for a discord.TextChannel (or a voice channel when is_text=False)."""

    def __init__(self, name: str = "screenshots", is_text: bool = True, permissions: ChannelPermissions | None = None):
        self.name = name
        self.is_text = is_text
        self.permissions = permissions or ChannelPermissions(
            send_messages=True, attach_files=True, view_channel=True
        )


class FakeSession:
    """Records every call the relay makes against Discord."""

    def __init__(self, channel: FakeChannel | None = None):
        self.channel = channel
        self.resolve_calls: list[int] = []
        self.uploads: list[tuple[Path, str]] = []
        self.send_error: Exception | None = None
        self.ready_hooks = []
        self.connected = False
        self.closed = False

    def add_ready_hook(self, hook) -> None:
        self.ready_hooks.append(hook)

    async def fire_ready(self) -> None:
        for hook in self.ready_hooks:
            await hook()

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.closed = True

    def identity(self) -> BotIdentity:
        return BotIdentity(tag="relay#0001", id=1, guilds=1)

    async def resolve_channel(self, channel_id: int):
        self.resolve_calls.append(channel_id)
        await asyncio.sleep(0)
        return self.channel

    @staticmethod
    def is_text_channel(channel) -> bool:
        return getattr(channel, "is_text", False)

    def permissions_for(self, channel) -> ChannelPermissions:
        return channel.permissions

    async def send_file(self, channel, path: Path, filename: str):
        await asyncio.sleep(0)
        if self.send_error is not None:
            raise self.send_error
        self.uploads.append((path, filename))
        return SimpleNamespace(id=len(self.uploads))


@pytest.fixture
def session() -> FakeSession:
    return FakeSession(FakeChannel())


@pytest.fixture
def log_messages():
    """Collect loguru output as 'LEVEL message' strings."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.rstrip("\n")), level="DEBUG", format="{level} {message}")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides):
        values = {
            "_env_file": None,
            "discord_token": "test-token",
            "channel_id": str(CHANNEL_ID),
            "watch_path": str(tmp_path),
        }
        values.update(overrides)
        return read_settings(**values)

    return _make


@pytest.fixture
def make_channel():
    return FakeChannel


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
