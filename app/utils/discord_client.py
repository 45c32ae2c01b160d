"""
Discord session wrapper.

Provides:
- Bot login with token handling
- One-shot ready hook
- Channel resolution and permission introspection
- Attachment upload
"""

from pathlib import Path
from typing import Awaitable, Callable, Optional

import aiohttp
import discord
from loguru import logger

from app.models.schemas import BotIdentity, ChannelPermissions
from app.utils.errors import AuthenticationError

ReadyHook = Callable[[], Awaitable[None]]


def default_intents() -> discord.Intents:
    """Intents needed to see guild channels; no message content required."""
    intents = discord.Intents.default()
    intents.message_content = False
    return intents


class RelayClient(discord.Client):
    """discord.Client that forwards ready and error events to the session."""

    def __init__(self, *, ready_hook: Optional[ReadyHook] = None, **options):
        super().__init__(**options)
        self.ready_hook = ready_hook

    async def on_ready(self):
        if self.ready_hook is not None:
            await self.ready_hook()

    async def on_error(self, event_method: str, /, *args, **kwargs):
        logger.opt(exception=True).error(f"Discord Error in {event_method}")


class DiscordSession:
    """Authenticated connection to Discord, owned by the relay orchestrator."""

    def __init__(self, token: str, client: Optional[discord.Client] = None):
        """
        Initialize Discord session.

        Args:
            token: Bot token
            client: Optional pre-built client (defaults to a RelayClient)
        """
        self._token = token
        self.client = client or RelayClient(intents=default_intents(), ready_hook=self._handle_ready)

        self._ready_hooks: list[ReadyHook] = []
        self._ready_handled = False

    def add_ready_hook(self, hook: ReadyHook) -> None:
        """Register a coroutine to run once, the first time the bot is ready."""
        self._ready_hooks.append(hook)

    async def _handle_ready(self) -> None:
        # Gateway re-identification fires on_ready again after reconnects
        if self._ready_handled:
            logger.debug("Discord ready event received again, ignoring")
            return
        self._ready_handled = True

        identity = self.identity()
        logger.success(f"Bot successfully logged in as {identity.tag}")
        logger.debug(f"Bot is ready with following details: {identity.model_dump()}")

        for hook in self._ready_hooks:
            await hook()

    async def connect(self) -> None:
        """
        Log in and run the gateway connection until closed.

        Raises:
            AuthenticationError: If Discord rejects the token or cannot be reached
        """
        logger.info("Attempting to connect to Discord...")
        try:
            await self.client.login(self._token)
        except discord.LoginFailure as e:
            raise AuthenticationError(f"Failed to connect to Discord: {e}") from e
        except (discord.HTTPException, aiohttp.ClientError, OSError) as e:
            raise AuthenticationError(f"Could not reach Discord to log in: {e}") from e

        await self.client.connect()

    async def close(self) -> None:
        """Close the Discord connection."""
        if not self.client.is_closed():
            logger.info("Closing Discord connection...")
            await self.client.close()

    def identity(self) -> BotIdentity:
        """Describe the logged-in bot user."""
        user = self.client.user
        return BotIdentity(
            tag=str(user) if user else "<unknown>",
            id=user.id if user else 0,
            guilds=len(self.client.guilds),
        )

    async def resolve_channel(self, channel_id: int):
        """
        Look up a channel by ID, checking the gateway cache before the API.

        Returns:
            The channel object, or None if Discord reports it does not exist
        """
        channel = self.client.get_channel(channel_id)
        if channel is not None:
            return channel

        try:
            return await self.client.fetch_channel(channel_id)
        except discord.NotFound:
            return None

    @staticmethod
    def is_text_channel(channel) -> bool:
        """Check the channel is a guild text channel that accepts attachments."""
        return isinstance(channel, discord.TextChannel)

    def permissions_for(self, channel: discord.TextChannel) -> ChannelPermissions:
        """Read the bot's permission flags for a guild channel."""
        member = channel.guild.me
        if member is None:
            return ChannelPermissions()

        perms = channel.permissions_for(member)
        return ChannelPermissions(
            send_messages=perms.send_messages,
            attach_files=perms.attach_files,
            view_channel=perms.view_channel,
        )

    async def send_file(self, channel: discord.TextChannel, path: Path, filename: str) -> discord.Message:
        """Send one message carrying the file as its only attachment."""
        return await channel.send(file=discord.File(str(path), filename=filename))
