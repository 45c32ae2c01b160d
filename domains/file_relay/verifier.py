"""
Destination channel verification.

Runs once after login to tell the operator early whether uploads can work.
The result is advisory: the watcher starts regardless, and every upload
resolves the channel again on its own.
"""

from loguru import logger

from app.models.schemas import ChannelAccessReport, ChannelAccessStatus
from app.utils.discord_client import DiscordSession


class DestinationVerifier:
    """Checks that the configured channel exists and accepts attachments."""

    def __init__(self, session: DiscordSession, channel_id: int):
        self.session = session
        self.channel_id = channel_id

    async def verify(self) -> ChannelAccessReport:
        """
        Resolve the channel and inspect the bot's permissions in it.

        Returns:
            ChannelAccessReport describing the first problem found, or OK
        """
        try:
            return await self._verify()
        except Exception as e:
            logger.error(f"Error verifying channel access: {e}")
            return self._report(ChannelAccessStatus.ERROR, detail=str(e))

    async def _verify(self) -> ChannelAccessReport:
        channel = await self.session.resolve_channel(self.channel_id)
        if channel is None:
            logger.error(f"Channel not found: {self.channel_id}")
            return self._report(ChannelAccessStatus.NOT_FOUND)

        if not self.session.is_text_channel(channel):
            logger.error(f"Channel {self.channel_id} is not a text channel")
            return self._report(ChannelAccessStatus.NOT_TEXT_CHANNEL)

        permissions = self.session.permissions_for(channel)
        logger.debug(f"Channel permissions: {permissions.model_dump()}")

        if not permissions.can_upload:
            logger.error(f"Bot lacks send/attach permissions in channel: {channel.name}")
            return self._report(
                ChannelAccessStatus.MISSING_PERMISSIONS,
                channel_name=channel.name,
                permissions=permissions,
            )

        logger.success(f"Successfully verified access to channel: {channel.name}")
        return self._report(ChannelAccessStatus.OK, channel_name=channel.name, permissions=permissions)

    def _report(self, status: ChannelAccessStatus, **fields) -> ChannelAccessReport:
        return ChannelAccessReport(channel_id=self.channel_id, status=status, **fields)
