"""
Per-event upload of added files to the destination channel.
"""

from loguru import logger

from app.models.schemas import FileEvent
from app.utils.discord_client import DiscordSession
from app.utils.errors import ChannelUnavailableError
from app.utils.helpers import format_bytes, is_recognized_image


class FileEventHandler:
    """Uploads one added image per call; never lets a failure escape."""

    def __init__(self, session: DiscordSession, channel_id: int):
        """
        Initialize handler.

        Args:
            session: Logged-in Discord session
            channel_id: Destination channel, resolved again for every event
        """
        self.session = session
        self.channel_id = channel_id

    def should_upload(self, event: FileEvent) -> bool:
        """Check the file has the relayed image extension."""
        return is_recognized_image(event.path)

    async def handle(self, event: FileEvent) -> bool:
        """
        Relay a single file event.

        Args:
            event: Added file

        Returns:
            True if the file was uploaded, False if ignored or dropped
        """
        logger.debug(f"File detected: {event.path}")

        if not self.should_upload(event):
            logger.debug(f"Ignoring non-image file: {event.path}")
            return False

        logger.info(f"New PNG file detected: {event.path}")

        try:
            return await self._upload(event)
        except Exception as e:
            logger.error(f"Error processing file {event.path}: {e}")
            logger.opt(exception=True).debug("Error details")
            return False

    async def _upload(self, event: FileEvent) -> bool:
        path = event.path

        if not path.exists():
            logger.error(f"File {path} no longer exists")
            return False

        channel = await self.session.resolve_channel(self.channel_id)
        if channel is None or not self.session.is_text_channel(channel):
            raise ChannelUnavailableError(f"Invalid channel or channel not found: {self.channel_id}")

        size = path.stat().st_size
        logger.debug(f"Attempting to send file to Discord ({format_bytes(size)})...")
        await self.session.send_file(channel, path, event.filename)

        logger.success(f"Successfully posted {path} to Discord")
        return True
