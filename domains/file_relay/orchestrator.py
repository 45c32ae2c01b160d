"""
Relay orchestrator.

Wires the Discord session, the destination verifier, the upload handler and
the directory watcher together:

- login first; nothing is watched until the bot is ready
- on ready, verify the channel and start the watcher as independent tasks
- every stable added file becomes its own upload task
"""

import asyncio
from typing import Optional

from loguru import logger

from app.models.schemas import ChannelAccessReport, FileEvent
from app.utils.config import Settings
from app.utils.discord_client import DiscordSession
from domains.file_relay.uploader import FileEventHandler
from domains.file_relay.verifier import DestinationVerifier
from domains.file_relay.watchers.filesystem import ImageDirectoryWatcher


class RelayOrchestrator:
    """Owns the session and watch subscription for the lifetime of the process."""

    def __init__(
        self,
        settings: Settings,
        session: Optional[DiscordSession] = None,
        watcher: Optional[ImageDirectoryWatcher] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            settings: Validated settings
            session: Optional session (built from the token when omitted)
            watcher: Optional watcher (built from the watch path when omitted)
        """
        self.settings = settings
        channel_id = settings.get_channel_id()

        self.session = session or DiscordSession(settings.discord_token.get_secret_value())
        self.verifier = DestinationVerifier(self.session, channel_id)
        self.handler = FileEventHandler(self.session, channel_id)
        self.watcher = watcher or ImageDirectoryWatcher(
            settings.get_watch_path(),
            scan_existing=settings.relay_existing_files,
        )

        self.watcher.on_ready = self._on_watcher_ready
        self.watcher.on_add = self._on_file_added
        self.watcher.on_error = self._on_watcher_error
        self.session.add_ready_hook(self.on_session_ready)

        self.access_report: Optional[ChannelAccessReport] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of startup and upload tasks not yet finished."""
        return len(self._tasks)

    async def run(self) -> None:
        """Connect to Discord and serve until the connection is closed."""
        await self.session.connect()

    async def shutdown(self) -> None:
        """Stop watching and close the session."""
        await self.watcher.stop()
        await self.session.close()

    async def on_session_ready(self) -> None:
        """Kick off channel verification and the watcher side by side."""
        self._spawn(self._verify_destination(), name="verify-destination")
        self._spawn(self.watcher.start(), name="start-watcher")

    async def wait_idle(self) -> None:
        """Wait until every spawned task has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _verify_destination(self) -> None:
        self.access_report = await self.verifier.verify()

    async def _on_watcher_ready(self) -> None:
        logger.success("File watcher initialized and ready")

    async def _on_file_added(self, event: FileEvent) -> None:
        self._spawn(self.handler.handle(event), name=f"relay:{event.filename}")

    async def _on_watcher_error(self, error: Exception) -> None:
        logger.error(f"File watcher error: {error}")
        logger.opt(exception=error).debug("Watcher error details")

    def _spawn(self, coro, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
