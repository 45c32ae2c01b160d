"""
File system watcher for the PNG relay.

Monitors the watch root for files that appear (created or moved in) and reports
each one as added once its size has stopped changing. Uses the watchdog library
for cross-platform file system event monitoring; the observer thread only hands
paths over to the asyncio loop, where the stability wait and the callbacks run.
"""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Iterator, Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.models.schemas import FileEvent
from app.utils.helpers import has_hidden_segment, safe_path

STABILITY_THRESHOLD_SECONDS = 2.0
POLL_INTERVAL_SECONDS = 0.1

ReadyCallback = Callable[[], Awaitable[None]]
AddCallback = Callable[[FileEvent], Awaitable[None]]
ErrorCallback = Callable[[Exception], Awaitable[None]]


async def wait_for_stable_size(
    path: Path,
    stability_threshold: float = STABILITY_THRESHOLD_SECONDS,
    poll_interval: float = POLL_INTERVAL_SECONDS,
) -> bool:
    """
    Wait until a file's size has held steady for the stability threshold.

    Args:
        path: File to sample
        stability_threshold: Seconds the size must stay unchanged
        poll_interval: Seconds between size samples

    Returns:
        True once the file is stable, False if it disappeared while waiting
    """
    loop = asyncio.get_running_loop()
    last_size: Optional[int] = None
    stable_since = loop.time()

    while True:
        try:
            size = path.stat().st_size
        except FileNotFoundError:
            return False

        now = loop.time()
        if size != last_size:
            last_size = size
            stable_since = now
        elif now - stable_since >= stability_threshold:
            return True

        await asyncio.sleep(poll_interval)


class RelayEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards new, non-hidden files to the asyncio loop."""

    def __init__(self, root: Path, loop: asyncio.AbstractEventLoop, on_path: Callable[[Path], None]):
        """
        Initialize event handler.

        Args:
            root: Watch root, used to scope the dotfile check
            loop: Event loop that owns the watcher
            on_path: Called in the loop thread with each candidate path
        """
        super().__init__()
        self.root = root
        self.loop = loop
        self.on_path = on_path

    def should_process(self, path: str) -> bool:
        """Skip dotfiles and anything inside a dot-directory."""
        return not has_hidden_segment(Path(path), self.root)

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        self._dispatch(event.src_path)

    def on_moved(self, event: FileSystemEvent):
        """Handle a file renamed or moved into the watch root."""
        if event.is_directory:
            return

        dest = getattr(event, "dest_path", None)
        if dest:
            self._dispatch(dest)

    def _dispatch(self, raw_path) -> None:
        if isinstance(raw_path, bytes):
            raw_path = raw_path.decode()

        if not self.should_process(raw_path):
            return

        try:
            self.loop.call_soon_threadsafe(self.on_path, Path(raw_path))
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug(f"Dropping event after loop shutdown: {raw_path}")


class ImageDirectoryWatcher:
    """Watches one directory tree and reports stable added files.

    Usage:
        watcher = ImageDirectoryWatcher(Path("/srv/screenshots"))
        watcher.on_add = handle_file
        watcher.on_error = log_error
        await watcher.start()
    """

    def __init__(
        self,
        root: Path,
        stability_threshold: float = STABILITY_THRESHOLD_SECONDS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        scan_existing: bool = False,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self.root = safe_path(root)
        self.stability_threshold = stability_threshold
        self.poll_interval = poll_interval
        self.scan_existing = scan_existing
        self._observer_factory = observer_factory

        self._observer: Optional[Observer] = None
        self._pending: dict[Path, asyncio.Task] = {}

        self._on_ready: Optional[ReadyCallback] = None
        self._on_add: Optional[AddCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    @property
    def on_ready(self) -> Optional[ReadyCallback]:
        return self._on_ready

    @on_ready.setter
    def on_ready(self, callback: ReadyCallback):
        self._on_ready = callback

    @property
    def on_add(self) -> Optional[AddCallback]:
        return self._on_add

    @on_add.setter
    def on_add(self, callback: AddCallback):
        self._on_add = callback

    @property
    def on_error(self) -> Optional[ErrorCallback]:
        return self._on_error

    @on_error.setter
    def on_error(self, callback: ErrorCallback):
        self._on_error = callback

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    @property
    def pending_paths(self) -> set[Path]:
        """Paths currently waiting for their size to settle."""
        return set(self._pending)

    async def start(self) -> None:
        """Start the observer; failures are reported through on_error."""
        if self.is_running:
            logger.warning("File watcher is already running")
            return

        logger.debug(f"Setting up file watcher for path: {self.root}")
        if not self.root.is_dir():
            await self._emit_error(FileNotFoundError(f"Watch path is not a directory: {self.root}"))
            return

        loop = asyncio.get_running_loop()
        handler = RelayEventHandler(self.root, loop, self._track)

        observer = self._observer_factory()
        try:
            observer.schedule(handler, str(self.root), recursive=True)
            observer.start()
        except Exception as e:
            await self._emit_error(e)
            return

        self._observer = observer
        logger.info(f"Started watching: {self.root}")

        if self.scan_existing:
            for path in self._existing_files():
                self._track(path)

        if self._on_ready:
            await self._on_ready()

    async def stop(self) -> None:
        """Stop the observer and abandon files still settling."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join)
            logger.info("File system observer stopped")

        tasks = list(self._pending.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()

    def _existing_files(self) -> Iterator[Path]:
        for path in sorted(self.root.rglob("*")):
            if path.is_file() and not has_hidden_segment(path, self.root):
                yield path

    def _track(self, path: Path) -> None:
        """Start a stability wait for path unless one is already running."""
        if not self.is_running or path in self._pending:
            return

        task = asyncio.create_task(self._await_write_finish(path))
        self._pending[path] = task
        task.add_done_callback(lambda _: self._pending.pop(path, None))

    async def _await_write_finish(self, path: Path) -> None:
        try:
            stable = await wait_for_stable_size(path, self.stability_threshold, self.poll_interval)
        except Exception as e:
            await self._emit_error(e)
            return

        if not stable:
            logger.debug(f"File disappeared before its size settled: {path}")
            return

        if self._on_add:
            await self._on_add(FileEvent(path=path))

    async def _emit_error(self, error: Exception) -> None:
        if self._on_error:
            await self._on_error(error)
        else:
            logger.error(f"File watcher error: {error}")
