from app.models.schemas import ChannelAccessStatus, FileEvent
from domains.file_relay.orchestrator import RelayOrchestrator


class RecordingWatcher:
    """Watcher double that only records lifecycle calls."""

    def __init__(self):
        self.on_ready = None
        self.on_add = None
        self.on_error = None
        self.started = 0
        self.stopped = 0

    async def start(self):
        self.started += 1
        await self.on_ready()

    async def stop(self):
        self.stopped += 1


async def test_nothing_is_watched_before_login(make_settings, session):
    watcher = RecordingWatcher()
    RelayOrchestrator(make_settings(), session=session, watcher=watcher)

    assert watcher.started == 0
    assert len(session.ready_hooks) == 1


async def test_ready_verifies_and_starts_watcher(make_settings, session, log_messages):
    watcher = RecordingWatcher()
    orchestrator = RelayOrchestrator(make_settings(), session=session, watcher=watcher)

    await session.fire_ready()
    await orchestrator.wait_idle()

    assert watcher.started == 1
    assert orchestrator.access_report.status == ChannelAccessStatus.OK
    assert "SUCCESS File watcher initialized and ready" in log_messages


async def test_failed_verification_still_starts_watcher(make_settings, session):
    session.channel = None
    watcher = RecordingWatcher()
    orchestrator = RelayOrchestrator(make_settings(), session=session, watcher=watcher)

    await session.fire_ready()
    await orchestrator.wait_idle()

    assert orchestrator.access_report.status == ChannelAccessStatus.NOT_FOUND
    assert watcher.started == 1


async def test_each_added_file_is_its_own_task(make_settings, session, tmp_path, png_bytes):
    watcher = RecordingWatcher()
    orchestrator = RelayOrchestrator(make_settings(), session=session, watcher=watcher)
    paths = []
    for name in ("one.png", "two.png"):
        path = tmp_path / name
        path.write_bytes(png_bytes)
        paths.append(path)

    await watcher.on_add(FileEvent(path=paths[0]))
    await watcher.on_add(FileEvent(path=tmp_path / "missing.png"))
    await watcher.on_add(FileEvent(path=paths[1]))
    assert orchestrator.in_flight == 3

    await orchestrator.wait_idle()

    assert orchestrator.in_flight == 0
    assert sorted(name for _, name in session.uploads) == ["one.png", "two.png"]


async def test_watcher_errors_are_logged_only(make_settings, session, log_messages):
    watcher = RecordingWatcher()
    RelayOrchestrator(make_settings(), session=session, watcher=watcher)

    await watcher.on_error(OSError("inotify watch limit reached"))

    assert "ERROR File watcher error: inotify watch limit reached" in log_messages


async def test_run_and_shutdown(make_settings, session):
    watcher = RecordingWatcher()
    orchestrator = RelayOrchestrator(make_settings(), session=session, watcher=watcher)

    await orchestrator.run()
    await orchestrator.shutdown()

    assert session.connected is True
    assert session.closed is True
    assert watcher.stopped == 1
