"""
PNG Relay - Main Entry Point

Watches a directory for new PNG files and posts each one to a Discord
text channel as a bot:
- Validates configuration before touching the network
- Logs in, verifies the destination channel, starts the watcher
- Uploads every stable new PNG, logging and dropping failures
"""

import asyncio
import inspect
import logging
import sys

import discord
from loguru import logger

from app.utils.config import read_settings, validate_settings
from app.utils.errors import AuthenticationError, ConfigurationError
from domains.file_relay.orchestrator import RelayOrchestrator

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"


class InterceptHandler(logging.Handler):
    """Route stdlib log records (discord.py, watchdog) into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = inspect.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def configure_logging(level: str = "INFO") -> None:
    """Install the stdout sink and capture library logging."""
    logger.remove()
    logger.add(sys.stdout, format=LOG_FORMAT, level=level)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    # discord.py gateway chatter is only useful when debugging
    logging.getLogger("discord").setLevel(level if level == "DEBUG" else "INFO")


async def serve(orchestrator: RelayOrchestrator) -> None:
    """Run the relay until the connection closes or the task is cancelled."""
    try:
        await orchestrator.run()
    finally:
        await orchestrator.shutdown()


def main() -> int:
    """Main entry point."""
    configure_logging()
    logger.info("PNG Relay - Discord uploader")

    try:
        settings = read_settings()
        configure_logging(settings.effective_log_level)
        validate_settings(settings)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1

    orchestrator = RelayOrchestrator(settings)

    try:
        asyncio.run(serve(orchestrator))
    except AuthenticationError as e:
        logger.error(str(e))
        return 1
    except discord.DiscordException as e:
        logger.error(f"Discord connection failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Relay stopped by user")

    return 0


if __name__ == "__main__":
    sys.exit(main())
