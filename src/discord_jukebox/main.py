#!/usr/bin/env python3
"""Main entry point for the Discord Jukebox."""

from __future__ import annotations

import json
import logging
import logging.config
import shutil
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from discord_jukebox.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from discord_jukebox.config.settings import AudioSettings

logger = logging.getLogger(__name__)

_LOGGING_CONFIG_PATH = Path(__file__).resolve().parents[2] / "logging_config.json"


def setup_logging(log_level: str = "INFO", config_path: Path = _LOGGING_CONFIG_PATH) -> None:
    """Configure logging from the JSON dictConfig, or a plain console format without it."""
    resolved_level = getattr(logging, log_level.upper(), logging.INFO)

    try:
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    except (FileNotFoundError, json.JSONDecodeError, ValueError):
        logging.basicConfig(
            level=resolved_level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logger.warning(LogTemplates.LOGGING_CONFIG_FALLBACK, config_path)

    logging.getLogger().setLevel(resolved_level)


def check_audio_tools(audio: AudioSettings) -> list[str]:
    """Return an error message for each external executable missing from PATH."""
    problems = []
    if shutil.which(audio.ytdlp_binary) is None:
        problems.append(ErrorMessages.DOWNLOADER_NOT_FOUND.format(binary=audio.ytdlp_binary))
    if shutil.which(audio.ffmpeg_binary) is None:
        problems.append(ErrorMessages.TRANSCODER_NOT_FOUND.format(binary=audio.ffmpeg_binary))
    return problems


def main() -> int:
    from discord_jukebox.config.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    token_value = settings.discord.token.get_secret_value()
    if not token_value:
        logger.error(ErrorMessages.DISCORD_TOKEN_REQUIRED)
        return 1

    # Every play cycle shells out to these; without them the queue only fails.
    problems = check_audio_tools(settings.audio)
    for problem in problems:
        logger.error(problem)
    if problems:
        return 1

    settings.audio.work_dir.mkdir(parents=True, exist_ok=True)
    logger.info(LogTemplates.WORK_DIR_READY, settings.audio.work_dir)
    logger.info(LogTemplates.BOT_STARTING.format(environment=settings.environment))

    from discord_jukebox.config.container import create_container
    from discord_jukebox.infrastructure.discord.bot import create_bot

    bot = create_bot(create_container(settings), settings)

    try:
        logger.info(LogTemplates.BOT_STARTING_RUN)
        bot.run_with_graceful_shutdown(token_value)
    except KeyboardInterrupt:
        logger.info(LogTemplates.BOT_KEYBOARD_INTERRUPT)
    except Exception as e:
        logger.exception(LogTemplates.BOT_FATAL_ERROR, e)
        return 1
    else:
        logger.info(LogTemplates.BOT_STOPPED)
    return 0


def cli() -> None:
    """Console script entry point (``discord-jukebox``)."""
    sys.exit(main())


if __name__ == "__main__":
    cli()  # pragma: no cover
