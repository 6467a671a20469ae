"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for adapters, the playback pipeline and handlers.
Components are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.commands.play_request import PlayRequestHandler
    from ..application.interfaces.audio_resolver import AudioResolver
    from ..application.interfaces.audio_source import AudioSource, PacketEncoder
    from ..application.services.queue_driver import DriverRegistry
    from ..infrastructure.discord.adapters.notifier import DiscordNotifier
    from ..infrastructure.discord.adapters.voice_adapter import DiscordVoiceAdapter
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed.
    """

    settings: Settings
    _bot: Bot | None = None

    # Infrastructure adapters
    _audio_resolver: AudioResolver | None = None
    _voice_adapter: DiscordVoiceAdapter | None = None
    _notifier: DiscordNotifier | None = None
    _audio_sources: dict[str, AudioSource] = field(default_factory=dict)
    _packet_encoder: PacketEncoder | None = None

    # Playback pipeline
    _driver_registry: DriverRegistry | None = None

    # Command handlers
    _play_request_handler: PlayRequestHandler | None = None

    def set_bot(self, bot: Bot) -> None:
        """Set the Discord bot instance."""
        self._bot = bot

    @property
    def bot(self) -> Bot:
        """Get the Discord bot instance."""
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Infrastructure Adapters ===

    @property
    def audio_resolver(self) -> AudioResolver:
        """Get the audio resolver."""
        if self._audio_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._audio_resolver = YtDlpResolver(self.settings.audio)
        return self._audio_resolver

    @property
    def voice_adapter(self) -> DiscordVoiceAdapter:
        """Get the voice adapter."""
        if self._voice_adapter is None:
            from ..infrastructure.discord.adapters.voice_adapter import (
                DiscordVoiceAdapter,
            )

            self._voice_adapter = DiscordVoiceAdapter(
                self.bot,
                self.settings.playback,
                packet_buffer_frames=self.settings.audio.packet_buffer_frames,
            )
        return self._voice_adapter

    @property
    def notifier(self) -> DiscordNotifier:
        """Get the text-channel notifier."""
        if self._notifier is None:
            from ..infrastructure.discord.adapters.notifier import DiscordNotifier

            self._notifier = DiscordNotifier(self.bot)
        return self._notifier

    def audio_source_for(self, scope: str) -> AudioSource:
        """Get the yt-dlp/FFmpeg audio source owning the given driver scope's artifact."""
        source = self._audio_sources.get(scope)
        if source is None:
            from ..infrastructure.audio.audio_source import PcmAudioSource

            source = PcmAudioSource.for_scope(self.settings.audio, scope)
            self._audio_sources[scope] = source
        return source

    @property
    def packet_encoder(self) -> PacketEncoder:
        """Get the Opus frame encoder."""
        if self._packet_encoder is None:
            from ..infrastructure.audio.frame_encoder import FrameEncoder

            self._packet_encoder = FrameEncoder()
        return self._packet_encoder

    # === Playback Pipeline ===

    @property
    def driver_registry(self) -> DriverRegistry:
        """Get the queue driver registry."""
        if self._driver_registry is None:
            from ..application.services.queue_driver import DriverRegistry

            self._driver_registry = DriverRegistry.from_settings(
                self.settings.playback,
                voice_adapter=self.voice_adapter,
                audio_source_for=self.audio_source_for,
                packet_encoder=self.packet_encoder,
                notifier=self.notifier,
            )
        return self._driver_registry

    # === Command Handlers ===

    @property
    def play_request_handler(self) -> PlayRequestHandler:
        """Get the play request command handler."""
        if self._play_request_handler is None:
            from ..application.commands.play_request import PlayRequestHandler

            self._play_request_handler = PlayRequestHandler(
                audio_resolver=self.audio_resolver,
                drivers=self.driver_registry,
                notifier=self.notifier,
            )
        return self._play_request_handler

    # === Lifecycle ===

    async def shutdown(self) -> None:
        """Stop every queue driver and release all voice connections."""
        if self._driver_registry is not None:
            try:
                await self._driver_registry.shutdown()
            except Exception as exc:
                logger.warning(LogTemplates.CONTAINER_DRIVERS_SHUTDOWN_FAILED, exc)

        if self._voice_adapter is not None:
            try:
                await self._voice_adapter.shutdown()
            except Exception as exc:
                logger.warning(LogTemplates.CONTAINER_VOICE_SHUTDOWN_FAILED, exc)

        for source in self._audio_sources.values():
            source.remove_artifact()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
