"""
Unit Tests for Bot Lifecycle

Tests for src/discord_jukebox/infrastructure/discord/bot.py:

1. TestBotInitialization:
   - Intents, command prefix, disabled help command
   - Container and settings storage, container.set_bot() called

2. TestSetupHook:
   - Cog loading and the global slash command error handler
   - Command sync only when enabled

3. TestLoadCogs:
   - Continuing when a cog fails to load

4. TestSyncCommands:
   - Global sync, per-test-guild sync, error handling

5. TestAppCommandErrorHandler:
   - Ephemeral error responses, followup after deferral, send failures

6. TestBotClose:
   - Container shutdown, error handling, shutdown event

7. TestCreateBot
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from discord_jukebox.infrastructure.discord.bot import COGS, JukeboxBot, create_bot


@pytest.fixture
def mock_settings():
    """Create mock settings."""
    settings = MagicMock()
    settings.discord.command_prefix = "!"
    settings.discord.sync_on_startup = False
    settings.discord.test_guild_ids = ()
    return settings


@pytest.fixture
def mock_container():
    """Create mock container."""
    container = MagicMock()
    container.shutdown = AsyncMock()
    container.set_bot = MagicMock()
    return container


# =============================================================================
# Bot Initialization Tests
# =============================================================================


class TestBotInitialization:
    """Tests for JukeboxBot initialization."""

    @pytest.mark.asyncio
    async def test_init_sets_intents(self, mock_container, mock_settings):
        """Should request guild and voice state intents."""
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        assert bot.intents.voice_states is True
        assert bot.intents.guilds is True

    @pytest.mark.asyncio
    async def test_init_sets_command_prefix(self, mock_container, mock_settings):
        mock_settings.discord.command_prefix = "?"
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        assert bot.command_prefix == "?"

    @pytest.mark.asyncio
    async def test_init_disables_default_help(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        assert bot.help_command is None

    @pytest.mark.asyncio
    async def test_init_wires_container(self, mock_container, mock_settings):
        """Should store references and register itself with the container."""
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        assert bot.container is mock_container
        assert bot.settings is mock_settings
        assert isinstance(bot._shutdown_event, asyncio.Event)
        mock_container.set_bot.assert_called_once_with(bot)


# =============================================================================
# Setup Hook Tests
# =============================================================================


class TestSetupHook:
    """Tests for JukeboxBot.setup_hook method."""

    @pytest.mark.asyncio
    async def test_setup_hook_loads_cogs_and_error_handler(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with (
            patch.object(bot, "_load_cogs", new_callable=AsyncMock) as mock_load,
            patch.object(bot, "_sync_commands", new_callable=AsyncMock) as mock_sync,
        ):
            await bot.setup_hook()

        mock_load.assert_awaited_once()
        mock_sync.assert_not_awaited()
        assert bot.tree.on_error == bot._on_app_command_error

    @pytest.mark.asyncio
    async def test_setup_hook_syncs_when_enabled(self, mock_container, mock_settings):
        mock_settings.discord.sync_on_startup = True
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with (
            patch.object(bot, "_load_cogs", new_callable=AsyncMock),
            patch.object(bot, "_sync_commands", new_callable=AsyncMock) as mock_sync,
        ):
            await bot.setup_hook()

        mock_sync.assert_awaited_once()


class TestLoadCogs:
    @pytest.mark.asyncio
    async def test_load_cogs(self, mock_container, mock_settings):
        """Should load the music cog extension."""
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with patch.object(bot, "load_extension", new_callable=AsyncMock) as mock_load:
            await bot._load_cogs()

        assert [c.args[0] for c in mock_load.await_args_list] == list(COGS)

    @pytest.mark.asyncio
    async def test_load_cogs_continues_on_failure(self, mock_container, mock_settings, caplog):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with patch.object(
            bot, "load_extension", new_callable=AsyncMock, side_effect=Exception("bad cog")
        ):
            await bot._load_cogs()

        assert "bad cog" in caplog.text


# =============================================================================
# Sync Commands Tests
# =============================================================================


class TestSyncCommands:
    """Tests for JukeboxBot._sync_commands method."""

    @pytest.mark.asyncio
    async def test_sync_commands_global(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with patch.object(
            bot.tree, "sync", new_callable=AsyncMock, return_value=[MagicMock(), MagicMock()]
        ) as mock_sync:
            await bot._sync_commands()

        mock_sync.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_sync_commands_test_guilds(self, mock_container, mock_settings):
        """Should copy global commands into each test guild and sync there only."""
        mock_settings.discord.test_guild_ids = (111111, 222222)
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with (
            patch.object(bot.tree, "copy_global_to") as mock_copy,
            patch.object(bot.tree, "sync", new_callable=AsyncMock, return_value=[]) as mock_sync,
        ):
            await bot._sync_commands()

        assert mock_copy.call_count == 2
        assert [c.kwargs["guild"].id for c in mock_sync.call_args_list] == [111111, 222222]

    @pytest.mark.asyncio
    async def test_sync_commands_handles_guild_error(self, mock_container, mock_settings):
        mock_settings.discord.test_guild_ids = (111111, 222222)
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with (
            patch.object(bot.tree, "copy_global_to"),
            patch.object(
                bot.tree, "sync", new_callable=AsyncMock, side_effect=[Exception("nope"), []]
            ) as mock_sync,
        ):
            await bot._sync_commands()

        assert mock_sync.call_count == 2

    @pytest.mark.asyncio
    async def test_sync_commands_handles_global_error(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        with patch.object(
            bot.tree, "sync", new_callable=AsyncMock, side_effect=Exception("Global sync failed")
        ):
            await bot._sync_commands()


# =============================================================================
# App Command Error Handler Tests
# =============================================================================


class TestAppCommandErrorHandler:
    """Tests for JukeboxBot._on_app_command_error method."""

    def _interaction(self, responded: bool = False) -> MagicMock:
        interaction = MagicMock()
        interaction.response.is_done.return_value = responded
        interaction.response.send_message = AsyncMock()
        interaction.followup.send = AsyncMock()
        interaction.command.name = "play"
        return interaction

    @pytest.mark.asyncio
    async def test_error_handler_sends_ephemeral_response(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)
        interaction = self._interaction()

        await bot._on_app_command_error(interaction, Exception("Test error"))

        call_args = interaction.response.send_message.call_args
        assert call_args.kwargs["ephemeral"] is True
        assert "Test error" in call_args.args[0]

    @pytest.mark.asyncio
    async def test_error_handler_uses_followup_when_responded(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)
        interaction = self._interaction(responded=True)

        await bot._on_app_command_error(interaction, Exception("Test error"))

        interaction.followup.send.assert_awaited_once()
        interaction.response.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_handler_unwraps_original(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)
        interaction = self._interaction()
        error = MagicMock()
        error.original = ValueError("inner problem")

        await bot._on_app_command_error(interaction, error)

        assert "inner problem" in interaction.response.send_message.call_args.args[0]

    @pytest.mark.asyncio
    async def test_error_handler_send_failure(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)
        interaction = self._interaction()
        interaction.response.send_message.side_effect = discord.HTTPException(
            MagicMock(), "Unknown interaction"
        )

        await bot._on_app_command_error(interaction, Exception("Test error"))


# =============================================================================
# Close Tests
# =============================================================================


class TestBotClose:
    """Tests for JukeboxBot.close method."""

    @pytest.mark.asyncio
    async def test_close_shuts_down_container(self, mock_container, mock_settings):
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        await bot.close()

        mock_container.shutdown.assert_awaited_once()
        assert bot._shutdown_event.is_set()

    @pytest.mark.asyncio
    async def test_close_handles_container_shutdown_error(self, mock_container, mock_settings):
        mock_container.shutdown.side_effect = Exception("Shutdown failed")
        bot = JukeboxBot(container=mock_container, settings=mock_settings)

        await bot.close()

        assert bot._shutdown_event.is_set()


# =============================================================================
# Factory Function Tests
# =============================================================================


class TestCreateBot:
    def test_create_bot(self, mock_container, mock_settings):
        bot = create_bot(mock_container, mock_settings)

        assert isinstance(bot, JukeboxBot)
        assert bot.container is mock_container
