"""Centralized message constants for error messages, log templates, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Settings Validation Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    INVALID_ARTIFACT_NAME = "Artifact name must be a bare file name with an extension: {name!r}"

    # Resolution Errors
    NO_SEARCH_RESULTS = "No videos found for {query!r}"
    FIRST_RESULT_NOT_VIDEO = "First search result for {query!r} is not a video"
    SEARCH_FAILED = "Search failed for {query!r}: {error}"
    INVALID_PLAYLIST_URL = "Invalid playlist URL: {url}"
    PLAYLIST_PAGE_FAILED = "Could not fetch page {page} of playlist {playlist_id}: {error}"

    # Voice Errors
    GUILD_NOT_FOUND = "Guild {guild_id} not found"
    CHANNEL_NOT_VOICE = "Channel {channel_id} is not a voice channel"
    VOICE_CONNECT_TIMEOUT = "Timed out joining voice channel {channel_id}"
    VOICE_NO_PERMISSION = "No permission to join voice channel {channel_id}"
    VOICE_CLIENT_ERROR = "Voice client error joining channel {channel_id}: {error}"
    TRANSPORT_CLOSED = "Voice transport for guild {guild_id} is closed"
    TRANSPORT_SENDER_FAILED = "Voice sender for guild {guild_id} failed: {error}"

    # Download Errors
    DOWNLOADER_NOT_FOUND = "Downloader executable not found: {binary}"
    DOWNLOAD_FAILED = "Downloader exited with code {code}"
    DOWNLOAD_TIMED_OUT = "Download timed out after {timeout:.0f}s"
    DOWNLOAD_NO_ARTIFACT = "Downloader produced no artifact at {path}"

    # Transcode / Encode Errors
    TRANSCODER_NOT_FOUND = "Transcoder executable not found: {binary}"
    TRANSCODE_FAILED = "Transcoder exited with code {code}"
    TRANSCODE_READ_FAILED = "Failed reading PCM stream: {error}"
    ENCODE_FAILED = "Failed encoding frame {index}: {error}"
    PACKET_TOO_LARGE = "Encoded packet of {size} bytes exceeds the {limit} byte bound"
    SEND_FAILED = "Voice transport rejected packet {index}: {error}"

    # Application Lifecycle
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Voice Operations
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_REUSED = "Reusing voice connection to channel %s in guild %s"
    VOICE_DISCONNECTED = "Disconnected from voice in guild %s"
    VOICE_MOVED = "Moved to voice channel %s"
    VOICE_MOVE_TIMEOUT = "Timeout moving to channel %s"
    VOICE_STALE_CLEANUP = "Found stale voice client in guild %s, cleaning up"
    VOICE_SELF_DEAFEN_FAILED = "Failed to self-deafen in guild %s: %r"
    VOICE_SPEAKING_FAILED = "Failed to update speaking state in guild %s: %r"
    VOICE_SENDER_STOPPED = "Voice sender for guild %s stopped after %d packets"
    VOICE_SENDER_FAILED = "Voice sender for guild %s failed"
    VOICE_CLEANUP_ERROR = "Error during voice cleanup in guild %s"
    VOICE_RELEASED_OTHER_GUILD = "Releasing idle voice connection in guild %s before playing in guild %s"

    # Play Cycle
    SESSION_STATE = "Session %s for %s: %s -> %s"
    SESSION_JOINED = "Joined voice channel %s in guild %s"
    SESSION_DOWNLOADING = "Downloading %s"
    SESSION_STREAMING = "Streaming %s"
    SESSION_STREAMED = "Streamed %d packets for %s"
    SESSION_FAILED = "Play cycle failed for %s in guild %s: %s"
    SESSION_IDLE = "Playback finished in guild %s, idle disconnect in %.0fs"
    SESSION_CLOSED = "Voice connection closed for guild %s after idle window"
    SESSION_CLOSE_FAILED = "Failed to close voice connection for guild %s"

    # Audio Source
    PROCESS_STARTED = "Started %s (pid %s)"
    PROCESS_KILLED = "Killed %s (pid %s)"
    PROCESS_CLEANUP_ERROR = "Error cleaning up process %s: %r"
    DOWNLOAD_FAILED = "Downloader failed for %s (exit %s): %s"
    ARTIFACT_REMOVED = "Removed temporary artifact %s"
    ARTIFACT_REMOVE_FAILED = "Failed to remove temporary artifact %s: %r"

    # Frame Encoder
    ENCODER_SHORT_FRAME = "Final frame is %d of %d bytes"
    OPUS_ENCODER_CREATED = "Created Opus encoder (%d Hz, %d channels)"

    # Queue Operations
    QUEUE_ENQUEUED = "Enqueued %s at position %d for guild %s"
    QUEUE_SHUFFLED = "Shuffled %d pending entries"
    QUEUE_DRAINED = "Queue drained, leaving voice connection idle"
    QUEUE_DRIVER_STARTED = "Queue driver started for %s"
    QUEUE_ENTRY_DISCARDED = "Discarding %s after failure: %s"
    QUEUE_ENTRY_CRASHED = "Unexpected error playing %s"
    QUEUE_REPEATED_FAILURES = "%d consecutive play cycles have failed; last locator %s"
    QUEUE_DRIVER_SHUTDOWN = "Queue driver for %s shut down"

    # Disconnect Timer
    TIMER_ARMED = "Idle disconnect timer armed for %.0fs"
    TIMER_CANCELLED = "Idle disconnect timer cancelled"
    TIMER_FIRED = "Idle disconnect timer fired"
    TIMER_CALLBACK_ERROR = "Error in idle disconnect callback"

    # Notifications
    NOTIFY_NO_CHANNEL = "No text channel bound for guild %s, dropping notification"
    NOTIFY_FAILED = "Failed to send notification to guild %s: %r"

    # Resolution/Search
    YTDLP_SEARCH = "Searching for %r"
    YTDLP_SEARCH_FAILED = "Failed to search for %r"
    YTDLP_PLAYLIST_PAGE = "Fetched page %d of playlist %s: %d items"
    YTDLP_PLAYLIST_FAILED = "Failed to fetch page %d of playlist %s"
    RESOLUTION_FAILED = "Resolution failed for %r: %s"
    PLAY_REQUEST_QUEUED = "Queued %d entries for guild %s from %r"
    PLAYLIST_PARTIAL = "Playlist %r stopped after %d entries: %s"

    # Application Lifecycle
    BOT_STARTING = "Starting Discord Jukebox in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown timed out after %ss"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"
    WORK_DIR_READY = "Audio work directory: %s"
    CONTAINER_DRIVERS_SHUTDOWN_FAILED = "Failed stopping queue drivers: %r"
    CONTAINER_VOICE_SHUTDOWN_FAILED = "Failed releasing voice connections: %r"

    # Bot Cog Management
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"
    BOT_COGS_LOADED_SUMMARY = "Cogs loaded: %s success, %s failed"

    # Bot Command Sync
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"

    # Bot Error Handling
    BOT_SLASH_COMMAND_ERROR = "Slash command error in '%s': %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    Keep them concise.
    """

    NOW_PLAYING = "Now playing: {locator}"
    STARTED_ONE = "Starting: {locator}"
    QUEUED_ONE = "Queued: {locator} (position {position})"
    QUEUED_MANY = "Queued {count} songs from the playlist."
    QUEUED_PARTIAL = "Queued {count} songs from the playlist; the rest could not be loaded."
    QUEUE_SHUFFLED = "Song queue has been shuffled."
    QUEUE_EMPTY = "The queue is empty."
    QUEUE_HEADER = "**Up next ({count}):**"
    QUEUE_MORE = "...and {count} more"

    STATE_SERVER_ONLY = "This command only works in a server."
    STATE_VERIFY_VOICE_FAILED = "Could not verify your voice state."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel."
    ERROR_NOT_FOUND = "Couldn't find anything for that request: {error}"
    ERROR_PLAYLIST_EMPTY = "That playlist has no playable items."
    ERROR_GENERIC = "An error occurred: {error}"
