"""Audio infrastructure - yt-dlp resolver, PCM audio source and Opus frame encoder."""

from discord_jukebox.infrastructure.audio.audio_source import PcmAudioSource
from discord_jukebox.infrastructure.audio.frame_encoder import FrameEncoder, OpusCodec, PacketCodec
from discord_jukebox.infrastructure.audio.ytdlp_resolver import FlatEntry, YtDlpOpts, YtDlpResolver

__all__ = [
    "FlatEntry",
    "FrameEncoder",
    "OpusCodec",
    "PacketCodec",
    "PcmAudioSource",
    "YtDlpOpts",
    "YtDlpResolver",
]
