"""
Application Layer

Contains use cases, command handlers, and application services.
This layer orchestrates domain objects and infrastructure to fulfill use cases.

Structure:
- commands/: Write operations (PlayRequest)
- services/: The playback pipeline (SongQueue, QueueDriver, PlaybackSession, DisconnectTimer)
- interfaces/: Port interfaces for infrastructure adapters
"""
