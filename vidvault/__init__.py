"""vidvault backend application.

Accepts video uploads over HTTP, remuxes them for progressive playback,
classifies their geometry and stores them in S3-compatible object storage.

Modules:
    - core: Configuration, logging, metrics, middleware, database, storage
    - modules.auth: JWT bearer authentication
    - modules.transcoding: ffmpeg fast-start remux and ffprobe geometry
    - modules.video: Video records and the upload pipeline
"""

__version__ = "0.1.0"
