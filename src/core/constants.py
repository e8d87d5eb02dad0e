"""Core constants used across Ferry modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_AWS_REGION = "ca-central-1"
DEFAULT_KEY_PREFIX = "youtube-videos"
DEFAULT_TOOL_CACHE_DIR_NAME = "ferry-tools"
DEFAULT_PROGRESS_QUEUE_SIZE = 256
DEFAULT_CATEGORY = "Youtube Chanel Videos"
ADMIN_TOKEN_HEADER = "x-admin-token"

TOOL_EXECUTABLE_NAME = "yt-dlp"
TOOL_RELEASE_BASE_URL = "https://github.com/yt-dlp/yt-dlp/releases/latest/download"
TOOL_RELEASE_ASSETS = {
    "linux-aarch64": "yt-dlp_linux_aarch64",
    "linux": "yt-dlp_linux",
    "darwin": "yt-dlp_macos",
    "win32": "yt-dlp.exe",
}
TOOL_DOWNLOAD_TIMEOUT_SECONDS = 120.0
TOOL_FORMAT_SELECTOR = "best"

OUTPUT_CANDIDATE_EXTENSIONS = (".mp4", ".webm", ".mkv")
DEFAULT_OUTPUT_EXTENSION = ".mp4"
PARTIAL_DOWNLOAD_SUFFIXES = (".part", ".ytdl")
FALLBACK_SAFE_TITLE = "video"
PROGRESS_MESSAGE_MAX_CHARS = 200
DIAGNOSTIC_EXCERPT_CHARS = 500
DIAGNOSTIC_TAIL_LINES = 40
SAFE_TITLE_MAX_CHARS = 50

MEDIA_KEY_PREFIX = "MEDIA"
MEDIA_KEY_RANDOM_CHARS = 14
DATE_FORMAT = "%Y-%m-%d"

DEFAULT_CONTENT_TYPE = "application/octet-stream"
CONTENT_TYPES_BY_EXTENSION = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mkv": "video/x-matroska",
    ".mov": "video/quicktime",
    ".avi": "video/x-msvideo",
    ".m4a": "audio/mp4",
    ".mp3": "audio/mpeg",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
}

CHANNEL_PAGE_URL = "https://www.youtube.com/@{handle}"
CHANNEL_FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
CHANNEL_FEED_MAX_ENTRIES = 5
FEED_REQUEST_TIMEOUT_SECONDS = 20.0
