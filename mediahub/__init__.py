"""Media library scanning for video and radio files, stored in SQLite."""

__version__ = "0.1.0"
__all__ = ["roles", "mediaparser", "scanner", "radio", "video"]