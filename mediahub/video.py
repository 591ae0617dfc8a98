"""Parser for video files, grouping them into shows and seasons."""

from __future__ import annotations

import logging
import os
import re
import sqlite3
from collections.abc import Iterable
from typing import Any

from mediahub.mediaparser import (
    MediaParser,
    MediaPlugin,
    Settings,
    file_uri,
    stat_fields,
    thumbnail_cache_path,
)

log = logging.getLogger(__name__)

_DEFAULT_EXTENSIONS = (
    "avi",
    "ogg",
    "mp4",
    "mpeg",
    "mpg",
    "mov",
    "ogv",
    "wmv",
    "mkv",
    "ts",
)
_SEPARATORS = re.compile(r"[._\-]")
_NOISE_WORDS = re.compile(r"xvid|rip|hdtv", re.IGNORECASE)
_SHOW_PREFIX = re.compile(r"[^-)]*")


def _suffix(path: str | os.PathLike[str]) -> str:
    name = os.path.basename(os.fspath(path))
    dot = name.rfind(".")
    return name[dot + 1:] if dot >= 0 else ""


def _strip_extension(name: str) -> str:
    dot = name.rfind(".")
    return name[:dot] if dot >= 0 else name


def determine_title(path: str | os.PathLike[str]) -> str:
    """A readable title made from the file name.

    The extension is dropped, separators become spaces and release noise
    words such as 'xvid' are removed; the first character is capitalised.
    """
    title = _strip_extension(os.path.basename(os.fspath(path)))
    title = _SEPARATORS.sub(" ", title)
    title = _NOISE_WORDS.sub("", title)
    return title[:1].upper() + title[1:]


def determine_show_and_season(
    path: str | os.PathLike[str], search_path: str
) -> tuple[str, str]:
    """Guess the show and season of a video from where it lies.

    A file directly in the search path names its show before the first '-'
    or ')'. A file one directory down belongs to that directory's show; two
    or more down, the parent directory is the show and the directory the
    season.
    """
    absolute = os.path.abspath(os.fspath(path))
    directory = os.path.dirname(absolute)
    root = search_path[:-1]

    if directory == root:
        base_name = _strip_extension(os.path.basename(absolute))
        match = _SHOW_PREFIX.match(base_name)
        show = match.group(0) if match is not None else base_name
        return show, ""

    parent = os.path.dirname(directory)
    if parent == directory or parent == root:
        return os.path.basename(directory), ""
    return os.path.basename(parent), os.path.basename(directory)


def generate_thumbnail(settings: Settings, path: str | os.PathLike[str]) -> str:
    """URL of the cached thumbnail of ``path``, or '' if there is none."""
    cached = thumbnail_cache_path(settings, path)
    if cached.exists():
        return file_uri(cached)
    return ""


class VideoParser(MediaParser):
    """Keeps the 'video' table in step with video files on disk."""

    media_type = "video"

    def __init__(self, settings: Settings) -> None:
        super().__init__(settings)
        extra = [ext for ext in settings.extra_video_extensions.split(",") if ext]
        self.supported_types: list[str] = [*_DEFAULT_EXTENSIONS, *extra]

    def can_read(self, path: str | os.PathLike[str]) -> bool:
        return _suffix(path) in self.supported_types

    def update_media_infos(
        self,
        paths: Iterable[str | os.PathLike[str]],
        search_path: str,
        connection: sqlite3.Connection,
    ) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        with connection:
            for path in paths:
                log.debug("Updating %s", path)
                fields = stat_fields(path)
                show, season = determine_show_and_season(path, search_path)
                values = {
                    "filepath": fields["filepath"],
                    "title": determine_title(path),
                    "thumbnail": generate_thumbnail(self.settings, path),
                    "uri": file_uri(path),
                    "directory": fields["directory"],
                    "mtime": fields["mtime"],
                    "ctime": fields["ctime"],
                    "filesize": fields["filesize"],
                    "show": show,
                    "season": season,
                }
                records.append(self.store_record(connection, values))

        self._emit_database_updated(records)
        return records


class VideoPlugin(MediaPlugin):
    """Provides the video parser."""

    def parser_keys(self) -> list[str]:
        return ["video"]

    def create_parser(self, settings: Settings, key: str) -> MediaParser | None:
        if key == "video":
            return VideoParser(settings)
        return None