"""Base classes for media parsers and the plugins that provide them."""

from __future__ import annotations

import abc
import hashlib
import logging
import os
import sqlite3
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar

log = logging.getLogger(__name__)


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


@dataclass
class Settings:
    """Settings the media parsers, scanner and models read."""

    thumbnail_path: Path = field(
        default_factory=lambda: Path.home() / ".cache" / "mediahub" / "thumbnails"
    )
    thumbnail_size: int = 256
    scan_delay: int = 0
    """Pause between directories while scanning, in microseconds."""
    media_refresh_interval: int = 10000
    """Interval between model refreshes during a scan, in milliseconds."""
    extra_video_extensions: str = ""
    """Comma separated extra file suffixes for video files."""


@dataclass
class FileInfo:
    """What the database remembers about one scanned file."""

    rowid: int = 0
    name: str = ""
    mtime: int = 0
    ctime: int = 0
    size: int = 0

    def valid(self) -> bool:
        return bool(self.name)


def stat_fields(path: str | os.PathLike[str]) -> dict[str, Any]:
    """The file columns every media table shares."""
    absolute = os.path.abspath(path)
    st = os.stat(absolute)
    return {
        "filepath": absolute,
        "directory": os.path.dirname(absolute).rstrip("/") + "/",
        "mtime": int(st.st_mtime),
        "ctime": int(st.st_ctime),
        "filesize": st.st_size,
    }


def file_uri(path: str | os.PathLike[str]) -> str:
    """Encoded file:// URL of a local path."""
    return Path(os.path.abspath(path)).as_uri()


def thumbnail_cache_path(settings: Settings, path: str | os.PathLike[str]) -> Path:
    """Where the cached thumbnail of a media file lives."""
    absolute = os.path.abspath(path)
    digest = hashlib.md5(b"file://" + os.fsencode(absolute)).hexdigest()
    return Path(settings.thumbnail_path) / f"{digest}.png"


class MediaParser(abc.ABC):
    """Reads media files of one type and keeps their table up to date."""

    media_type: ClassVar[str] = ""

    def __init__(self, settings: Settings) -> None:
        if not self.media_type:
            raise TypeError(f"{type(self).__name__} does not name a media type")
        self.settings = settings
        self._listeners: list[Callable[[list[dict[str, Any]]], None]] = []

    @abc.abstractmethod
    def can_read(self, path: str | os.PathLike[str]) -> bool:
        """Whether this parser handles the file."""

    @abc.abstractmethod
    def update_media_infos(
        self,
        paths: Iterable[str | os.PathLike[str]],
        search_path: str,
        connection: sqlite3.Connection,
    ) -> list[dict[str, Any]]:
        """Store the files in the database and return the stored records."""

    def run_extra_metadata_provider(self, connection: sqlite3.Connection) -> None:
        """Hook run after a scan of this type; does nothing by default."""

    @property
    def _table(self) -> str:
        return _quote_identifier(self.media_type)

    def top_level_files_in_path(
        self, path: str, connection: sqlite3.Connection
    ) -> dict[str, FileInfo]:
        """Files stored directly in directory ``path``, keyed by file path."""
        try:
            rows = connection.execute(
                f"SELECT id, filepath, mtime, ctime, filesize FROM {self._table} "
                "WHERE directory = ?",
                (path,),
            ).fetchall()
        except sqlite3.Error as exc:
            log.warning("%s", exc)
            return {}
        return {
            row[1]: FileInfo(
                rowid=row[0], name=row[1], mtime=row[2] or 0, ctime=row[3] or 0, size=row[4] or 0
            )
            for row in rows
        }

    def file_ids_in_path(self, path: str, connection: sqlite3.Connection) -> set[int]:
        """Row ids of every file below ``path``."""
        try:
            rows = connection.execute(
                f"SELECT id FROM {self._table} WHERE filepath LIKE ?", (path + "%",)
            ).fetchall()
        except sqlite3.Error as exc:
            log.warning("%s", exc)
            return set()
        return {int(row[0]) for row in rows}

    def remove_files(self, ids: Iterable[int], connection: sqlite3.Connection) -> None:
        """Delete the rows with these ids in one transaction."""
        with connection:
            for row_id in ids:
                try:
                    connection.execute(f"DELETE FROM {self._table} WHERE id = ?", (row_id,))
                except sqlite3.Error as exc:
                    log.warning("%s", exc)

    def store_record(
        self, connection: sqlite3.Connection, values: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace the row for ``values['filepath']`` and return it as a record.

        The record holds 'id' first, then the stored fields ordered by name.
        """
        try:
            connection.execute(
                f"DELETE FROM {self._table} WHERE filepath = ?", (values["filepath"],)
            )
        except sqlite3.Error as exc:
            log.warning("%s", exc)

        columns = list(values)
        sql = (
            f"INSERT INTO {self._table} ({', '.join(map(_quote_identifier, columns))}) "
            f"VALUES ({', '.join('?' * len(columns))})"
        )
        row_id = None
        try:
            row_id = connection.execute(sql, [values[c] for c in columns]).lastrowid
        except sqlite3.Error as exc:
            log.warning("%s", exc)

        record: dict[str, Any] = {"id": row_id}
        record.update(sorted(values.items()))
        return record

    def on_database_updated(
        self, callback: Callable[[list[dict[str, Any]]], None]
    ) -> None:
        """Call ``callback`` with the records after every update."""
        self._listeners.append(callback)

    def _emit_database_updated(self, records: list[dict[str, Any]]) -> None:
        for callback in list(self._listeners):
            callback(records)


class MediaPlugin(abc.ABC):
    """Provides parsers for one or more media types."""

    @abc.abstractmethod
    def parser_keys(self) -> list[str]:
        """Keys of the parsers this plugin can create."""

    @abc.abstractmethod
    def create_parser(self, settings: Settings, key: str) -> MediaParser | None:
        """A new parser for ``key``, or None if the key is unknown."""