"""Walks search paths on disk and keeps the media tables in step with them."""

from __future__ import annotations

import logging
import os
import sqlite3
import time
from collections import deque
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from mediahub.mediaparser import MediaParser, MediaPlugin, Settings, stat_fields
from mediahub.roles import RoleRegistry, default_registry

log = logging.getLogger(__name__)

BULK_LIMIT = 100
"""Files are handed to a parser in batches once more than this many are pending."""

EVENTS = (
    "current_scan_path_changed",
    "scan_started",
    "scan_finished",
    "search_path_added",
    "search_path_removed",
)

_SCHEMA = """
CREATE TABLE directories (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    path TEXT NOT NULL,
    name TEXT,
    type TEXT NOT NULL,
    UNIQUE (type, path)
);
CREATE TABLE playlist (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    media_type TEXT NOT NULL,
    media_id INTEGER NOT NULL
);
CREATE TABLE music (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filepath TEXT NOT NULL, title TEXT, album TEXT, artist TEXT,
    track INTEGER, year INTEGER, genre TEXT, comment TEXT,
    thumbnail TEXT, uri TEXT, length INTEGER, bitrate INTEGER, samplerate INTEGER,
    directory TEXT, mtime INTEGER, ctime INTEGER, filesize INTEGER
);
CREATE TABLE video (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filepath TEXT NOT NULL, title TEXT, thumbnail TEXT, uri TEXT,
    directory TEXT, mtime INTEGER, ctime INTEGER, filesize INTEGER,
    show TEXT, season TEXT
);
CREATE TABLE radio (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filepath TEXT NOT NULL, title TEXT, thumbnail TEXT, length INTEGER, uri TEXT,
    directory TEXT, mtime INTEGER, ctime INTEGER, filesize INTEGER
);
CREATE TABLE picture (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filepath TEXT NOT NULL, title TEXT, thumbnail TEXT, year INTEGER, month INTEGER,
    comments TEXT, description TEXT, created TEXT, camera_model TEXT, camera_make TEXT,
    latitude REAL, longitude REAL, altitude REAL, orientation INTEGER,
    aperture TEXT, focal_length TEXT, exposure_time TEXT, exposure_mode TEXT,
    white_balance TEXT, light_source TEXT, iso_speed TEXT, digital_zoom_ratio TEXT,
    flash_usage TEXT, color_space TEXT,
    directory TEXT, mtime INTEGER, ctime INTEGER, filesize INTEGER
);
CREATE TABLE snes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filepath TEXT NOT NULL, title TEXT, thumbnail TEXT, uri TEXT,
    directory TEXT, mtime INTEGER, ctime INTEGER, filesize INTEGER
);
"""


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _directory_path(path: str | os.PathLike[str]) -> str:
    absolute = os.path.abspath(path)
    return absolute if absolute.endswith("/") else absolute + "/"


def ensure_database(path: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open the media database at ``path``, creating the schema if it is empty."""
    text = os.fspath(path)
    if text != ":memory:":
        Path(text).parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(text)
    connection.row_factory = sqlite3.Row
    tables = connection.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table'"
    ).fetchall()
    if not tables:
        with connection:
            connection.executescript(_SCHEMA)
    return connection


class MediaScanner:
    """Keeps the parsers, search paths and media tables together."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        settings: Settings | None = None,
        registry: RoleRegistry | None = None,
    ) -> None:
        self.connection = connection
        self.settings = settings if settings is not None else Settings()
        self.registry = registry if registry is not None else default_registry()
        self._parsers: dict[str, MediaParser] = {}
        self._parser_types: list[str] = []
        self._listeners: dict[str, list[Callable[..., None]]] = {e: [] for e in EVENTS}
        self._current_scan_path = ""
        self._stop = False

    @property
    def current_scan_path(self) -> str:
        """The directory being scanned, or '' when idle."""
        return self._current_scan_path

    def add_listener(self, event: str, callback: Callable[..., None]) -> None:
        """Call ``callback`` whenever ``event`` happens."""
        if event not in self._listeners:
            raise ValueError(f"unknown event: {event!r}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    def _set_scan_path(self, path: str) -> None:
        self._current_scan_path = path
        self._emit("current_scan_path_changed", path)

    def load_plugins(self, plugins: Iterable[MediaPlugin]) -> None:
        """Create and add the parsers of every plugin, once per plugin class."""
        self.registry.add_static_roles()
        loaded: set[type] = set()
        for plugin in plugins:
            if type(plugin) in loaded:
                log.debug("Plugin %s already loaded", type(plugin).__name__)
                continue
            for key in plugin.parser_keys():
                parser = plugin.create_parser(self.settings, key)
                if parser is None:
                    log.warning("Problem with creating parser. key used: %s", key)
                    continue
                self.registry.add_table_roles(self.connection, parser.media_type)
                self.add_parser(parser)
            loaded.add(type(plugin))
            log.debug("Using parser plugin: %s", type(plugin).__name__)

    def add_parser(self, parser: MediaParser) -> None:
        """Register ``parser`` and scan the search paths of its type."""
        self._parser_types.append(parser.media_type)
        self._parsers[parser.media_type] = parser
        self.refresh(parser.media_type)

    def add_search_path(self, media_type: str, path: str | os.PathLike[str], name: str) -> None:
        """Remember a directory for ``media_type`` and scan it."""
        directory = _directory_path(path)
        try:
            with self.connection:
                self.connection.execute(
                    "INSERT INTO directories (path, name, type) VALUES (?, ?, ?)",
                    (directory, name, media_type),
                )
        except sqlite3.Error as exc:
            log.warning("%s", exc)
            return

        self._emit("search_path_added", media_type, directory, name)

        parser = self._parsers.get(media_type)
        if parser is not None:
            self._emit("scan_started", media_type)
            self.scan(parser, directory)
            self._emit("scan_finished", media_type)

    def remove_search_path(self, media_type: str, path: str | os.PathLike[str]) -> None:
        """Forget a directory and every media row stored below it."""
        directory = _directory_path(path)
        try:
            with self.connection:
                self.connection.execute(
                    "DELETE FROM directories WHERE type = ? AND path = ?",
                    (media_type, directory),
                )
        except sqlite3.Error as exc:
            log.warning("Removing directory %s", exc)
            return
        try:
            with self.connection:
                self.connection.execute(
                    f"DELETE FROM {_quote_identifier(media_type)} WHERE directory LIKE ?",
                    (directory + "%",),
                )
        except sqlite3.Error as exc:
            log.warning("Removing data %s", exc)
            return

        self._emit("search_path_removed", media_type, directory)

    def search_paths(self, media_type: str) -> list[str]:
        """The directories stored for ``media_type``."""
        rows = self.connection.execute(
            "SELECT path FROM directories WHERE type = ?", (media_type,)
        ).fetchall()
        return [row[0] for row in rows]

    def refresh(self, media_type: str | None = None) -> None:
        """Rescan the directories of ``media_type``, or of every type."""
        if media_type:
            rows = self.connection.execute(
                "SELECT type, path FROM directories WHERE type = ?", (media_type,)
            ).fetchall()
        else:
            rows = self.connection.execute(
                "SELECT type, path FROM directories ORDER BY type"
            ).fetchall()

        last_type = ""
        parser: MediaParser | None = None
        for row_type, path in ((row[0], row[1]) for row in rows):
            if row_type != last_type:
                parser = self._parsers.get(row_type)
                if parser is None:
                    log.warning("No parser found for type '%s'", row_type)
                    continue
                if last_type:
                    self._emit("scan_finished", last_type)
                    previous = self._parsers.get(last_type)
                    if previous is not None:
                        previous.run_extra_metadata_provider(self.connection)
                self._emit("scan_started", row_type)
                last_type = row_type
            self.scan(parser, path)

        if last_type:
            self._emit("scan_finished", last_type)
            parser = self._parsers.get(last_type)
            if parser is not None:
                parser.run_extra_metadata_provider(self.connection)

    @staticmethod
    def _list_directory(directory: str) -> list[os.DirEntry[str]]:
        try:
            with os.scandir(directory) as entries:
                return sorted(
                    (e for e in entries if not e.is_symlink()), key=lambda e: e.name
                )
        except OSError:
            return []

    def scan(self, parser: MediaParser, search_path: str) -> None:
        """Bring the rows of ``parser``'s table below ``search_path`` up to date."""
        pending_dirs = deque([search_path])
        pending_files: list[str] = []
        file_ids = parser.file_ids_in_path(search_path, self.connection)

        while pending_dirs and not self._stop:
            current = pending_dirs.popleft()
            on_disk = self._list_directory(current)
            in_db = parser.top_level_files_in_path(current, self.connection)

            self._set_scan_path(current)

            for entry in on_disk:
                absolute = os.path.abspath(os.path.join(current, entry.name))
                known = in_db.pop(absolute, None)
                if known is not None:
                    file_ids.discard(known.rowid)

                if entry.is_file(follow_symlinks=False):
                    if not parser.can_read(absolute):
                        continue
                    fields = stat_fields(absolute)
                    if known is not None and (
                        fields["mtime"] == known.mtime
                        and fields["ctime"] == known.ctime
                        and fields["filesize"] == known.size
                    ):
                        continue
                    pending_files.append(absolute)
                    if len(pending_files) > BULK_LIMIT:
                        parser.update_media_infos(pending_files, search_path, self.connection)
                        pending_files = []
                elif entry.is_dir(follow_symlinks=False):
                    pending_dirs.append(absolute + "/")

                if self._stop:
                    break

            if not self._stop and self.settings.scan_delay > 0:
                time.sleep(self.settings.scan_delay / 1_000_000)

        if pending_files:
            parser.update_media_infos(pending_files, search_path, self.connection)

        parser.remove_files(file_ids, self.connection)
        self._set_scan_path("")

    def stop(self) -> None:
        """Stop scanning; later scans do not walk the disk."""
        self._stop = True

    def available_parser_plugins(self) -> list[str]:
        """Media types of the parsers added so far."""
        return list(self._parser_types)