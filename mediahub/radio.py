"""Parser for internet radio station playlists (.pls and .asx files)."""

from __future__ import annotations

import configparser
import logging
import os
import re
import sqlite3
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote

from mediahub.mediaparser import MediaParser, MediaPlugin, Settings, stat_fields

log = logging.getLogger(__name__)

_EXTENSIONS = ("pls", "asx")
_PLS_TITLE_PREFIX = re.compile(r"\(#[0-9]+ - [0-9]+/[0-9]+\) ")
_URL_SAFE = ":/?#[]@!$&'()*+,;=%~"


@dataclass
class RadioInfo:
    """The station one playlist file points at."""

    uri: str
    title: str
    thumbnail: str = ""
    length: int = 0


def clean_string(text: str) -> str:
    """Collapse runs of whitespace and capitalise the first character."""
    text = " ".join(text.split())
    return text[:1].upper() + text[1:]


def _suffix(path: str | os.PathLike[str]) -> str:
    return Path(path).suffix[1:]


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def _unquote(text: str) -> str:
    text = text.strip()
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1]
    return text


def read_pls(path: str | os.PathLike[str]) -> RadioInfo | None:
    """Read the first entry of a PLS playlist; None if it has none."""
    parser = configparser.ConfigParser(
        interpolation=None, strict=False, delimiters=("=",)
    )
    try:
        with open(path, encoding="utf-8", errors="replace") as handle:
            parser.read_file(handle)
    except (OSError, configparser.Error) as exc:
        log.debug("Cannot read %s: %s", path, exc)
        return None

    section = next((s for s in parser.sections() if s.lower() == "playlist"), None)
    if section is None:
        return None
    entries = parser[section]

    if "numberofentries" not in entries:
        return None
    if _to_int(_unquote(entries["numberofentries"])) <= 0:
        return None
    # Only the first station of the list is used.
    if not all(key in entries for key in ("file1", "title1", "length1")):
        return None

    title = _unquote(entries["title1"])
    info = RadioInfo(
        uri=_unquote(entries["file1"]),
        title=title,
        length=_to_int(_unquote(entries["length1"])),
    )
    match = _PLS_TITLE_PREFIX.search(title)
    if match is not None and match.start() == 0:
        info.title = title[match.end():]
    return info


def read_asx(path: str | os.PathLike[str]) -> RadioInfo | None:
    """Read the title, stream reference and banner of an ASX playlist."""
    title = ""
    uri = ""
    banner = ""
    try:
        with open(path, "rb") as handle:
            for event, element in ET.iterparse(handle, events=("start", "end")):
                name = element.tag
                if event == "start":
                    if name == "entry":
                        continue
                    if name == "Banner" and "href" in element.attrib:
                        banner = element.attrib["href"]
                        continue
                    if name == "title":
                        continue
                    if name == "ref" and "href" in element.attrib:
                        uri = element.attrib["href"]
                        continue
                elif name == "title" and element.text is not None:
                    title = element.text

                if title and not uri:
                    break
    except (OSError, ET.ParseError) as exc:
        log.debug("Cannot read %s: %s", path, exc)
        return None

    if not title or not uri:
        return None
    return RadioInfo(uri=uri, title=title, thumbnail=banner)


class RadioParser(MediaParser):
    """Keeps the 'radio' table in step with playlist files on disk."""

    media_type = "radio"

    def can_read(self, path: str | os.PathLike[str]) -> bool:
        return _suffix(path) in _EXTENSIONS

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
                suffix = _suffix(path)
                if suffix == "pls":
                    info = read_pls(path)
                elif suffix == "asx":
                    info = read_asx(path)
                else:
                    info = None
                if info is None:
                    continue

                fields = stat_fields(path)
                values = {
                    "filepath": fields["filepath"],
                    "title": info.title,
                    "thumbnail": info.thumbnail,
                    "length": info.length,
                    "uri": quote(info.uri, safe=_URL_SAFE),
                    "directory": fields["directory"],
                    "mtime": fields["mtime"],
                    "ctime": fields["ctime"],
                    "filesize": fields["filesize"],
                }
                records.append(self.store_record(connection, values))

        self._emit_database_updated(records)
        return records


class RadioPlugin(MediaPlugin):
    """Provides the radio parser."""

    def parser_keys(self) -> list[str]:
        return ["radio"]

    def create_parser(self, settings: Settings, key: str) -> MediaParser | None:
        if key == "radio":
            return RadioParser(settings)
        return None