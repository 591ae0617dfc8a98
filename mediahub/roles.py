"""Role numbers that name the fields of media rows."""

from __future__ import annotations

import enum
import functools
import logging
import sqlite3
from collections.abc import Mapping
from typing import Any

log = logging.getLogger(__name__)

_USER_ROLE = 0x100


class Role(enum.IntEnum):
    """Fixed roles; table columns get numbers from FIELD_ROLES_BEGIN upwards."""

    DISPLAY = 0
    DOTDOT = _USER_ROLE
    MEDIA_TYPE = _USER_ROLE + 1
    IS_LEAF = _USER_ROLE + 2
    MODEL_INDEX = _USER_ROLE + 3
    PREVIEW_URL = _USER_ROLE + 4
    FIELD_ROLES_BEGIN = _USER_ROLE + 5


_STATIC_ROLES = (
    (Role.DISPLAY, "display"),
    (Role.DOTDOT, "dotdot"),
    (Role.MEDIA_TYPE, "mediaType"),
    (Role.IS_LEAF, "isLeaf"),
    (Role.MODEL_INDEX, "modelIndex"),
    (Role.PREVIEW_URL, "previewUrl"),
)


def _quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def _url_text(value: Any) -> str:
    """Turn a stored URL (bytes or text) into text; missing values become ''."""
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _as_mapping(record: Any) -> Mapping[str, Any]:
    if isinstance(record, Mapping):
        return record
    return {key: record[key] for key in record.keys()}


class RoleRegistry:
    """Two-way mapping between role numbers and field names."""

    def __init__(self) -> None:
        self._role_to_name: dict[int, str] = {}
        self._name_to_role: dict[str, int] = {}
        self._next_dynamic = int(Role.FIELD_ROLES_BEGIN)

    def _add(self, role: int, name: str) -> None:
        self._role_to_name[role] = name
        self._name_to_role[name] = role

    def add_static_roles(self) -> None:
        """Register the fixed roles such as 'display' and 'dotdot'."""
        for role, name in _STATIC_ROLES:
            self._add(role, name)

    def add_table_roles(self, connection: sqlite3.Connection, table: str) -> None:
        """Give every not yet known column of ``table`` a new role number."""
        try:
            rows = connection.execute(
                f"PRAGMA table_info({_quote_identifier(table)})"
            ).fetchall()
        except sqlite3.Error as exc:
            log.warning("Cannot read columns of table %s: %s", table, exc)
            rows = []
        columns = [row[1] for row in rows]
        if not columns:
            log.warning("Table %s is not valid it seems", table)
            return
        for name in columns:
            if name in self._name_to_role:
                continue
            self._add(self._next_dynamic, name)
            self._next_dynamic += 1

    def role_for(self, name: str) -> int:
        """Role number of a field name; KeyError if unknown."""
        return self._name_to_role[name]

    def name_for(self, role: int) -> str:
        """Field name of a role number; KeyError if unknown."""
        return self._role_to_name[role]

    def role_to_name(self) -> dict[int, str]:
        return dict(self._role_to_name)

    def name_to_role(self) -> dict[str, int]:
        return dict(self._name_to_role)

    def dynamic_roles_data(self, record: Any) -> dict[int, Any]:
        """Map a database row (mapping or sqlite3.Row) onto role numbers.

        Fields without a registered role are left out. The 'uri' field is
        turned into text, and the 'thumbnail' field also fills PREVIEW_URL.
        """
        fields = _as_mapping(record)
        data: dict[int, Any] = {}
        for name, value in fields.items():
            role = self._name_to_role.get(name)
            if role is None:
                continue
            data[role] = _url_text(value) if name == "uri" else value
        data[Role.PREVIEW_URL] = _url_text(fields.get("thumbnail"))
        return data


@functools.lru_cache(maxsize=None)
def default_registry() -> RoleRegistry:
    """The shared registry, with the static roles already in place."""
    registry = RoleRegistry()
    registry.add_static_roles()
    return registry