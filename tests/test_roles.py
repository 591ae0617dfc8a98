import sqlite3

import pytest

from mediahub.roles import Role, RoleRegistry, default_registry


@pytest.fixture
def registry():
    reg = RoleRegistry()
    reg.add_static_roles()
    return reg


@pytest.fixture
def connection():
    conn = sqlite3.connect(":memory:")
    conn.execute("CREATE TABLE music (id INTEGER PRIMARY KEY, title TEXT, uri TEXT, thumbnail TEXT)")
    conn.execute("CREATE TABLE video (id INTEGER PRIMARY KEY, title TEXT, show TEXT)")
    yield conn
    conn.close()


def test_static_roles(registry):
    assert registry.role_for("display") == Role.DISPLAY
    assert registry.role_for("dotdot") == Role.DOTDOT
    assert registry.role_for("mediaType") == Role.MEDIA_TYPE
    assert registry.name_for(Role.PREVIEW_URL) == "previewUrl"
    assert registry.name_for(Role.IS_LEAF) == "isLeaf"


def test_table_roles_are_consecutive(registry, connection):
    registry.add_table_roles(connection, "music")
    roles = [registry.role_for(n) for n in ("id", "title", "uri", "thumbnail")]
    assert roles[0] == Role.FIELD_ROLES_BEGIN
    assert roles == list(range(roles[0], roles[0] + 4))


def test_shared_columns_keep_their_role(registry, connection):
    registry.add_table_roles(connection, "music")
    title_role = registry.role_for("title")
    registry.add_table_roles(connection, "video")
    assert registry.role_for("title") == title_role
    assert registry.role_for("show") == Role.FIELD_ROLES_BEGIN + 4


def test_repeated_table_adds_nothing(registry, connection):
    registry.add_table_roles(connection, "music")
    before = registry.role_to_name()
    registry.add_table_roles(connection, "music")
    assert registry.role_to_name() == before


def test_missing_table_changes_nothing(registry, connection):
    before = registry.name_to_role()
    registry.add_table_roles(connection, "nosuchtable")
    assert registry.name_to_role() == before


def test_mappings_are_inverse(registry, connection):
    registry.add_table_roles(connection, "music")
    forward = registry.role_to_name()
    backward = registry.name_to_role()
    assert {name: role for role, name in forward.items()} == backward


def test_unknown_name_raises(registry):
    with pytest.raises(KeyError):
        registry.role_for("nope")
    with pytest.raises(KeyError):
        registry.name_for(Role.FIELD_ROLES_BEGIN + 100)


def test_returned_mappings_are_copies(registry):
    copy = registry.role_to_name()
    copy[Role.DISPLAY] = "changed"
    assert registry.name_for(Role.DISPLAY) == "display"


def test_dynamic_roles_data_from_mapping(registry, connection):
    registry.add_table_roles(connection, "music")
    data = registry.dynamic_roles_data(
        {"id": 7, "title": "Song", "uri": b"file:///a.mp3", "thumbnail": b"file:///t.png", "extra": 1}
    )
    assert data[registry.role_for("id")] == 7
    assert data[registry.role_for("title")] == "Song"
    assert data[registry.role_for("uri")] == "file:///a.mp3"
    assert data[Role.PREVIEW_URL] == "file:///t.png"
    assert 1 not in data.values()


def test_dynamic_roles_data_from_row(registry, connection):
    registry.add_table_roles(connection, "music")
    connection.row_factory = sqlite3.Row
    connection.execute("INSERT INTO music (title, uri) VALUES ('A', 'file:///x.ogg')")
    row = connection.execute("SELECT * FROM music").fetchone()
    data = registry.dynamic_roles_data(row)
    assert data[registry.role_for("title")] == "A"
    assert data[registry.role_for("uri")] == "file:///x.ogg"
    assert data[Role.PREVIEW_URL] == ""


def test_default_registry_is_shared():
    first = default_registry()
    assert first is default_registry()
    assert first.role_for("dotdot") == Role.DOTDOT