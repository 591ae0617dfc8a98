import pytest

from mediahub.mediaparser import Settings, file_uri, thumbnail_cache_path
from mediahub.scanner import ensure_database
from mediahub.video import (
    VideoParser,
    VideoPlugin,
    determine_show_and_season,
    determine_title,
    generate_thumbnail,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(thumbnail_path=tmp_path / "thumbs")


@pytest.fixture
def connection():
    conn = ensure_database(":memory:")
    yield conn
    conn.close()


def test_title_drops_extension_and_capitalises():
    assert determine_title("/videos/heroes.avi") == "Heroes"


def test_title_replaces_separators():
    title = determine_title("/videos/the_big.movie-name.mkv")
    assert "_" not in title and "." not in title and "-" not in title
    assert title.startswith("The big movie name")


def test_title_removes_noise_words():
    title = determine_title("/videos/film.XviD.DVDRip.HDTV.avi")
    lowered = title.lower()
    assert "xvid" not in lowered
    assert "rip" not in lowered
    assert "hdtv" not in lowered
    assert lowered.startswith("film")


def test_title_without_extension_keeps_name():
    assert determine_title("/videos/clip") == "Clip"


def test_show_from_file_in_search_path():
    assert determine_show_and_season("/media/videos/Lost-01.avi", "/media/videos/") == (
        "Lost",
        "",
    )


def test_show_from_plain_file_in_search_path():
    assert determine_show_and_season("/media/videos/Heroes.avi", "/media/videos/") == (
        "Heroes",
        "",
    )


def test_show_from_single_directory():
    assert determine_show_and_season("/media/videos/Show/ep1.avi", "/media/videos/") == (
        "Show",
        "",
    )


def test_show_and_season_from_nested_directories():
    result = determine_show_and_season(
        "/media/videos/Show/Season 1/ep1.avi", "/media/videos/"
    )
    assert result == ("Show", "Season 1")


def test_can_read_default_extensions(settings):
    parser = VideoParser(settings)
    assert parser.can_read("/x/a.avi")
    assert parser.can_read("/x/a.mkv")
    assert not parser.can_read("/x/a.AVI")
    assert not parser.can_read("/x/a.txt")
    assert not parser.can_read("/x/noextension")


def test_extra_extensions_skip_empty_parts(tmp_path):
    parser = VideoParser(
        Settings(thumbnail_path=tmp_path, extra_video_extensions="flv,,webm")
    )
    assert parser.can_read("/x/a.flv")
    assert parser.can_read("/x/a.webm")
    assert "" not in parser.supported_types


def test_thumbnail_missing_is_empty(settings, tmp_path):
    video = tmp_path / "a.avi"
    video.write_bytes(b"data")
    assert generate_thumbnail(settings, video) == ""


def test_thumbnail_uses_cache(settings, tmp_path):
    video = tmp_path / "a.avi"
    video.write_bytes(b"data")
    cached = thumbnail_cache_path(settings, video)
    cached.parent.mkdir(parents=True)
    cached.write_bytes(b"png")
    assert generate_thumbnail(settings, video) == file_uri(cached)


def test_update_media_infos_stores_rows(settings, connection, tmp_path):
    root = tmp_path / "videos"
    season_dir = root / "Show" / "Season 2"
    season_dir.mkdir(parents=True)
    video = season_dir / "episode_one.avi"
    video.write_bytes(b"x" * 10)

    parser = VideoParser(settings)
    seen = []
    parser.on_database_updated(seen.append)
    records = parser.update_media_infos([video], str(root) + "/", connection)

    assert len(records) == 1
    record = records[0]
    assert record["show"] == "Show"
    assert record["season"] == "Season 2"
    assert record["uri"] == file_uri(video)
    assert record["filesize"] == 10
    assert record["directory"] == str(season_dir) + "/"
    assert seen == [records]

    row = connection.execute(
        "SELECT id, title, show, season FROM video WHERE filepath = ?", (str(video),)
    ).fetchone()
    assert row["id"] == record["id"]
    assert row["title"] == record["title"]
    assert row["show"] == "Show"


def test_update_replaces_existing_row(settings, connection, tmp_path):
    root = tmp_path / "videos"
    root.mkdir()
    video = root / "movie.mp4"
    video.write_bytes(b"abc")
    parser = VideoParser(settings)

    parser.update_media_infos([video], str(root) + "/", connection)
    parser.update_media_infos([video], str(root) + "/", connection)

    count = connection.execute(
        "SELECT COUNT(*) FROM video WHERE filepath = ?", (str(video),)
    ).fetchone()[0]
    assert count == 1


def test_plugin_keys_and_parser(settings):
    plugin = VideoPlugin()
    assert plugin.parser_keys() == ["video"]
    parser = plugin.create_parser(settings, "video")
    assert isinstance(parser, VideoParser)
    assert parser.media_type == "video"
    assert plugin.create_parser(settings, "music") is None