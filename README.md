# mediahub

A small media library engine built on the standard library's `sqlite3`. It
walks directories for media files and stores what it finds in a database. On
later scans it parses only the files that changed, and it removes rows for
files that have gone away.

## Modules

- `mediahub.scanner`
  - `ensure_database(path)` opens the library database, or creates it. An
    empty database gets the schema: a `directories` table, a `playlist` table,
    and one table per media type (`music`, `video`, `radio`, `picture`,
    `snes`). Rows come back as `sqlite3.Row`.
  - `MediaScanner(connection, settings, registry)` holds the parsers and the
    search paths of each media type.
    - `load_plugins(plugins)` adds the parsers that each plugin provides.
      A plugin class counts only once.
    - `add_parser(parser)` adds one parser and rescans its directories.
    - `add_search_path(media_type, path, name)` stores a directory and scans
      it. `remove_search_path(media_type, path)` forgets the directory and
      deletes its rows. `search_paths(media_type)` lists the stored
      directories.
    - `refresh(media_type=None)` rescans one type, or every type.
    - `scan(parser, search_path)` walks one directory tree breadth first and
      skips symbolic links. It sends files to the parser in batches of more
      than `BULK_LIMIT` (100).
    - `stop()` ends the current scan. Later scans do not walk the disk.
    - `available_parser_plugins()` lists the media types of the parsers added
      so far.
    - `add_listener(event, callback)` takes one of these events:
      `current_scan_path_changed`, `scan_started`, `scan_finished`,
      `search_path_added` and `search_path_removed`. The `current_scan_path`
      attribute holds the directory being scanned.

    Scanning runs in the calling thread. `Settings.scan_delay` sets a pause
    after each directory, in microseconds.
- `mediahub.mediaparser`
  - `MediaParser` is the base class for a media type. A parser sets
    `media_type` and implements `can_read(path)` and
    `update_media_infos(paths, search_path, connection)`.
    - `store_record(connection, values)` replaces the row of a file and
      returns the stored record.
    - `top_level_files_in_path`, `file_ids_in_path` and `remove_files` are
      the lookups that the scanner uses.
    - `on_database_updated(callback)` is called with the records of each
      update.
  - `MediaPlugin` provides parsers through `parser_keys()` and
    `create_parser(settings, key)`.
  - `Settings` holds the options. `FileInfo` is what the database remembers
    about one file.
  - Helpers: `stat_fields(path)`, `file_uri(path)` and
    `thumbnail_cache_path(settings, path)`. Cached thumbnails are named by the
    MD5 of the file's `file://` path and kept under `Settings.thumbnail_path`.
- `mediahub.radio`
  - `RadioParser` and `RadioPlugin` handle `.pls` and `.asx` station files.
  - `read_pls(path)` takes the first entry of the playlist. It strips a
    leading `(#1 - 2/3) ` style counter from the title.
  - `read_asx(path)` reads the title, the stream `ref` and the `Banner` image.
  - `clean_string(text)` collapses whitespace and capitalises the first
    character.
- `mediahub.video`
  - `VideoParser` and `VideoPlugin` index video files. `avi`, `ogg`, `mp4`,
    `mpeg`, `mpg`, `mov`, `ogv`, `wmv`, `mkv` and `ts` are read by default.
    `Settings.extra_video_extensions` adds more, separated by commas.
  - `determine_title(path)` makes a title from the file name. It drops the
    extension, turns `.`, `_` and `-` into spaces, removes `xvid`, `rip` and
    `hdtv`, and capitalises the first character.
  - `determine_show_and_season(path, search_path)` guesses a show and a
    season from where the file lies.
  - `generate_thumbnail(settings, path)` returns the URL of an existing
    cached thumbnail, or `''`.
- `mediahub.roles`
  - `RoleRegistry` maps field names to numeric roles: the fixed ones in
    `Role`, plus one for each table column. `dynamic_roles_data(record)` turns
    a database row into a role-keyed dict.
  - `default_registry()` returns the shared registry.

## Example

```python
from mediahub.mediaparser import Settings
from mediahub.radio import RadioPlugin
from mediahub.roles import default_registry
from mediahub.scanner import MediaScanner, ensure_database
from mediahub.video import VideoPlugin

connection = ensure_database("library.db")
scanner = MediaScanner(connection, Settings(), default_registry())
scanner.add_listener("scan_finished", lambda media_type: print("done:", media_type))
scanner.load_plugins([VideoPlugin(), RadioPlugin()])
scanner.add_search_path("video", "/srv/videos", "Videos")

for row in connection.execute("SELECT show, season, title FROM video ORDER BY show"):
    print(row["show"], row["season"], row["title"])
```

## What it does not do

- There is no browsing model for walking a collection level by level. There
  are no playlists either. The `playlist` table is created, but nothing in the
  package reads or writes it.
- Only video and radio files have parsers. The `music`, `picture` and `snes`
  tables are created, but nothing fills them.
- Thumbnails are never made. A video gets a thumbnail URL only if a cached
  image already exists.
- There is no command-line program and no background service. Scans run when
  your code calls them.

## Tests

```
pip install -e .[test]
pytest
```