"""lyric_cli - a CLI utility that is not a core part of the library."""
