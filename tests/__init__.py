"""Tests for lyric-async."""
