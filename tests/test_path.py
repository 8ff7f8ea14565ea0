"""
Tests for output artifact naming.
"""

from pathlib import Path

from fragment_dl.utils.path import default_output_name, resolve_output_path


class TestDefaultOutputName:
    def test_uses_playlist_stem(self):
        assert default_output_name("https://host/a/playlist_16.m3u8?x=1") == (
            "playlist_16.aac"
        )

    def test_sanitizes_unsafe_characters(self):
        name = default_output_name("https://host/a/my%3Aspace%3F.m3u8")
        assert name == "myspace.aac"

    def test_strips_characters_invalid_on_any_platform(self):
        assert default_output_name("https://host/a%3Cb%3Ec%7Cd%2A.m3u8") == "abcd.aac"

    def test_falls_back_when_url_has_no_name(self):
        assert default_output_name("https://host/") == "stream.aac"

    def test_custom_extension(self):
        assert default_output_name("https://host/x.m3u8", ".ts") == "x.ts"


class TestResolveOutputPath:
    def test_no_output_uses_derived_name(self):
        assert resolve_output_path("https://host/x.m3u8", None) == Path("x.aac")

    def test_directory_output(self, tmp_path):
        assert resolve_output_path("https://host/x.m3u8", tmp_path) == tmp_path / "x.aac"

    def test_file_output_is_used_as_is(self, tmp_path):
        target = tmp_path / "named.aac"
        assert resolve_output_path("https://host/x.m3u8", target) == target
