"""
Utilities for naming the output artifact.
"""

from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlsplit

from pathvalidate import sanitize_filename

DEFAULT_EXTENSION = ".aac"
FALLBACK_STEM = "stream"


def default_output_name(playlist_url: str, extension: str = DEFAULT_EXTENSION) -> str:
    """
    Derives a safe file name from the playlist URL's last path segment.

    ``https://host/a/playlist_16.m3u8`` becomes ``playlist_16.aac``.
    """
    stem = PurePosixPath(unquote(urlsplit(playlist_url).path)).stem
    stem = sanitize_filename(stem).strip() or FALLBACK_STEM
    return f"{stem}{extension}"


def resolve_output_path(
    playlist_url: str, output: Path | None, extension: str = DEFAULT_EXTENSION
) -> Path:
    """
    Returns the artifact path: ``output`` if it names a file, a derived name inside
    ``output`` if it is a directory, or a derived name in the working directory.
    """
    if output is None:
        return Path(default_output_name(playlist_url, extension))
    if output.is_dir():
        return output / default_output_name(playlist_url, extension)
    return output
