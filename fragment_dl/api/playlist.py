"""
Fragment-list provider backed by an HLS media playlist (.m3u8).
"""

import asyncio
import logging
from collections.abc import Mapping
from urllib.parse import urljoin, urlsplit, urlunsplit

import aiohttp

from fragment_dl.exceptions import ListingError
from fragment_dl.models.fragments import FragmentList

log = logging.getLogger(__name__)

PLAYLIST_HEADER = "#EXTM3U"


def derive_base_uri(playlist_url: str) -> str:
    """
    Returns the prefix that fragment paths are appended to.

    Stream hosts put fragments next to a ``playlist*.m3u8`` file, so the path up to
    the ``playlist`` marker is used when present; otherwise the playlist's directory.
    Only the path is searched, never the host or the query.
    """
    parts = urlsplit(playlist_url)
    if "playlist" in parts.path:
        prefix = parts.path.split("playlist", 1)[0]
        return urlunsplit((parts.scheme, parts.netloc, prefix, "", ""))
    return urljoin(playlist_url, ".")


def parse_playlist(text: str) -> tuple[str, ...]:
    """
    Extracts fragment paths from playlist text, in order.

    Tag and comment lines (anything containing ``#``) and blank lines are skipped.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip() != PLAYLIST_HEADER:
        raise ListingError("Response is not an M3U playlist (missing #EXTM3U).")
    return tuple(
        line.strip() for line in lines if line.strip() and "#" not in line
    )


class PlaylistProvider:
    """Fetches a media playlist and turns it into a :class:`FragmentList`."""

    def __init__(
        self,
        playlist_url: str,
        headers: Mapping[str, str] | None = None,
        timeout: float = 30.0,
    ):
        self.playlist_url = playlist_url
        self.headers = dict(headers or {})
        self.timeout = timeout

    async def list_fragments(self) -> FragmentList:
        """
        Downloads and parses the playlist.

        Raises:
            ListingError: If the playlist cannot be fetched or is not a playlist.
        """
        log.info(f"Fetching playlist [dim]{self.playlist_url}[/dim]")
        timeout = aiohttp.ClientTimeout(total=self.timeout, connect=15)
        try:
            async with (
                aiohttp.ClientSession(timeout=timeout, headers=self.headers) as session,
                session.get(self.playlist_url) as response,
            ):
                response.raise_for_status()
                text = await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ListingError(f"Could not fetch playlist: {e}") from e

        fragments = parse_playlist(text)
        log.debug(f"Playlist lists {len(fragments)} fragment(s)")
        return FragmentList(
            base_uri=derive_base_uri(self.playlist_url), fragments=fragments
        )
