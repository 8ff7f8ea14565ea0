"""
Fragment Listing Layer.

This package provides the reference fragment-list provider used by the CLI.
"""

from .playlist import PlaylistProvider, derive_base_uri, parse_playlist

__all__ = ["PlaylistProvider", "derive_base_uri", "parse_playlist"]
