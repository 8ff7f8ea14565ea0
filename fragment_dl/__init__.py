"""
fragment-dl: concurrent fragment downloader that reassembles segmented media
streams into a single file.
"""

__version__ = "0.1.0"
