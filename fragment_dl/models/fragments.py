"""
Data structures describing a fragmented stream and the units of work derived
from it.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class FragmentTask:
    """One fragment to fetch: its position in the stream and its URL."""

    index: int
    url: str


@dataclass
class FragmentResult:
    """The payload of a successfully fetched fragment."""

    index: int
    payload: bytes = field(repr=False)
    attempts: int = 1

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass(frozen=True)
class FragmentList:
    """
    The ordered fragment list of a stream as returned by a fragment-list provider.

    Fragment paths are relative to ``base_uri`` unless they are already absolute
    HTTP(S) URLs.
    """

    base_uri: str
    fragments: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.fragments)

    def to_tasks(self) -> list[FragmentTask]:
        """Builds one task per fragment, indexed 0..N-1 in playlist order."""
        return [
            FragmentTask(index, self._resolve(path))
            for index, path in enumerate(self.fragments)
        ]

    def _resolve(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_uri}{path}"
