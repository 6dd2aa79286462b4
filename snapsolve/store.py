"""In-memory collection of pending screenshots."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from snapsolve.types import ScreenshotArtifact


@dataclass(slots=True)
class ScreenshotStore:
    """Ordered pending screenshots, keyed by artifact id.

    Insertion order reflects capture order. ``drain`` hands the whole set to
    one submission and leaves the store empty, so captures made afterwards
    never leak into an earlier request.
    """

    _items: dict[str, ScreenshotArtifact] = field(default_factory=dict, init=False)

    def add(self, artifact: ScreenshotArtifact) -> None:
        """Append an artifact; raise ``ValueError`` when its id is already pending."""
        if artifact.id in self._items:
            raise ValueError(f"Duplicate screenshot id: {artifact.id}")
        self._items[artifact.id] = artifact

    def remove(self, artifact_id: str) -> bool:
        """Delete the artifact with this id; return False when absent."""
        return self._items.pop(artifact_id, None) is not None

    def drain(self) -> tuple[ScreenshotArtifact, ...]:
        """Return every pending artifact and empty the store."""
        drained, self._items = tuple(self._items.values()), {}
        return drained

    def restore(self, artifacts: Iterable[ScreenshotArtifact]) -> None:
        """Put previously drained artifacts back in front, keeping their order."""
        restored: dict[str, ScreenshotArtifact] = {
            artifact.id: artifact for artifact in artifacts if artifact.id not in self._items
        }
        restored.update(self._items)
        self._items = restored

    def items(self) -> tuple[ScreenshotArtifact, ...]:
        """Return a snapshot of the pending artifacts in capture order."""
        return tuple(self._items.values())

    def ids(self) -> tuple[str, ...]:
        """Return the pending artifact ids in capture order."""
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[ScreenshotArtifact]:
        return iter(self.items())

    def __contains__(self, artifact_id: object) -> bool:
        return artifact_id in self._items
