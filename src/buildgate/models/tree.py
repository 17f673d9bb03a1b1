"""
WorkingTree - the checked-out source snapshot a pipeline run operates on.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from buildgate.errors import ConfigurationError


@dataclass(frozen=True)
class WorkingTree:
    """
    An immutable handle on a checked-out source tree.

    The checkout itself is done by something else (a CI checkout action, a
    developer's clone). The runner only reads from ``root`` and never writes
    into it; steps may leave build artifacts behind.

    Attributes:
        root: Absolute path to the tree
        revision: Optional label for the snapshot (commit sha, ref name)
    """

    root: Path
    revision: str | None = None

    @classmethod
    def from_path(cls, path: str | Path, revision: str | None = None) -> WorkingTree:
        """
        Create a WorkingTree from a directory path.

        Raises:
            ConfigurationError: If the path is not an existing directory
        """
        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise ConfigurationError(f"Working tree {root} is not a directory")
        return cls(root=root, revision=revision)

    def resolve(self, relative: str | Path | None) -> Path:
        """Resolve a path relative to the tree root."""
        if relative is None:
            return self.root
        return (self.root / relative).resolve()

    def __str__(self) -> str:
        if self.revision:
            return f"{self.root}@{self.revision}"
        return str(self.root)
