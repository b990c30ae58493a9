"""The generated documentation tree handed from the builder to the publisher."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path

from ..core.errors import EmptyArtifact


def _file_digest(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


@dataclass(frozen=True)
class BuildArtifact:
    root: Path

    @property
    def exists(self) -> bool:
        return self.root.is_dir()

    def files(self) -> list[str]:
        """Sorted POSIX paths of every regular file, relative to the root."""
        if not self.exists:
            return []
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())

    @property
    def is_empty(self) -> bool:
        return not self.files()

    def manifest(self) -> dict[str, str]:
        return {rel: _file_digest(self.root / rel) for rel in self.files()}

    def digest(self) -> str:
        h = hashlib.sha256()
        for rel, file_hash in self.manifest().items():
            h.update(rel.encode("utf-8"))
            h.update(b"\0")
            h.update(file_hash.encode("ascii"))
            h.update(b"\n")
        return h.hexdigest()

    def require_publishable(self) -> list[str]:
        if not self.exists:
            raise EmptyArtifact(f"artifact directory missing: {self.root}")
        files = self.files()
        if not files:
            raise EmptyArtifact(f"artifact directory is empty: {self.root}")
        return files

    def summary(self) -> dict[str, object]:
        return {"root": str(self.root), "file_count": len(self.files()), "digest": self.digest()}


def artifact_root(source_root: Path, output_dir: str) -> Path:
    """Resolve the fixed output path shared by the builder and the publisher."""
    rel = Path(output_dir)
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"artifact output dir must be relative to the source tree: {output_dir}")
    if not rel.parts:
        raise ValueError(f"artifact output dir must be a subdirectory of the source tree: {output_dir}")
    return source_root / rel
