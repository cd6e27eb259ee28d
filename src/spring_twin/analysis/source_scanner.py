"""Discovery of Java compilation units under package filters."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

from loguru import logger

from spring_twin.errors import ConfigurationError

from .package_filter import PackageFilter

SKIPPED_DIRECTORIES = {"target", "build", "out", "bin", "node_modules"}

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_PACKAGE_RE = re.compile(r"^\s*package\s+([A-Za-z_$][\w$]*(?:\s*\.\s*[A-Za-z_$][\w$]*)*)\s*;", re.MULTILINE)

HEADER_READ_BYTES = 16 * 1024


@dataclass(frozen=True)
class CompilationUnit:
    """One Java source file selected for analysis."""

    path: Path
    relative_path: str
    package_name: str
    size_bytes: int


def read_package_name(path: Path) -> Optional[str]:
    """Return the declared package of a Java file, or None when absent."""
    with path.open("rb") as handle:
        head = handle.read(HEADER_READ_BYTES).decode("utf-8", errors="replace")
    head = _LINE_COMMENT_RE.sub("", _BLOCK_COMMENT_RE.sub("", head))
    match = _PACKAGE_RE.search(head)
    if not match:
        return None
    return re.sub(r"\s+", "", match.group(1))


class UnitSequence:
    """Lazy, finite and restartable: every iteration walks the tree again."""

    def __init__(self, scanner: "SourceScanner") -> None:
        self._scanner = scanner

    def __iter__(self) -> Iterator[CompilationUnit]:
        return self._scanner.iter_units()

    def count(self) -> int:
        return sum(1 for _ in self._scanner.iter_units())


class SourceScanner:
    """Scan a project root for ``.java`` units whose package passes the filter."""

    def __init__(
        self,
        root: Path | str,
        package_filter: Optional[PackageFilter] = None,
        *,
        source_roots: Iterable[str] = ("src/main/java",),
        max_file_size_kb: int = 512,
    ) -> None:
        if root is None or not str(root).strip():
            raise ConfigurationError("Project root path is required")
        self.root = Path(root).expanduser()
        if not self.root.exists():
            raise ConfigurationError(f"Project root does not exist: {self.root}", details={"root": str(self.root)})
        if not self.root.is_dir():
            raise ConfigurationError(f"Project root is not a directory: {self.root}", details={"root": str(self.root)})
        self.root = self.root.resolve()
        self.package_filter = package_filter or PackageFilter()
        self.source_roots = list(source_roots)
        self.max_file_size_bytes = max_file_size_kb * 1024
        # relative path -> reason, for files the last walk could not use
        self.skipped: Dict[str, str] = {}

    def scan(self) -> UnitSequence:
        return UnitSequence(self)

    def source_directories(self) -> List[Path]:
        found = [self.root / rel for rel in self.source_roots if (self.root / rel).is_dir()]
        return found or [self.root]

    def iter_units(self) -> Iterator[CompilationUnit]:
        self.skipped = {}
        seen = set()
        for source_dir in self.source_directories():
            for path in sorted(source_dir.rglob("*.java")):
                if path in seen or not path.is_file() or path.is_symlink():
                    continue
                seen.add(path)
                relative_to_source = path.relative_to(source_dir)
                if self._skipped_directory(relative_to_source):
                    continue
                unit = self._describe(path, source_dir)
                if unit is not None:
                    yield unit

    @staticmethod
    def _skipped_directory(relative_path: Path) -> bool:
        for part in relative_path.parts[:-1]:
            if part.startswith(".") or part in SKIPPED_DIRECTORIES:
                return True
        return False

    def _describe(self, path: Path, source_dir: Path) -> Optional[CompilationUnit]:
        relative_path = path.relative_to(self.root).as_posix()
        try:
            size_bytes = path.stat().st_size
            declared = read_package_name(path)
        except OSError as exc:
            logger.warning("Failed to read {}: {}", relative_path, exc)
            self.skipped[relative_path] = f"Read error: {exc}"
            return None

        if declared is None:
            declared = ".".join(path.relative_to(source_dir).parts[:-1])
        if not self.package_filter.includes(declared):
            return None

        if size_bytes > self.max_file_size_bytes:
            message = f"{size_bytes} bytes exceeds the {self.max_file_size_bytes} byte limit"
            logger.warning("Skipping {}: {}", relative_path, message)
            self.skipped[relative_path] = message
            return None

        return CompilationUnit(
            path=path,
            relative_path=relative_path,
            package_name=declared,
            size_bytes=size_bytes,
        )


__all__ = ["CompilationUnit", "SourceScanner", "UnitSequence", "read_package_name"]
