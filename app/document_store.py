"""Filesystem-backed document store rooted at the library directory."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path, PurePosixPath

from app.errors import McpError

MARKDOWN_EXTENSIONS = {".md", ".markdown"}


def is_markdown_path(path: str | Path) -> bool:
    return PurePosixPath(str(path)).suffix.lower() in MARKDOWN_EXTENSIONS


def _contains_symlink(library_root: Path, relative_path: PurePosixPath) -> bool:
    current = library_root
    for segment in relative_path.parts:
        current = current / segment
        if current.is_symlink():
            return True
    return False


def _atomic_write(target_path: Path, content: str) -> None:
    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=target_path.parent, delete=False
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(content)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target_path)
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass


class DocumentStore:
    """Whole-document reads and writes addressed by library-relative paths."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def resolve(self, raw_path: str) -> Path:
        """Validate a library-relative path and return its absolute location."""
        if not isinstance(raw_path, str):
            raise McpError(
                "INVALID_TYPE",
                "Path must be a string.",
                {"path": str(raw_path), "type": type(raw_path).__name__},
            )

        candidate = PurePosixPath(raw_path.strip().replace("\\", "/"))
        if candidate.is_absolute():
            raise McpError(
                "ABSOLUTE_PATH",
                "Absolute paths are not allowed.",
                {"path": raw_path},
            )
        if ".." in candidate.parts:
            raise McpError(
                "PATH_TRAVERSAL",
                "Path traversal is not allowed.",
                {"path": raw_path},
            )
        if _contains_symlink(self.root, candidate):
            raise McpError(
                "PATH_SYMLINK",
                "Symlinked paths are not allowed.",
                {"path": raw_path},
            )
        return self.root.joinpath(*candidate.parts)

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def _resolve_document(self, path: str) -> Path:
        resolved = self.resolve(path)
        if not resolved.exists():
            raise McpError(
                "FILE_NOT_FOUND",
                "Document does not exist.",
                {"path": path},
            )
        if not resolved.is_file() or not is_markdown_path(resolved):
            raise McpError(
                "INVALID_PATH",
                "Path must reference a markdown document.",
                {"path": path},
            )
        return resolved

    def read(self, path: str) -> str:
        resolved = self._resolve_document(path)
        try:
            return resolved.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise McpError(
                "INVALID_ENCODING",
                "Markdown file must be UTF-8 encoded.",
                {"path": path},
            ) from exc

    def write(self, path: str, content: str) -> None:
        _atomic_write(self._resolve_document(path), content)

    def list_markdown_documents(self, scope: str | None = None) -> list[str]:
        """List markdown documents below ``scope`` (or the whole library), sorted."""
        start_path = self.resolve(scope) if scope else self.root
        if not start_path.is_dir():
            return []

        files: list[str] = []
        for root, dirnames, filenames in os.walk(start_path, followlinks=False):
            dir_path = Path(root)
            dirnames[:] = sorted(
                name
                for name in dirnames
                if not name.startswith(".") and not (dir_path / name).is_symlink()
            )
            for filename in sorted(filenames):
                file_path = dir_path / filename
                if file_path.is_symlink() or not is_markdown_path(file_path):
                    continue
                files.append(file_path.relative_to(self.root).as_posix())
        return sorted(files)
