"""Git history for document mutations."""

from __future__ import annotations

import logging
from pathlib import Path

from dulwich import porcelain
from dulwich.repo import Repo

from app.document_store import DocumentStore
from app.errors import McpError

LOGGER = logging.getLogger(__name__)


def _resolve_git_head(library_root: Path) -> str | None:
    git_dir = library_root / ".git"
    head_path = git_dir / "HEAD"
    if not head_path.exists():
        return None

    try:
        head_contents = head_path.read_text(encoding="utf-8").strip()
    except OSError:
        return None

    if not head_contents.startswith("ref:"):
        return head_contents or None

    ref_name = head_contents.partition("ref:")[2].strip()
    ref_path = git_dir / ref_name
    if not ref_name or not ref_path.exists():
        return None
    try:
        return ref_path.read_text(encoding="utf-8").strip() or None
    except OSError:
        return None


def _ensure_git_repo(library_root: Path) -> Repo:
    git_dir = library_root / ".git"
    try:
        if git_dir.exists():
            return Repo(str(library_root))
        return porcelain.init(str(library_root))
    except Exception as exc:
        raise McpError(
            "GIT_ERROR",
            "Git repository could not be initialized.",
            {"path": str(library_root)},
        ) from exc


def _commit_document_change(repo: Repo, relative_path: str, operation: str) -> str:
    repo.get_worktree().stage([relative_path])
    commit_sha = porcelain.commit(repo, message=f"{operation}: {relative_path}")
    if isinstance(commit_sha, bytes):
        return commit_sha.decode("ascii")
    return str(commit_sha)


def _write_and_commit(
    store: DocumentStore,
    path: str,
    original: str,
    updated: str,
    operation: str,
) -> str:
    """Write a document and commit it, restoring the original on commit failure."""
    repo = _ensure_git_repo(store.root)
    store.write(path, updated)
    try:
        return _commit_document_change(repo, path, operation)
    except Exception as exc:
        LOGGER.error("Commit for %s on %s failed: %s", operation, path, exc)
        store.write(path, original)
        try:
            repo.get_worktree().stage([path])
        except Exception:
            LOGGER.exception("Could not restage %s after rollback", path)
        raise McpError(
            "GIT_ERROR",
            "Git commit failed; mutation rolled back.",
            {"path": path, "operation": operation},
        ) from exc
