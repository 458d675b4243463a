"""Request-scoped access to configuration and collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from fastapi import Request

from app.config import TaskSettings
from app.document_store import DocumentStore
from app.task_query import TaskQueryEngine


@dataclass(frozen=True)
class RequestContext:
    library_root: Path
    settings: TaskSettings
    store: DocumentStore
    engine: TaskQueryEngine


def get_request_context(request: Request) -> RequestContext:
    """Build the store and query engine for the configured library root."""
    config = getattr(request.app.state, "config", None)
    if config is not None and hasattr(config, "library_path"):
        library_root = Path(config.library_path)
        settings = getattr(config, "tasks", None) or TaskSettings()
    else:
        library_root = Path(request.app.state.library_path)
        settings = getattr(request.app.state, "task_settings", None) or TaskSettings()

    store = DocumentStore(library_root)
    return RequestContext(
        library_root=library_root,
        settings=settings,
        store=store,
        engine=TaskQueryEngine(store),
    )
