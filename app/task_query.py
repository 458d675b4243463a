"""Markdown checklist scanner acting as the task query engine."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

import frontmatter
import yaml

from app.dates import parse_date
from app.document_store import DocumentStore
from app.errors import McpError
from app.task_model import GroupNode, TaskNode, TaskRecord

LOGGER = logging.getLogger(__name__)

TASK_QUERY = "TASK"
TASK_LINE_PATTERN = re.compile(
    r"^(?P<indent>[ \t]*)(?P<bullet>[-*+]) \[(?P<status>[^\]])\](?: (?P<text>.*))?$"
)
TAG_PATTERN = re.compile(r"(?<![\w/&#])#(?P<tag>[^\s#,.;:!?()\[\]{}'\"]+)")
EMOJI_DATE_PATTERNS = {
    "due": re.compile(r"📅\s*(\d{4}-\d{2}-\d{2})"),
    "scheduled": re.compile(r"⏳\s*(\d{4}-\d{2}-\d{2})"),
    "start": re.compile(r"🛫\s*(\d{4}-\d{2}-\d{2})"),
}
INLINE_FIELD_PATTERN = re.compile(
    r"\[(?P<key>due|scheduled|start)::\s*(?P<value>[^\]]+)\]", re.IGNORECASE
)
TAB_WIDTH = 4


@dataclass(frozen=True)
class PageSelector:
    """Structured document selector; values are matched, never interpolated."""

    folder: str | None = None
    tag: str | None = None


@dataclass
class PageMetadata:
    name: str
    path: str
    ext: str
    tags: frozenset[str] = frozenset()
    frontmatter: dict[str, Any] = field(default_factory=dict)

    @property
    def course_id(self) -> str | None:
        value = self.frontmatter.get("course_id")
        if value is None or not str(value).strip():
            return None
        return str(value).strip()


@dataclass
class TaskQueryValue:
    type: str
    values: list[GroupNode]


@dataclass
class QueryResult:
    successful: bool
    value: TaskQueryValue | None = None
    error: str | None = None


def _indent_width(indent: str) -> int:
    return len(indent.replace("\t", " " * TAB_WIDTH))


def _extract_tags(text: str) -> frozenset[str]:
    return frozenset(f"#{match.group('tag')}" for match in TAG_PATTERN.finditer(text))


def _extract_dates(text: str) -> dict[str, Any]:
    dates: dict[str, Any] = {}
    for key, pattern in EMOJI_DATE_PATTERNS.items():
        match = pattern.search(text)
        if match:
            dates[key] = parse_date(match.group(1))
    for match in INLINE_FIELD_PATTERN.finditer(text):
        key = match.group("key").lower()
        if dates.get(key) is None:
            dates[key] = parse_date(match.group("value"))
    return dates


def _mark_fully_completed(record: TaskRecord) -> bool:
    children_done = all([_mark_fully_completed(child) for child in record.children])
    record.fully_completed = record.completed and children_done
    return record.fully_completed


def parse_task_grouping(path: str, content: str) -> GroupNode:
    """Parse checklist lines of one document into a group of nested task nodes."""
    group = GroupNode(key=path)
    stack: list[tuple[int, TaskNode]] = []
    offset = 0

    for line_number, line in enumerate(content.split("\n")):
        line_offset = offset
        offset += len(line) + 1
        line = line.rstrip("\r")

        match = TASK_LINE_PATTERN.match(line)
        if not match:
            if line.strip() and not line[:1].isspace():
                stack.clear()
            continue

        indent = match.group("indent")
        width = _indent_width(indent)
        status = match.group("status")
        text = (match.group("text") or "").strip()
        record = TaskRecord(
            text=text,
            path=path,
            line=line_number,
            status=status,
            completed=status.lower() == "x",
            position={
                "start": {
                    "line": line_number,
                    "col": len(indent),
                    "offset": line_offset + len(indent),
                },
                "end": {
                    "line": line_number,
                    "col": len(line),
                    "offset": line_offset + len(line),
                },
            },
            tags=_extract_tags(text),
            **_extract_dates(text),
        )
        node = TaskNode(record=record)

        while stack and stack[-1][0] >= width:
            stack.pop()
        if stack:
            parent = stack[-1][1]
            parent.children.append(node)
            parent.record.children.append(record)
        else:
            group.rows.append(node)
        stack.append((width, node))

    for node in group.rows:
        if isinstance(node, TaskNode):
            _mark_fully_completed(node.record)
    return group


def _read_frontmatter(path: str, content: str) -> tuple[dict[str, Any], str]:
    try:
        post = frontmatter.loads(content)
    except (yaml.YAMLError, TypeError, ValueError) as exc:
        LOGGER.warning("Ignoring unreadable frontmatter in %s: %s", path, exc)
        return {}, content
    return dict(post.metadata), post.content


def _frontmatter_tags(metadata: dict[str, Any]) -> set[str]:
    raw_tags = metadata.get("tags") or metadata.get("tag") or []
    if isinstance(raw_tags, str):
        raw_tags = re.split(r"[,\s]+", raw_tags)
    elif not isinstance(raw_tags, (list, tuple, set, frozenset)):
        # Scalar YAML values such as `tags: 2025` or a bare date.
        raw_tags = [raw_tags]
    tags: set[str] = set()
    for tag in raw_tags:
        if tag is None:
            continue
        value = str(tag).strip().lstrip("#")
        if value:
            tags.add(f"#{value}")
    return tags


def _matches_folder(page: PageMetadata, folder: str) -> bool:
    folder = folder.strip().strip("/")
    if not folder:
        return True
    return (
        page.path.startswith(f"{folder}/")
        or page.path == folder
        or page.name == folder
    )


def _matches_tag(page: PageMetadata, tag: str) -> bool:
    wanted = f"#{tag.strip().lstrip('#')}".lower()
    return any(
        item.lower() == wanted or item.lower().startswith(f"{wanted}/")
        for item in page.tags
    )


class TaskQueryEngine:
    """Answers TASK queries and page listings over a document store."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _ensure_ready(self) -> None:
        if not self.store.root.is_dir():
            raise McpError(
                "UPSTREAM_UNAVAILABLE",
                "Task query engine is not available; library root is missing.",
                {"path": str(self.store.root)},
            )

    def _read_documents(self) -> list[tuple[str, str]]:
        documents: list[tuple[str, str]] = []
        for path in self.store.list_markdown_documents():
            try:
                documents.append((path, self.store.read(path)))
            except (McpError, OSError) as exc:
                LOGGER.warning("Skipping unreadable document %s: %s", path, exc)
        return documents

    def query(self, query_string: str) -> QueryResult:
        self._ensure_ready()
        normalized = query_string.strip() if isinstance(query_string, str) else ""
        if normalized.upper() != TASK_QUERY:
            return QueryResult(
                successful=False,
                error=f"Unsupported query: {normalized or '<empty>'}",
            )

        groups = [
            parse_task_grouping(path, content)
            for path, content in self._read_documents()
        ]
        return QueryResult(
            successful=True, value=TaskQueryValue(type="task", values=groups)
        )

    def pages(self, selector: PageSelector | None = None) -> list[PageMetadata]:
        self._ensure_ready()
        selector = selector or PageSelector()

        pages: list[PageMetadata] = []
        for path, content in self._read_documents():
            metadata, body = _read_frontmatter(path, content)
            try:
                tags = _frontmatter_tags(metadata)
            except (TypeError, ValueError) as exc:
                LOGGER.warning("Ignoring unreadable tags in %s: %s", path, exc)
                tags = set()
            pure_path = PurePosixPath(path)
            page = PageMetadata(
                name=pure_path.stem,
                path=path,
                ext=pure_path.suffix.lstrip(".").lower(),
                tags=frozenset(tags | _extract_tags(body)),
                frontmatter=metadata,
            )
            if selector.folder and not _matches_folder(page, selector.folder):
                continue
            if selector.tag and not _matches_tag(page, selector.tag):
                continue
            pages.append(page)
        return pages
