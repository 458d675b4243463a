"""Extraction of due-date tables from course and project documents.

A document contributes rows from its first ``Due Dates`` section: a pipe
table whose first column is a date and whose second column describes the
assignment. Rows are validated, windowed by date, formatted for display and
aggregated across documents in ascending date order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from app.dates import parse_date
from app.document_store import DocumentStore, MARKDOWN_EXTENSIONS
from app.errors import McpError
from app.task_query import PageMetadata, PageSelector, TaskQueryEngine

LOGGER = logging.getLogger(__name__)

DUE_DATES_SECTION_PATTERN = re.compile(
    r"^#+[ \t]+Due Dates[^\n]*\n?(?P<body>.*?)(?=^#|\Z)",
    re.MULTILINE | re.DOTALL,
)
COURSE_CODE_PATTERN = re.compile(r"[A-Z]{3}-[0-9]{3}")
COMPLETION_GLYPH = "✅"
UNKNOWN_CATEGORY = "unknown"
DEFAULT_LOOKBACK_DAYS = 30
ONE_WEEK_DAYS = 7
TWO_WEEKS_DAYS = 14
SUPPORTED_EXTENSIONS = {ext.lstrip(".") for ext in MARKDOWN_EXTENSIONS}


@dataclass(frozen=True)
class DateWindow:
    """Inclusive date bounds; a missing bound is open-ended."""

    start: date | None = None
    end: date | None = None

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True

    @classmethod
    def resolve(
        cls, start: date | None, end: date | None, today: date
    ) -> DateWindow:
        if start is None and end is None:
            # Rows dated exactly DEFAULT_LOOKBACK_DAYS ago are already out.
            return cls(start=today - timedelta(days=DEFAULT_LOOKBACK_DAYS - 1))
        return cls(start=start, end=end)


@dataclass
class DueDateEntry:
    due_date: str
    formatted_due_date: str
    assignment: str
    file_path: str
    parsed_due_date: date

    def to_dict(self) -> dict[str, str]:
        return {
            "dueDate": self.due_date,
            "formattedDueDate": self.formatted_due_date,
            "assignment": self.assignment,
            "filePath": self.file_path,
        }


@dataclass
class DueDateResult:
    entries: list[DueDateEntry]
    errors: list[dict[str, str]]

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": len(self.entries),
            "entries": [entry.to_dict() for entry in self.entries],
            "errors": self.errors,
        }


def find_due_dates_section(content: str) -> str | None:
    match = DUE_DATES_SECTION_PATTERN.search(content)
    if match is None:
        return None
    return match.group("body")


def parse_due_date_rows(section: str) -> list[tuple[str, str]]:
    """Return ``(dueDate, assignment)`` cells for each table row after the header."""
    rows: list[tuple[str, str]] = []
    for line in section.strip().split("\n")[1:]:
        cells = [cell.strip() for cell in line.split("|")]
        cells = [cell for cell in cells if cell]
        if len(cells) < 2:
            continue
        rows.append((cells[0], cells[1]))
    return rows


def format_assignment(assignment: str, category: str) -> str:
    if COURSE_CODE_PATTERN.search(assignment):
        return assignment
    return f"#{category} - {assignment}"


def format_due_date(due_date: str, parsed: date, today: date) -> str:
    if parsed > today - timedelta(days=ONE_WEEK_DAYS):
        return f'<span class="due one_week">{due_date}</span>'
    if parsed > today - timedelta(days=TWO_WEEKS_DAYS):
        return f'<span class="due two_weeks">{due_date}</span>'
    return due_date


def _selector_for(category: str | None, query: str | None) -> PageSelector:
    if query and query.strip().startswith("#"):
        return PageSelector(tag=query.strip().lstrip("#"))
    if category:
        return PageSelector(folder=category)
    return PageSelector()


def select_candidate_pages(
    engine: TaskQueryEngine,
    category: str | None,
    query: str | None,
) -> tuple[list[PageMetadata], bool]:
    """Resolve candidate documents.

    Returns the pages and whether the free-text query was consumed as the
    document selection.
    """
    selector = _selector_for(category, query)
    pages = [
        page
        for page in engine.pages(selector)
        if (not category or page.name != category)
        and page.ext in SUPPORTED_EXTENSIONS
    ]
    if not query or selector.tag:
        return pages, bool(selector.tag)

    needle = query.lower()
    named = [
        page
        for page in pages
        if needle in page.name.lower() or needle in page.path.lower()
    ]
    if named:
        return named, True
    return pages, False


def extract_document_entries(
    page: PageMetadata,
    content: str,
    *,
    category: str | None,
    window: DateWindow,
    row_query: str | None,
    today: date,
) -> list[DueDateEntry]:
    section = find_due_dates_section(content)
    if section is None:
        LOGGER.debug("No due dates section in %s", page.path)
        return []

    category_value = page.course_id or category or UNKNOWN_CATEGORY
    entries: list[DueDateEntry] = []
    for due_date, assignment in parse_due_date_rows(section):
        parsed = parse_date(due_date)
        if parsed is None or COMPLETION_GLYPH in assignment:
            continue
        if not window.contains(parsed):
            continue
        if row_query and row_query.lower() not in assignment.lower():
            continue
        entries.append(
            DueDateEntry(
                due_date=due_date,
                formatted_due_date=format_due_date(due_date, parsed, today),
                assignment=format_assignment(assignment, category_value),
                file_path=page.path,
                parsed_due_date=parsed,
            )
        )
    return entries


def list_due_date_entries(
    store: DocumentStore,
    engine: TaskQueryEngine,
    *,
    category: str | None = None,
    start: date | None = None,
    end: date | None = None,
    query: str | None = None,
    today: date | None = None,
) -> DueDateResult:
    today = today or date.today()
    category = category.strip() if category and category.strip() else None
    query = query.strip() if query and query.strip() else None
    window = DateWindow.resolve(start, end, today)

    pages, query_selected_documents = select_candidate_pages(engine, category, query)
    row_query = None if query_selected_documents else query

    entries: list[DueDateEntry] = []
    errors: list[dict[str, str]] = []
    for page in pages:
        try:
            content = store.read(page.path)
        except (McpError, OSError) as exc:
            LOGGER.warning("Skipping due dates for %s: %s", page.path, exc)
            errors.append({"filePath": page.path, "error": str(exc)})
            continue
        entries.extend(
            extract_document_entries(
                page,
                content,
                category=category,
                window=window,
                row_query=row_query,
                today=today,
            )
        )

    entries.sort(key=lambda entry: entry.parsed_due_date)
    LOGGER.info(
        "due dates: %d entries from %d documents (%d skipped)",
        len(entries),
        len(pages),
        len(errors),
    )
    return DueDateResult(entries=entries, errors=errors)
