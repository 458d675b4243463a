from datetime import date

import pytest

from app.document_store import DocumentStore
from app.errors import McpError
from app.task_model import GroupNode, TaskNode
from app.task_query import PageSelector, TaskQueryEngine, parse_task_grouping


def _write(root, relative, content):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_parse_task_grouping_nests_indented_items():
    content = "\n".join(
        [
            "## Tasks",
            "- [ ] Parent",
            "\t- [x] Tab child",
            "  - [x] Space child",
            "    - [x] Grandchild",
            "Paragraph resets nesting",
            "  - [ ] Loose item",
        ]
    )

    group = parse_task_grouping("a.md", content)

    assert isinstance(group, GroupNode)
    assert [node.record.text for node in group.rows] == ["Parent", "Loose item"]
    parent = group.rows[0]
    assert [child.record.text for child in parent.children] == [
        "Tab child",
        "Space child",
    ]
    assert [child.text for child in parent.record.children] == [
        "Tab child",
        "Space child",
    ]
    space_child = parent.children[1]
    assert isinstance(space_child, TaskNode)
    assert space_child.children[0].record.text == "Grandchild"


def test_parse_task_grouping_reads_status_tags_and_dates():
    content = "\n".join(
        [
            "- [x] Submit essay #school #cs/essay 📅 2025-11-15 ⏳ 2025-11-10",
            "- [/] Read chapter [due:: 2025-12-01] [start:: 2025-11-20]",
            "* [-] Cancelled idea",
        ]
    )

    rows = parse_task_grouping("School/CS1.md", content).rows
    essay, reading, cancelled = (node.record for node in rows)

    assert essay.status == "x"
    assert essay.completed is True
    assert essay.fully_completed is True
    assert essay.tags == frozenset({"#school", "#cs/essay"})
    assert essay.due == date(2025, 11, 15)
    assert essay.scheduled == date(2025, 11, 10)
    assert essay.start is None
    assert reading.status == "/"
    assert reading.completed is False
    assert reading.due == date(2025, 12, 1)
    assert reading.start == date(2025, 11, 20)
    assert cancelled.status == "-"
    assert cancelled.line == 2


def test_parse_task_grouping_records_positions():
    content = "intro\n  - [ ] Indented"

    record = parse_task_grouping("a.md", content).rows[0].record

    assert record.line == 1
    assert record.position == {
        "start": {"line": 1, "col": 2, "offset": 8},
        "end": {"line": 1, "col": 16, "offset": 22},
    }


def test_fully_completed_requires_all_children_done():
    content = "\n".join(
        [
            "- [x] Done parent",
            "  - [ ] Open child",
            "- [x] Finished parent",
            "  - [x] Finished child",
        ]
    )

    rows = parse_task_grouping("a.md", content).rows

    assert rows[0].record.completed is True
    assert rows[0].record.fully_completed is False
    assert rows[1].record.fully_completed is True


def test_query_returns_one_group_per_document(tmp_path):
    _write(tmp_path, "b.md", "- [ ] B task\n")
    _write(tmp_path, "a/a.md", "- [ ] A task\n")
    _write(tmp_path, "notes.txt", "- [ ] Not markdown\n")
    _write(tmp_path, ".hidden/c.md", "- [ ] Hidden\n")

    result = TaskQueryEngine(DocumentStore(tmp_path)).query("TASK")

    assert result.successful is True
    assert result.value.type == "task"
    assert [group.key for group in result.value.values] == ["a/a.md", "b.md"]


def test_query_rejects_unsupported_queries(tmp_path):
    result = TaskQueryEngine(DocumentStore(tmp_path)).query("LIST FROM #tag")

    assert result.successful is False
    assert "Unsupported query" in result.error


def test_engine_without_library_root_is_unavailable(tmp_path):
    engine = TaskQueryEngine(DocumentStore(tmp_path / "missing"))

    with pytest.raises(McpError) as excinfo:
        engine.query("TASK")

    assert excinfo.value.error.code == "UPSTREAM_UNAVAILABLE"


def test_pages_selects_by_folder_and_tag(tmp_path):
    _write(
        tmp_path,
        "CS1/essay.md",
        "---\ncourse_id: CS1\ntags: [course]\n---\n# Essay\n",
    )
    _write(tmp_path, "CS1.md", "# CS1 index\n")
    _write(tmp_path, "BIO/lab.md", "# Lab #course\n")
    _write(tmp_path, "Journal/today.md", "# Today\n")
    engine = TaskQueryEngine(DocumentStore(tmp_path))

    by_folder = engine.pages(PageSelector(folder="CS1"))
    by_tag = engine.pages(PageSelector(tag="course"))

    assert [page.path for page in by_folder] == ["CS1.md", "CS1/essay.md"]
    assert [page.path for page in by_tag] == ["BIO/lab.md", "CS1/essay.md"]
    essay = by_folder[1]
    assert essay.name == "essay"
    assert essay.ext == "md"
    assert essay.course_id == "CS1"


def test_pages_ignores_broken_frontmatter(tmp_path):
    _write(tmp_path, "bad.md", "---\ntags: [unclosed\n---\nBody #tagged\n")

    pages = TaskQueryEngine(DocumentStore(tmp_path)).pages()

    assert len(pages) == 1
    assert pages[0].frontmatter == {}
    assert "#tagged" in pages[0].tags


def test_pages_accepts_scalar_frontmatter_tags(tmp_path):
    _write(tmp_path, "year.md", "---\ntags: 2025\n---\n# Year\n")
    _write(tmp_path, "day.md", "---\ntags: 2025-01-01\n---\n# Day\n")

    pages = TaskQueryEngine(DocumentStore(tmp_path)).pages()

    tags_by_path = {page.path: page.tags for page in pages}
    assert tags_by_path == {
        "day.md": frozenset({"#2025-01-01"}),
        "year.md": frozenset({"#2025"}),
    }
