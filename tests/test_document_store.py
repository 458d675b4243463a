import pytest

from app.document_store import DocumentStore
from app.errors import McpError


def test_resolve_rejects_absolute_paths(tmp_path):
    with pytest.raises(McpError) as excinfo:
        DocumentStore(tmp_path).resolve("/etc/passwd")

    assert excinfo.value.error.code == "ABSOLUTE_PATH"


def test_resolve_rejects_traversal(tmp_path):
    with pytest.raises(McpError) as excinfo:
        DocumentStore(tmp_path).resolve("notes/../../secret.md")

    assert excinfo.value.error.code == "PATH_TRAVERSAL"


def test_resolve_rejects_symlinks(tmp_path):
    target = tmp_path / "real"
    target.mkdir()
    (tmp_path / "link").symlink_to(target, target_is_directory=True)

    with pytest.raises(McpError) as excinfo:
        DocumentStore(tmp_path).resolve("link/file.md")

    assert excinfo.value.error.code == "PATH_SYMLINK"


def test_read_and_write_roundtrip(tmp_path):
    (tmp_path / "notes").mkdir()
    (tmp_path / "notes" / "a.md").write_text("old\n", encoding="utf-8")
    store = DocumentStore(tmp_path)

    store.write("notes/a.md", "new\n")

    assert store.read("notes/a.md") == "new\n"
    assert store.exists("notes/a.md") is True
    assert store.exists("notes/b.md") is False


def test_read_missing_and_invalid_targets(tmp_path):
    (tmp_path / "folder.md").mkdir()
    (tmp_path / "data.txt").write_text("x", encoding="utf-8")
    store = DocumentStore(tmp_path)

    with pytest.raises(McpError) as missing:
        store.read("missing.md")
    with pytest.raises(McpError) as directory:
        store.read("folder.md")
    with pytest.raises(McpError) as not_markdown:
        store.read("data.txt")
    with pytest.raises(McpError) as write_missing:
        store.write("missing.md", "content")

    assert missing.value.error.code == "FILE_NOT_FOUND"
    assert directory.value.error.code == "INVALID_PATH"
    assert not_markdown.value.error.code == "INVALID_PATH"
    assert write_missing.value.error.code == "FILE_NOT_FOUND"
    assert not (tmp_path / "missing.md").exists()


def test_list_markdown_documents_sorted_and_scoped(tmp_path):
    (tmp_path / "b" / "nested").mkdir(parents=True)
    (tmp_path / ".git").mkdir()
    (tmp_path / "a.md").write_text("A", encoding="utf-8")
    (tmp_path / "b" / "nested" / "c.markdown").write_text("C", encoding="utf-8")
    (tmp_path / "b" / "skip.txt").write_text("no", encoding="utf-8")
    (tmp_path / ".git" / "x.md").write_text("no", encoding="utf-8")
    store = DocumentStore(tmp_path)

    assert store.list_markdown_documents() == ["a.md", "b/nested/c.markdown"]
    assert store.list_markdown_documents("b") == ["b/nested/c.markdown"]
    assert store.list_markdown_documents("missing") == []
