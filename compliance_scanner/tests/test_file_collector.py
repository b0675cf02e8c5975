import pytest

from compliance_scanner.app.scanner.file_collector import collect_files


def _write(root, relative, content="x"):
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_collects_in_sorted_posix_order(tmp_path):
    _write(tmp_path, "src/b.ts")
    _write(tmp_path, "src/a.ts")
    _write(tmp_path, "README.md")
    _write(tmp_path, ".env", "LOG_LEVEL=info")

    context = collect_files(tmp_path)

    assert [f.relative_path for f in context.files] == [
        ".env",
        "README.md",
        "src/a.ts",
        "src/b.ts",
    ]
    assert context.files[2].extension == ".ts"
    assert context.project_path == str(tmp_path.resolve())


def test_excluded_dirs_and_extensions(tmp_path):
    _write(tmp_path, "node_modules/pkg/index.js")
    _write(tmp_path, ".git/config.toml")
    _write(tmp_path, "image.png")
    _write(tmp_path, "go.mod", "module app")

    context = collect_files(tmp_path)

    assert [f.relative_path for f in context.files] == ["go.mod"]


def test_size_and_encoding_limits(tmp_path):
    _write(tmp_path, "big.md", "x" * 100)
    (tmp_path / "binary.txt").write_bytes(b"\xff\xfe\x00bad")
    _write(tmp_path, "small.md", "ok")

    context = collect_files(tmp_path, max_file_size=50)

    assert [f.relative_path for f in context.files] == ["small.md"]


def test_max_files(tmp_path):
    for name in ("a.md", "b.md", "c.md"):
        _write(tmp_path, name)

    context = collect_files(tmp_path, max_files=2)

    assert [f.relative_path for f in context.files] == ["a.md", "b.md"]


def test_rejects_missing_directory(tmp_path):
    with pytest.raises(NotADirectoryError):
        collect_files(tmp_path / "missing")
