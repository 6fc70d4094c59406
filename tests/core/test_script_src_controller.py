# tests/core/test_script_src_controller.py
import pickle
from pathlib import Path

import pytest

from scriptsrc.controllers.script_src_controller import (
    ScriptSrcController,
    add_from_html_file,
    expand_patterns,
    script_src_from_html_file,
    script_src_from_html_file_glob,
    script_src_from_html_files,
)
from scriptsrc.errors import DocumentError, ParseFailure, ScriptSrcAggregateError
from scriptsrc.model import ScriptSrc
from scriptsrc.services.digest_service import HashAlgorithm, compute_digest

CLOUDFLARE = "https://challenges.cloudflare.com"


def _write(directory: Path, name: str, content: str) -> str:
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return str(path)


@pytest.fixture
def site(tmp_path):
    """A small static site: two good pages and one with a broken script tag."""
    return {
        "a": _write(tmp_path, "a.html", '<script src="https://cdn.a.example/x.js"></script><script>a()</script>'),
        "b": _write(tmp_path, "sub/b.html", '<script src="local.js"></script><button onclick="b()">b</button>'),
        "bad": _write(tmp_path, "bad.html", "<script>ok()</script><script></script>"),
    }


def test_single_file(fixtures_dir):
    script_src = script_src_from_html_file(str(fixtures_dir / "index.html"))
    assert script_src.self_ is False
    assert script_src.hosts == [CLOUDFLARE]
    assert len(script_src.hashes) == 3


def test_single_file_sha256(fixtures_dir):
    script_src = script_src_from_html_file(str(fixtures_dir / "index.html"), hash_algorithm=HashAlgorithm.SHA256)
    assert all(token.startswith("sha256-") for token in script_src.hashes)
    assert compute_digest("alert('Hello')", HashAlgorithm.SHA256) in script_src.hashes


def test_combined_documents(fixtures_dir):
    index_only = script_src_from_html_file(str(fixtures_dir / "index.html"))
    combined = script_src_from_html_files([
        str(fixtures_dir / "index.html"),
        str(fixtures_dir / "just-self.html"),
    ])
    assert combined.self_ is True
    assert combined.hashes == index_only.hashes
    assert combined.hosts == index_only.hosts
    assert combined.format() == "'self' " + index_only.format()


def test_batch_collects_every_error(site, tmp_path):
    missing = str(tmp_path / "missing.html")
    controller = ScriptSrcController()
    with pytest.raises(ScriptSrcAggregateError) as exc_info:
        controller.process_files([site["bad"], site["a"], missing])

    errors = exc_info.value.errors
    assert [e.path for e in errors] == [site["bad"], missing]
    assert "failed to process" in str(errors[0])
    assert "failed to read" in str(errors[1])
    assert all(isinstance(e, DocumentError) for e in errors)


def test_batch_continues_past_failures(site):
    script_src = ScriptSrc()
    controller = ScriptSrcController()
    with pytest.raises(ScriptSrcAggregateError):
        controller.process_files([site["bad"], site["a"]], script_src)
    # The good file after the bad one was still processed
    assert script_src.hosts == ["https://cdn.a.example"]
    assert script_src.hashes == [compute_digest("a()")]


def test_failing_file_leaves_policy_untouched(site):
    script_src = ScriptSrc()
    with pytest.raises(DocumentError) as exc_info:
        add_from_html_file(site["bad"], script_src)
    assert exc_info.value.path == site["bad"]
    assert script_src.is_empty


def test_invalid_utf8_is_a_parse_failure(tmp_path):
    path = tmp_path / "latin1.html"
    path.write_bytes(b"<script>caf\xe9()</script>")
    with pytest.raises(ParseFailure) as exc_info:
        add_from_html_file(str(path), ScriptSrc())
    assert str(path) in str(exc_info.value)


def test_on_file_callback_sees_every_path(site):
    seen = []
    ScriptSrcController(on_file=seen.append).process_files([site["a"], site["b"]])
    assert seen == [site["a"], site["b"]]


def test_parallel_matches_sequential(site, tmp_path):
    paths = [
        site["b"],
        _write(tmp_path, "c.html", "<script>c()</script><script src='https://cdn.c.example/c.js'></script>"),
        site["a"],
        _write(tmp_path, "d.html", "<script>a()</script><div onclick='d()'></div>"),
    ]
    sequential = ScriptSrcController().process_files(paths)
    parallel = ScriptSrcController(workers=3).process_files(paths)
    assert parallel.format() == sequential.format()


def test_parallel_reports_errors_in_input_order(site, tmp_path):
    missing = str(tmp_path / "nope.html")
    with pytest.raises(ScriptSrcAggregateError) as exc_info:
        ScriptSrcController(workers=2).process_files([missing, site["a"], site["bad"]])
    assert [e.path for e in exc_info.value.errors] == [missing, site["bad"]]


def test_document_error_pickles():
    error = ParseFailure("x.html", ValueError("boom"))
    restored = pickle.loads(pickle.dumps(error))
    assert isinstance(restored, ParseFailure)
    assert restored.path == "x.html"
    assert str(restored) == str(error)


def test_glob_recursive(tmp_path):
    _write(tmp_path, "one.html", "<script>one()</script>")
    _write(tmp_path, "nested/deeper/two.html", "<script src='two.js'></script>")
    script_src = script_src_from_html_file_glob(str(tmp_path / "**" / "*.html"))
    assert script_src.self_ is True
    assert script_src.hashes == [compute_digest("one()")]


def test_expand_patterns_keeps_literal_paths(tmp_path):
    _write(tmp_path, "b.html", "")
    _write(tmp_path, "a.html", "")
    literal = str(tmp_path / "does-not-exist.html")
    paths = expand_patterns([str(tmp_path / "*.html"), literal])
    assert paths == [str(tmp_path / "a.html"), str(tmp_path / "b.html"), literal]


def test_deep_document_does_not_hide_other_errors(site, tmp_path):
    deep = _write(tmp_path, "deep.html", "<div>" * 3000 + "<script>deep()</script>" + "</div>" * 3000)
    script_src = ScriptSrc()
    with pytest.raises(ScriptSrcAggregateError) as exc_info:
        ScriptSrcController().process_files([deep, site["bad"]], script_src)
    assert [e.path for e in exc_info.value.errors] == [site["bad"]]
    assert script_src.hashes == [compute_digest("deep()")]


def test_crlf_file_hashes_like_markup(tmp_path):
    path = tmp_path / "crlf.html"
    path.write_bytes(b"<script>a();\r\nb();</script>")
    assert script_src_from_html_file(str(path)).hashes == [compute_digest("a();\nb();")]
