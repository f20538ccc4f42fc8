"""Tests for the chunkers."""

import pytest

from docdrift.chunking import (
    ChunkKind,
    CodeChunker,
    LineWindowChunker,
    MarkdownChunker,
    chunk_document,
    classify,
)
from docdrift.chunking.base import StructuredParser
from docdrift.chunking.parsers import PythonAstParser, TreeSitterParser
from docdrift.config import IndexOptions
from docdrift.errors import ChunkingError

from conftest import CrashingParser

PY_SOURCE = (
    "import os\n"
    "x = 1\n"
    "\n"
    "@decorator\n"
    "def load_config(path):\n"
    "    return os.path.exists(path)\n"
    "\n"
    "class Loader:\n"
    "    def run(self):\n"
    "        return load_config('a')\n"
)


def assert_round_trip(content, chunks):
    lines = content.split("\n")
    for ch in chunks:
        assert "\n".join(lines[ch.start_line - 1:ch.end_line]) == ch.text


class TestClassify:
    def test_code_and_doc_extensions(self):
        assert classify("src/app.py") == (ChunkKind.CODE, "python")
        assert classify("web/app.tsx") == (ChunkKind.CODE, "tsx")
        assert classify("docs/Guide.MD") == (ChunkKind.DOC, "markdown")

    def test_unknown_extension(self):
        assert classify("notes.txt") == (None, None)
        assert chunk_document("hello world", "notes.txt") == []


class TestMarkdownChunker:
    def test_two_headings_give_two_chunks(self):
        content = "# A\nalpha text\n## B\nbeta text\n"
        chunks = MarkdownChunker().chunk(content, "docs/a.md")

        assert len(chunks) == 2
        assert (chunks[0].start_line, chunks[0].end_line) == (1, 2)
        assert chunks[1].start_line == 3
        assert [c.symbol for c in chunks] == ["A", "B"]
        assert all(c.kind is ChunkKind.DOC for c in chunks)
        assert_round_trip(content, chunks)

    def test_adjacent_headings(self):
        chunks = MarkdownChunker().chunk("# A\n## B", "a.md")
        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 1), (2, 2)]

    def test_preamble_before_first_heading(self):
        content = "Intro line\nmore intro\n\n# Title\nbody\n"
        chunks = MarkdownChunker().chunk(content, "README.md")

        assert len(chunks) == 2
        assert chunks[0].symbol is None
        assert chunks[0].start_line == 1
        assert chunks[0].end_line == 3
        assert chunks[1].symbol == "Title"
        assert_round_trip(content, chunks)

    def test_all_heading_levels(self):
        content = "\n".join(f"{'#' * n} H{n}\ntext" for n in range(1, 7))
        assert len(MarkdownChunker().chunk(content, "a.md")) == 6

    def test_hash_without_space_is_not_a_heading(self):
        chunks = MarkdownChunker().chunk("# Real\n#hashtag\n####### seven\n", "a.md")
        assert len(chunks) == 1

    def test_empty_file(self):
        assert MarkdownChunker().chunk("", "a.md") == []
        assert MarkdownChunker().chunk("  \n\n", "a.md") == []

    def test_ids_are_deterministic(self):
        content = "# A\nx\n# B\ny\n"
        first = MarkdownChunker().chunk(content, "a.md", last_modified=5.0)
        second = MarkdownChunker().chunk(content, "a.md", last_modified=5.0)
        assert first == second
        assert [c.id for c in first] == ["a.md#1", "a.md#3"]


class TestLineWindowChunker:
    def test_windows_with_overlap(self):
        content = "\n".join(f"line {i}" for i in range(1, 13))
        chunks = LineWindowChunker(chunk_lines=5, chunk_overlap=2).chunk(content, "a.py")

        assert [(c.start_line, c.end_line) for c in chunks] == [(1, 5), (4, 8), (7, 11), (10, 12)]
        assert [c.id for c in chunks] == ["a.py#L1", "a.py#L4", "a.py#L7", "a.py#L10"]
        assert_round_trip(content, chunks)

    def test_no_minimum_length(self):
        chunks = LineWindowChunker(chunk_lines=10).chunk("x", "a.py")
        assert len(chunks) == 1
        assert chunks[0].text == "x"

    def test_overlap_larger_than_window_still_advances(self):
        chunker = LineWindowChunker(chunk_lines=3, chunk_overlap=10)
        assert chunker.step == 1


class TestPythonChunking:
    def test_top_level_declarations(self):
        chunks = chunk_document(PY_SOURCE, "pkg/mod.py")
        ids = [c.id for c in chunks]

        assert ids == ["pkg/mod.py#function#load_config", "pkg/mod.py#class#Loader"]
        func = chunks[0]
        assert func.start_line == 4  # decorator line
        assert func.end_line == 6
        assert func.symbol == "load_config"
        assert func.language == "python"
        assert_round_trip(PY_SOURCE, chunks)

    def test_short_declarations_are_dropped(self):
        # "import os" and "x = 1" are under 10 characters
        symbols = [c.symbol for c in chunk_document(PY_SOURCE, "m.py")]
        assert "x" not in symbols

    def test_min_chars_is_configurable(self):
        opts = IndexOptions(min_chunk_chars=1)
        chunks = chunk_document(PY_SOURCE, "m.py", opts=opts)
        assert [c.id for c in chunks][:2] == ["m.py#import#1", "m.py#variable#x"]

    def test_syntax_error_falls_back_to_line_windows(self):
        content = "def broken(:\n    pass\n"
        chunks = chunk_document(content, "bad.py")

        assert len(chunks) == 1
        assert chunks[0].id == "bad.py#L1"
        assert chunks[0].kind is ChunkKind.CODE
        assert_round_trip(content, chunks)

    def test_module_without_declarations_uses_line_windows(self):
        chunks = chunk_document("print('hello world')\n", "script.py")
        assert [c.id for c in chunks] == ["script.py#L1"]

    def test_duplicate_names_get_unique_ids(self):
        content = "def handler():\n    return 1\n\ndef handler():\n    return 2\n"
        ids = [c.id for c in chunk_document(content, "dup.py")]
        assert ids == ["dup.py#function#handler", "dup.py#function#handler~1"]

    def test_empty_file_yields_nothing(self):
        assert chunk_document("", "empty.py") == []

    def test_deterministic(self):
        assert chunk_document(PY_SOURCE, "m.py", 3.0) == chunk_document(PY_SOURCE, "m.py", 3.0)


class ExplodingParser(StructuredParser):
    def supports(self, language):
        return True

    def parse(self, content, language):
        raise ChunkingError("grammar missing")


class TestCodeChunkerStrategy:
    def test_failing_parser_falls_back(self):
        chunker = CodeChunker(language="python", parsers=[ExplodingParser()], chunk_lines=2, chunk_overlap=0)
        chunks = chunker.chunk(PY_SOURCE, "m.py")

        assert chunks
        assert all("#L" in c.id for c in chunks)
        assert_round_trip(PY_SOURCE, chunks)

    def test_crashing_parser_falls_back(self):
        chunker = CodeChunker(language="python", parsers=[CrashingParser()])
        chunks = chunker.chunk(PY_SOURCE, "m.py")

        assert [c.id for c in chunks] == ["m.py#L1"]
        assert_round_trip(PY_SOURCE, chunks)

    def test_deeply_nested_python_falls_back(self):
        content = "x = " + "-" * 200000 + "1\n"
        chunks = chunk_document(content, "deep.py")

        assert [c.id for c in chunks] == ["deep.py#L1"]
        assert chunks[0].text == content

    def test_unsupported_language_uses_line_windows(self):
        chunker = CodeChunker(language="cobol", parsers=[PythonAstParser()])
        assert chunker.select_parser() is None
        assert [c.id for c in chunker.chunk("MOVE A TO B.", "x.cob")] == ["x.cob#L1"]


class TestTreeSitterChunking:
    SOURCE = (
        "import { readFile } from 'fs';\n"
        "\n"
        "export function greet(name: string): string {\n"
        "  return 'hello ' + name;\n"
        "}\n"
        "\n"
        "interface Person {\n"
        "  name: string;\n"
        "}\n"
    )

    @pytest.fixture
    def ts_parser(self):
        pytest.importorskip("tree_sitter_language_pack")
        parser = TreeSitterParser()
        try:
            parser._get_parser("typescript")
        except ChunkingError as e:
            pytest.skip(f"typescript grammar unavailable: {e}")
        return parser

    def test_typescript_declarations(self, ts_parser):
        decls = ts_parser.parse(self.SOURCE, "typescript")

        assert [(d.type, d.name) for d in decls] == [
            ("import", None),
            ("function", "greet"),
            ("interface", "Person"),
        ]
        greet = decls[1]
        assert (greet.start_line, greet.end_line) == (3, 5)
        assert (decls[2].start_line, decls[2].end_line) == (7, 9)

    def test_typescript_chunks_use_declarations(self, ts_parser):
        chunks = CodeChunker(language="typescript", parsers=[ts_parser]).chunk(self.SOURCE, "src/greet.ts")

        assert [c.id for c in chunks] == [
            "src/greet.ts#import#1",
            "src/greet.ts#function#greet",
            "src/greet.ts#interface#Person",
        ]
        assert_round_trip(self.SOURCE, chunks)

    def test_grammar_failure_is_remembered(self, monkeypatch):
        ts_pack = pytest.importorskip("tree_sitter_language_pack")
        calls = []

        def broken_get_parser(language):
            calls.append(language)
            raise RuntimeError("grammar download failed")

        monkeypatch.setattr(ts_pack, "get_parser", broken_get_parser)
        parser = TreeSitterParser()

        for _ in range(3):
            with pytest.raises(ChunkingError):
                parser.parse(self.SOURCE, "typescript")

        assert calls == ["typescript"]
        chunks = CodeChunker(language="typescript", parsers=[parser]).chunk(self.SOURCE, "src/greet.ts")
        assert [c.id for c in chunks] == ["src/greet.ts#L1"]
