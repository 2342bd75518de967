#!/usr/bin/env python3
"""Tests for code block matching and rendering."""

from typing import Any, Optional

from cursor_chat_log.code_blocks import (
    CODE_BLOCK_MATCHERS,
    MISSING_TABLE_HEADER,
    STATUS_FOUND,
    STATUS_INLINE_FALLBACK,
    find_code_block,
    lookup_key,
    match_exact_version,
    match_single_version_candidate,
    match_version_and_index,
    render_code_blocks,
    resolve_code_block,
)
from cursor_chat_log.factories import create_bubble, create_code_block_data
from cursor_chat_log.models import (
    BubbleUri,
    CodeBlockDetail,
    CodeBlockRef,
    DetailsDir,
    LineKind,
)

APP_URI = {"fsPath": "/home/u/proj/app.py", "external": "file:///home/u/proj/app.py"}
APP_KEY = "file:///home/u/proj/app.py"


def _ref(version: Optional[int] = 1, idx: Optional[int] = None) -> CodeBlockRef:
    return CodeBlockRef(
        uri=BubbleUri(fsPath="/p/a.py", external="file:///p/a.py"),
        version=version,
        codeBlockIdx=idx,
    )


def _render(
    code_blocks: list[dict[str, Any]],
    code_block_data: Optional[dict[str, Any]],
    details_dir: DetailsDir,
):
    bubble = create_bubble({"type": 2, "codeBlocks": code_blocks})
    return render_code_blocks(
        bubble, create_code_block_data(code_block_data), details_dir
    )


class TestMatchers:
    def test_exact_version(self):
        candidates = [
            CodeBlockDetail(version=0, content="old"),
            CodeBlockDetail(version=1, content="new"),
        ]
        match = match_exact_version(_ref(version=1), 1, candidates)
        assert match is not None and match.content == "new"
        assert match_exact_version(_ref(version=2), 2, candidates) is None

    def test_version_and_index(self):
        candidates = [
            CodeBlockDetail(version=1, codeBlockIdx=0, content="zero"),
            CodeBlockDetail(version=1, codeBlockIdx=1, content="one"),
        ]
        match = match_version_and_index(_ref(version=1, idx=1), 1, candidates)
        assert match is not None and match.content == "one"

    def test_version_and_index_needs_declared_index(self):
        candidates = [CodeBlockDetail(version=1, codeBlockIdx=0)]
        assert match_version_and_index(_ref(version=1), 1, candidates) is None

    def test_single_version_candidate(self):
        candidates = [
            CodeBlockDetail(version=1, content="only"),
            CodeBlockDetail(version=2, content="other"),
        ]
        match = match_single_version_candidate(_ref(version=1), 1, candidates)
        assert match is not None and match.content == "only"

    def test_single_version_candidate_rejects_ambiguity(self):
        candidates = [
            CodeBlockDetail(version=1, content="a"),
            CodeBlockDetail(version=1, content="b"),
        ]
        assert match_single_version_candidate(_ref(version=1), 1, candidates) is None

    def test_tier_order(self):
        assert CODE_BLOCK_MATCHERS == (
            match_exact_version,
            match_version_and_index,
            match_single_version_candidate,
        )

    def test_same_version_different_index_is_known_ambiguous(self):
        # The exact-version tier runs first and accepts the first candidate
        # with the version, so the declared index is not consulted here.
        candidates = [
            CodeBlockDetail(version=1, codeBlockIdx=0, content="zero"),
            CodeBlockDetail(version=1, codeBlockIdx=1, content="one"),
        ]
        match = find_code_block(
            _ref(version=1, idx=1), 1, {"file:///p/a.py": candidates}
        )
        assert match in candidates
        assert match is not None and match.version == 1

    def test_missing_key(self):
        assert find_code_block(_ref(), 1, {"file:///other.py": []}) is None

    def test_lookup_key_prefers_external(self):
        assert lookup_key(_ref()) == "file:///p/a.py"
        assert lookup_key(CodeBlockRef(uri=BubbleUri(fsPath="/p/b.py"))) == "/p/b.py"
        assert lookup_key(CodeBlockRef()) is None


class TestResolve:
    def test_found_block_is_file_backed(self):
        data = {"file:///p/a.py": [CodeBlockDetail(version=1, content="x = 1")]}
        resolved, detail = resolve_code_block(_ref(version=1), 0, data)
        assert resolved is not None and detail is not None
        assert resolved.status == STATUS_FOUND
        assert resolved.filename == "code_block_a.py_idx0_v1.pytxt"

    def test_missing_version_defaults_to_zero(self):
        data = {"file:///p/a.py": [CodeBlockDetail(version=0, content="v0")]}
        resolved, _ = resolve_code_block(_ref(version=None), 2, data)
        assert resolved is not None
        assert resolved.filename == "code_block_a.py_idx2_v0.pytxt"

    def test_nothing_found(self):
        resolved, detail = resolve_code_block(_ref(), 0, {})
        assert resolved is None and detail is None


class TestRender:
    def test_resolved_block(self, details_dir):
        lines = _render(
            [{"uri": APP_URI, "version": 2, "languageId": "python"}],
            {
                APP_KEY: [
                    {
                        "uri": {"fsPath": "/home/u/proj/app.py"},
                        "version": 2,
                        "content": "print(1)",
                        "status": "accepted",
                    }
                ]
            },
            details_dir,
        )
        assert len(lines) == 1
        assert lines[0].kind == LineKind.CODE_REF
        assert lines[0].text == (
            "    [CODE BLOCK] #1 [accepted] Lang: python, Path: /home/u/proj/app.py. "
            "(Full code: ./chat_details/code_block_app.py_idx0_v2.pytxt)"
        )
        assert lines[0].side_file is not None
        assert lines[0].side_file.path == (
            details_dir.path / "code_block_app.py_idx0_v2.pytxt"
        )
        assert lines[0].side_file.content == "print(1)"

    def test_small_resolved_block_still_file_backed(self, details_dir):
        lines = _render(
            [{"uri": APP_URI, "version": 1}],
            {APP_KEY: [{"version": 1, "content": "x"}]},
            details_dir,
        )
        assert lines[0].side_file is not None
        assert "[found_in_data] Lang: unknown" in lines[0].text

    def test_declared_index_used_for_numbering(self, details_dir):
        lines = _render(
            [{"uri": APP_URI, "version": 1, "codeBlockIdx": 3}],
            {APP_KEY: [{"version": 1, "content": "x"}]},
            details_dir,
        )
        assert lines[0].text.startswith("    [CODE BLOCK] #4 ")
        assert "code_block_app.py_idx3_v1.pytxt" in lines[0].text

    def test_small_embedded_content_inline(self, details_dir):
        lines = _render(
            [{"languageId": "python", "content": "x = 1", "version": 1}],
            {},
            details_dir,
        )
        assert [line.text for line in lines] == [
            f"    [CODE BLOCK] #1 [{STATUS_INLINE_FALLBACK}] Lang: python, Path: inline/unknown [INLINE CODE]",
            "      ```python\nx = 1\n      ```",
        ]
        assert all(line.side_file is None for line in lines)

    def test_long_embedded_content_file_backed(self, details_dir):
        content = "\n".join(["line"] * 11)
        lines = _render(
            [{"languageId": "python", "content": content, "version": 1}],
            {},
            details_dir,
        )
        assert len(lines) == 1
        assert lines[0].text == (
            "    [CODE BLOCK] #1 [inline_fallback] Lang: python, Path: inline/unknown. "
            "(Full code: ./chat_details/code_block_inline_0_v1.pythontxt)"
        )
        assert lines[0].side_file is not None
        assert lines[0].side_file.content == content

    def test_large_embedded_content_without_language(self, details_dir):
        lines = _render([{"content": "y" * 300}], {}, details_dir)
        assert lines[0].side_file is not None
        assert lines[0].side_file.path.name == "code_block_inline_0_v0.log"

    def test_not_found(self, details_dir):
        lines = _render(
            [{"uri": {"fsPath": "/p/a.ts"}, "languageId": "typescript", "version": 1}],
            {},
            details_dir,
        )
        assert [line.text for line in lines] == [
            "    [CODE BLOCK] #1 [not found] Lang: typescript, Path: /p/a.ts. (Content not found)"
        ]
        assert lines[0].kind == LineKind.CODE_NOT_FOUND
        assert lines[0].side_file is None

    def test_missing_table_lists_blocks(self, details_dir):
        lines = _render(
            [
                {"uri": {"fsPath": "/p/a.py"}, "languageId": "python"},
                {"uri": {"path": "/p/b.md"}},
                {"content": "z"},
            ],
            None,
            details_dir,
        )
        assert [line.text for line in lines] == [
            MISSING_TABLE_HEADER,
            "     - Lang: python, Path: /p/a.py",
            "     - Lang: unknown, Path: /p/b.md",
            "     - Lang: unknown, Path: no path",
        ]
        assert all(line.side_file is None for line in lines)

    def test_no_code_blocks(self, details_dir):
        assert _render([], None, details_dir) == []
