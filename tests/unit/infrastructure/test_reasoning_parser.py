"""Tests for reasoning parser (DeepSeek-R1, QwQ think blocks)."""

from src.infrastructure.llm.reasoning_parser import ReasoningParser


def _feed_all(chunks: list[str]) -> list[tuple[str, str]]:
    parser = ReasoningParser()
    out = []
    for chunk in chunks:
        out.extend(parser.feed(chunk))
    out.extend(parser.flush())
    return out


class TestReasoningParser:
    """Tests for incremental think-block splitting."""

    def test_plain_content_passes_through(self):
        """Plain content without think tags is emitted unchanged."""
        assert _feed_all(["Hello world"]) == [("content", "Hello world")]

    def test_whitespace_is_preserved(self):
        """Leading and trailing whitespace is never stripped."""
        assert _feed_all(["  indented\n"]) == [("content", "  indented\n")]

    def test_complete_think_block(self):
        """Think block in one chunk splits into thinking then content."""
        assert _feed_all(["<think>reasoning</think>answer"]) == [
            ("thinking", "reasoning"),
            ("content", "answer"),
        ]

    def test_tag_split_across_chunks(self):
        """An open tag cut between chunks is held until completed."""
        parser = ReasoningParser()
        assert parser.feed("before <thi") == [("content", "before ")]
        assert parser.feed("nk>deep</think>after") == [("thinking", "deep"), ("content", "after")]

    def test_unclosed_think_block_flushes_as_thinking(self):
        """Text after an unclosed open tag is reasoning."""
        assert _feed_all(["<think>still going"]) == [("thinking", "still going")]

    def test_partial_tag_at_end_flushes_as_text(self):
        """A dangling partial tag is emitted as ordinary text on flush."""
        assert _feed_all(["a <th"]) == [("content", "a "), ("content", "<th")]

    def test_lone_angle_bracket_not_held_forever(self):
        """A '<' that cannot start the tag is emitted straight away."""
        parser = ReasoningParser()
        assert parser.feed("x < y") == [("content", "x < y")]
