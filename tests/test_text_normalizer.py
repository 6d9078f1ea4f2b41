"""Tests for text normalization service."""

from src.services import text_normalizer


def test_normalize_lines_strips_tags_entities_and_emoji() -> None:
    """Test HTML fragment becomes clean lines."""
    raw = "\U0001f680 <b>Token:</b> Foo&nbsp;(FOO)<br/>  Amount:   10 "
    assert text_normalizer.normalize_lines(raw) == ["Token: Foo (FOO)", "Amount: 10"]


def test_normalize_lines_block_tags_break_lines() -> None:
    """Test closing block tags act as line breaks."""
    raw = "<p>First</p><div>Second</div>Third"
    assert text_normalizer.normalize_lines(raw) == ["First", "Second", "Third"]


def test_normalize_lines_drops_empty_lines() -> None:
    """Test blank and emoji-only lines are removed."""
    raw = "One\n\n   \n\U0001f525\U0001f525\nTwo"
    assert text_normalizer.normalize_lines(raw) == ["One", "Two"]


def test_normalize_lines_double_encoded_entities() -> None:
    """Test entities hidden behind another encoding layer are decoded."""
    raw = "Rewards &amp;lt;b&amp;gt;big&amp;lt;/b&amp;gt;"
    assert text_normalizer.normalize_lines(raw) == ["Rewards big"]


def test_normalize_lines_empty_input() -> None:
    assert text_normalizer.normalize_lines(None) == []
    assert text_normalizer.normalize_lines("") == []


def test_normalize_text_is_idempotent() -> None:
    """Test normalizing twice equals normalizing once."""
    raw = "\U0001f525 <b>New</b>&nbsp;Binance Alpha Airdrop<br>Token:  Foo"
    once = text_normalizer.normalize_text(raw)
    assert text_normalizer.normalize_text(once) == once
    assert once == "New Binance Alpha Airdrop\nToken: Foo"


def test_strip_html_collapses_to_single_line() -> None:
    """Test page text extraction drops scripts and collapses whitespace."""
    page = "<html><script>var x = 1;</script><h1>Title</h1>\n<p>Body &amp; more</p></html>"
    assert text_normalizer.strip_html(page) == "Title Body & more"


def test_ensure_description_trims_and_truncates() -> None:
    assert text_normalizer.ensure_description("   ") is None
    assert text_normalizer.ensure_description(None) is None
    assert text_normalizer.ensure_description("  abc  ") == "abc"
    assert text_normalizer.ensure_description("abcdef", 3) == "abc"
