"""
Tests for tag normalization utilities
"""
import pytest
from core.errors import ValidationError
from utils.tag_extraction import (
    normalize_tag_name,
    dedupe_preserving_order,
    split_tag_string,
    parse_tag_input,
    merge_tag_lists,
    parse_auto_tags,
    parse_search_query,
)


@pytest.mark.unit
class TestNormalization:
    """Test trimming, lowercasing and splitting."""

    def test_normalize_tag_name(self):
        assert normalize_tag_name("  Blue_Eyes ") == "blue_eyes"
        assert normalize_tag_name(None) == ""

    def test_dedupe_preserving_order(self):
        assert dedupe_preserving_order(["b", "a", "", "b", "c", "a"]) == ["b", "a", "c"]

    def test_split_tag_string_collapses_case_and_whitespace(self):
        assert split_tag_string("Cat  blue_eyes\tCAT\n") == ["cat", "blue_eyes"]

    def test_split_tag_string_empty(self):
        assert split_tag_string("") == []
        assert split_tag_string("   ") == []


@pytest.mark.unit
class TestParseTagInput:
    """Test parsing of user-typed tag lists."""

    def test_parses_tags(self):
        assert parse_tag_input("cat Blue_Eyes") == ["cat", "blue_eyes"]

    def test_empty_input_rejected(self):
        with pytest.raises(ValidationError) as exc:
            parse_tag_input("   ")
        assert exc.value.status_code == 400

    def test_empty_input_allowed_for_edits(self):
        assert parse_tag_input("", allow_empty=True) == []

    def test_leading_dash_rejected(self):
        with pytest.raises(ValidationError):
            parse_tag_input("cat -dog")

    def test_merge_user_first_then_auto(self):
        merged = merge_tag_lists(["Cat", "blue_eyes"], ["outdoor", "cat", "sky"])
        assert merged == ["cat", "blue_eyes", "outdoor", "sky"]


@pytest.mark.unit
class TestParseAutoTags:
    """Test turning free-text model output into tags."""

    def test_space_separated(self):
        assert parse_auto_tags("1girl cat_ears Blue_Hair smile") == [
            "1girl", "cat_ears", "blue_hair", "smile"
        ]

    def test_comma_separated_phrases_become_underscored(self):
        assert parse_auto_tags("blue eyes, long hair, cat") == ["blue_eyes", "long_hair", "cat"]

    def test_newline_separated(self):
        assert parse_auto_tags("cat\nsunny day\n") == ["cat", "sunny_day"]

    def test_punctuation_and_quotes_stripped(self):
        assert parse_auto_tags('"cat." dog! (tree)') == ["cat", "dog", "tree"]

    def test_colon_kept_and_underscores_collapsed(self):
        assert parse_auto_tags("rating:safe __big___cat__") == ["rating:safe", "big_cat"]

    def test_duplicates_and_empty_tokens_dropped(self):
        assert parse_auto_tags("cat , , CAT; !!") == ["cat"]

    def test_max_tags(self):
        assert parse_auto_tags("a b c d e", max_tags=3) == ["a", "b", "c"]

    def test_empty(self):
        assert parse_auto_tags("") == []
        assert parse_auto_tags(None) == []


@pytest.mark.unit
class TestParseSearchQuery:
    """Test include/exclude splitting."""

    def test_include_and_exclude(self):
        assert parse_search_query("Cat -Blue_Eyes") == (["cat"], ["blue_eyes"])

    def test_bare_dash_ignored(self):
        assert parse_search_query("cat - dog") == (["cat", "dog"], [])

    def test_empty_query(self):
        assert parse_search_query("") == ([], [])

    def test_duplicates_collapse(self):
        assert parse_search_query("cat cat -dog -DOG") == (["cat"], ["dog"])
