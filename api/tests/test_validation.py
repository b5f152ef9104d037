"""Test tag, category, and comment input normalization."""

import pytest

from app.validation import parse_category, parse_tags, validate_comment_body


class TestParseTags:
    def test_bracketed_values_win(self):
        assert parse_tags(bracketed=["a", "b"], raw=["ignored"]) == ["a", "b"]

    def test_single_bracketed_value(self):
        assert parse_tags(bracketed=["solo"]) == ["solo"]

    def test_repeated_plain_field(self):
        assert parse_tags(raw=["python", "web"]) == ["python", "web"]

    def test_json_array_string(self):
        assert parse_tags(raw=['["python", " fastapi "]']) == ["python", "fastapi"]

    def test_json_string(self):
        assert parse_tags(raw=['"python"']) == ["python"]

    def test_plain_string_is_comma_split(self):
        assert parse_tags(raw=["python, web ,, api"]) == ["python", "web", "api"]

    def test_plain_word(self):
        assert parse_tags(raw=["python"]) == ["python"]

    def test_json_scalar_is_plain_text(self):
        assert parse_tags(raw=["2024"]) == ["2024"]

    def test_nothing_sent(self):
        assert parse_tags() == []
        assert parse_tags(bracketed=[], raw=None) == []

    def test_json_object_rejected(self):
        with pytest.raises(ValueError, match="Invalid tags format"):
            parse_tags(raw=['{"a": 1}'])

    def test_non_string_array_item_rejected(self):
        with pytest.raises(ValueError, match="Tags must be strings"):
            parse_tags(raw=['["ok", 3]'])


class TestParseCategory:
    def test_json_object(self):
        assert parse_category('{"name": " Tech News "}') == "Tech News"

    def test_dict(self):
        assert parse_category({"name": "Travel"}) == "Travel"

    def test_malformed_json(self):
        with pytest.raises(ValueError, match="Invalid category format"):
            parse_category("{not json")

    def test_non_object_json(self):
        with pytest.raises(ValueError, match="Invalid category format"):
            parse_category('["Tech"]')

    @pytest.mark.parametrize("raw", [None, "", '{"slug": "x"}', '{"name": "  "}'])
    def test_missing_name(self, raw):
        with pytest.raises(ValueError, match="Category is required"):
            parse_category(raw)


class TestCommentBody:
    def test_trimmed(self):
        assert validate_comment_body("  nice post  ") == "nice post"

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_required(self, content):
        with pytest.raises(ValueError, match="Comment content is required"):
            validate_comment_body(content)

    def test_limit_is_inclusive(self):
        assert validate_comment_body("x" * 1000) == "x" * 1000

    def test_too_long(self):
        with pytest.raises(ValueError, match="Maximum 1000 characters"):
            validate_comment_body("x" * 1001)
