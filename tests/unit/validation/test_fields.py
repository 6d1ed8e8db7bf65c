"""Tests for the field-level validators.

Required absence is an error, wrong type is an error when required and a
warning when optional, and a blank required string is only a warning.
"""

import pytest

from src.validation.fields import FieldChecker, is_number, type_name


@pytest.fixture
def checker() -> FieldChecker:
    return FieldChecker()


class TestTypeName:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, "null"), (True, "boolean"), (3, "number"), (1.5, "number"), ("x", "string"), ([], "array"), ({}, "object")],
    )
    def test_json_names(self, value, expected):
        assert type_name(value) == expected

    def test_bool_is_not_a_number(self):
        assert is_number(1) is True
        assert is_number(False) is False


class TestRequiredString:
    def test_missing_is_error_naming_field(self, checker):
        assert checker.required_string(None, "title") is None
        assert checker.errors == ['Required field "title" is missing']

    def test_wrong_type_is_error(self, checker):
        checker.required_string(42, "slug")
        assert "slug" in checker.errors[0]
        assert "number" in checker.errors[0]

    def test_blank_is_warning_not_error(self, checker):
        assert checker.required_string("   ", "title") == "   "
        assert checker.errors == []
        assert checker.warnings == ['Field "title" is empty']

    def test_valid_string_is_silent(self, checker):
        assert checker.required_string("Hello", "title") == "Hello"
        assert checker.errors == checker.warnings == []


class TestOptionalFields:
    def test_optional_string_default(self, checker):
        assert checker.optional_string(None, "subtitle", "n/a") == "n/a"
        assert checker.warnings == []

    def test_optional_string_wrong_type_warns(self, checker):
        assert checker.optional_string(["x"], "subtitle", "n/a") == "n/a"
        assert checker.errors == []
        assert "subtitle" in checker.warnings[0]

    def test_optional_boolean(self, checker):
        assert checker.optional_boolean(None, "featured") is False
        assert checker.optional_boolean(True, "featured") is True
        assert checker.optional_boolean("yes", "featured", default=True) is True
        assert len(checker.warnings) == 1

    def test_optional_number(self, checker):
        assert checker.optional_number(None, "displayOrder", 0) == 0
        assert checker.optional_number(3, "displayOrder") == 3
        assert checker.optional_number("3", "displayOrder", 7) == 7
        assert checker.errors == []
        assert len(checker.warnings) == 1


class TestArrays:
    def test_required_array_missing(self, checker):
        assert checker.required_array(None, "images") is None
        assert "images" in checker.errors[0]

    def test_required_array_wrong_type(self, checker):
        assert checker.required_array("a,b", "images") is None
        assert "must be an array" in checker.errors[0]

    def test_optional_array_default_is_fresh(self, checker):
        default = ["a"]
        result = checker.optional_array(None, "tags", default)
        result.append("b")
        assert default == ["a"]

    def test_optional_array_wrong_type_warns(self, checker):
        assert checker.optional_array({"a": 1}, "tags") == []
        assert checker.errors == []
        assert "tags" in checker.warnings[0]


class TestAssetReference:
    def test_resolved_asset_passes(self, checker):
        asset = {"sys": {"id": "a1"}, "fields": {"title": "Look"}}
        assert checker.asset_reference(asset, "featuredImage") is asset

    def test_missing_optional_is_silent(self, checker):
        assert checker.asset_reference(None, "featuredImage") is None
        assert checker.errors == checker.warnings == []

    def test_missing_required_is_error(self, checker):
        checker.asset_reference(None, "images[0]", required=True)
        assert "images[0]" in checker.errors[0]

    def test_unresolved_link_optional_warns(self, checker):
        link = {"sys": {"type": "Link", "linkType": "Asset", "id": "gone"}}
        assert checker.asset_reference(link, "featuredImage") is None
        assert checker.errors == []
        assert "invalid structure" in checker.warnings[0]

    def test_unresolved_link_required_errors(self, checker):
        link = {"sys": {"type": "Link", "linkType": "Asset", "id": "gone"}}
        checker.asset_reference(link, "images[1]", required=True)
        assert "invalid structure" in checker.errors[0]


class TestRichTextBlock:
    def test_document_passes(self, checker):
        doc = {"nodeType": "document", "content": []}
        assert checker.rich_text_block(doc, "content", required=True) is doc
        assert checker.errors == checker.warnings == []

    def test_missing_required_is_error(self, checker):
        assert checker.rich_text_block(None, "content", required=True) == ""
        assert 'rich text field "content"' in checker.errors[0]

    def test_document_without_content_warns(self, checker):
        checker.rich_text_block({"nodeType": "document"}, "content")
        assert "missing content array" in checker.warnings[0]

    def test_plain_string_is_warning(self, checker):
        assert checker.rich_text_block("<p>legacy</p>", "content", required=True) == "<p>legacy</p>"
        assert checker.errors == []
        assert "unexpected type" in checker.warnings[0]
