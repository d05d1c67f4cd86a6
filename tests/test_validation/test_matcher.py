"""Tests for specgate.validation.matcher."""

from __future__ import annotations

import pytest

from specgate.exceptions import AmbiguousMatch, NoMatchingOperation
from specgate.models import SpecDocument
from specgate.parser import load_document
from specgate.validation.matcher import OperationMatcher, split_path

AMBIGUOUS = """
openapi: "3.0.3"
info: {title: Ambiguous, version: "1"}
paths:
  /items/{id}:
    get:
      parameters:
        - {name: id, in: path, required: true, schema: {type: string}}
      responses: {"200": {description: ok}}
  /items/{slug}:
    get:
      parameters:
        - {name: slug, in: path, required: true, schema: {type: string}}
      responses: {"200": {description: ok}}
"""


class TestSplitPath:
    @pytest.mark.parametrize(
        ("path", "parts"),
        [
            ("/products/42", ["products", "42"]),
            ("/products/42/", ["products", "42"]),
            ("/", []),
            ("", []),
            ("/users?limit=5#top", ["users"]),
            ("http://localhost:8080/api/products?x=1", ["api", "products"]),
        ],
    )
    def test_split(self, path: str, parts: list[str]) -> None:
        assert split_path(path) == parts


class TestOperationMatcher:
    @pytest.fixture()
    def matcher(self, products_document: SpecDocument) -> OperationMatcher:
        return OperationMatcher(products_document)

    def test_literal_beats_placeholder(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "/products/active")
        assert result.operation.path == "/products/active"
        assert result.path_params == {}

    def test_placeholder_binds_value(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "/products/42")
        assert result.operation.path == "/products/{id}"
        assert result.path_params == {"id": "42"}

    def test_bound_value_is_percent_decoded(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "/products/a%20b")
        assert result.path_params == {"id": "a b"}

    def test_method_is_case_insensitive(self, matcher: OperationMatcher) -> None:
        assert matcher.match("post", "/products").operation.operation_id == "createProduct"

    def test_query_string_ignored(self, matcher: OperationMatcher) -> None:
        assert matcher.match("GET", "/products?tags=a,b").operation.path == "/products"

    def test_literal_segments_are_case_sensitive(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "/products/Active")
        assert result.operation.path == "/products/{id}"

    def test_wrong_method(self, matcher: OperationMatcher) -> None:
        with pytest.raises(NoMatchingOperation) as exc_info:
            matcher.match("DELETE", "/products/1")
        assert exc_info.value.method == "DELETE"
        assert exc_info.value.path == "/products/1"

    def test_segment_count_must_match(self, matcher: OperationMatcher) -> None:
        with pytest.raises(NoMatchingOperation):
            matcher.match("GET", "/products/1/reviews")

    def test_server_prefix_stripped(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "/api/products/7")
        assert result.operation.path == "/products/{id}"
        assert result.path_params == {"id": "7"}

    def test_full_url(self, matcher: OperationMatcher) -> None:
        result = matcher.match("GET", "http://localhost:8080/api/products/active")
        assert result.operation.path == "/products/active"

    def test_prefix_stripping_can_be_disabled(self, products_document: SpecDocument) -> None:
        matcher = OperationMatcher(products_document, strip_server_prefix=False)
        with pytest.raises(NoMatchingOperation):
            matcher.match("GET", "/api/products/7")

    def test_ambiguous_templates(self) -> None:
        matcher = OperationMatcher(load_document(AMBIGUOUS))
        with pytest.raises(AmbiguousMatch) as exc_info:
            matcher.match("GET", "/items/1")
        assert sorted(exc_info.value.candidates) == ["/items/{id}", "/items/{slug}"]
