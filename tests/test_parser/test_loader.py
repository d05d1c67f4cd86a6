"""Tests for specgate.parser.loader."""

from __future__ import annotations

import io
import json
import textwrap
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from specgate.exceptions import ConnectionError_, SpecLoadError, SpecLoadErrorKind
from specgate.models import SpecDocument
from specgate.parser.loader import (
    load_document,
    load_document_from,
    load_spec,
    parse_spec_text,
    validate_openapi_version,
)

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

MINIMAL_YAML = textwrap.dedent("""\
    openapi: "3.0.3"
    info:
      title: Minimal
      version: "1.0.0"
    paths:
      /ping:
        get:
          responses:
            "200":
              description: pong
""")


# ---------------------------------------------------------------------------
# load_document / load_document_from
# ---------------------------------------------------------------------------


class TestLoadDocument:
    def test_loads_yaml_text(self) -> None:
        document = load_document(MINIMAL_YAML)
        assert isinstance(document, SpecDocument)
        assert document.info.title == "Minimal"
        assert [op.key for op in document.operations] == ["GET /ping"]

    def test_loads_json_text(self) -> None:
        text = (FIXTURES_DIR / "products_api.json").read_text(encoding="utf-8")
        document = load_document(text)
        assert document.openapi_version == "3.1.0"

    def test_empty_text_rejected(self) -> None:
        with pytest.raises(SpecLoadError, match="empty"):
            load_document("   \n")

    def test_from_file(self) -> None:
        document = load_document_from(str(FIXTURES_DIR / "users_api.yaml"))
        assert document.info.title == "Users API"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecLoadError, match="not found"):
            load_document_from(str(tmp_path / "nope.yaml"))

    def test_from_stdin(self) -> None:
        with patch("sys.stdin", io.StringIO(MINIMAL_YAML)):
            document = load_document_from("-")
        assert document.info.title == "Minimal"

    def test_empty_stdin(self) -> None:
        with patch("sys.stdin", io.StringIO("")):
            with pytest.raises(SpecLoadError, match="stdin"):
                load_document_from("-")


# ---------------------------------------------------------------------------
# Remote specs
# ---------------------------------------------------------------------------


class TestLoadFromUrl:
    URL = "https://example.com/openapi.yaml"

    def _response(self, text: str, content_type: str = "application/yaml") -> httpx.Response:
        return httpx.Response(
            200,
            text=text,
            headers={"content-type": content_type},
            request=httpx.Request("GET", self.URL),
        )

    def test_fetches_and_parses(self) -> None:
        with patch("specgate.parser.loader.httpx.get", return_value=self._response(MINIMAL_YAML)):
            raw = load_spec(self.URL)
        assert raw["info"]["title"] == "Minimal"

    def test_http_error_is_load_error(self) -> None:
        response = httpx.Response(404, request=httpx.Request("GET", self.URL))
        with patch("specgate.parser.loader.httpx.get", return_value=response):
            with pytest.raises(SpecLoadError, match="HTTP 404"):
                load_spec(self.URL)

    def test_network_error_is_connection_error(self) -> None:
        error = httpx.ConnectError("refused", request=httpx.Request("GET", self.URL))
        with patch("specgate.parser.loader.httpx.get", side_effect=error):
            with pytest.raises(ConnectionError_):
                load_spec(self.URL)

    def test_cache_hit_skips_network(self) -> None:
        cache = MagicMock()
        cache.get.return_value = {"text": MINIMAL_YAML, "hint": "yaml"}
        with patch("specgate.parser.loader.httpx.get") as get:
            raw = load_spec(self.URL, cache=cache)
        get.assert_not_called()
        assert raw["openapi"] == "3.0.3"

    def test_cache_miss_stores_text(self) -> None:
        cache = MagicMock()
        cache.get.return_value = None
        with patch("specgate.parser.loader.httpx.get", return_value=self._response(MINIMAL_YAML)):
            load_spec(self.URL, cache=cache)
        cache.set.assert_called_once_with(self.URL, {"text": MINIMAL_YAML, "hint": "yaml"})


# ---------------------------------------------------------------------------
# parse_spec_text
# ---------------------------------------------------------------------------


class TestParseSpecText:
    def test_json(self) -> None:
        assert parse_spec_text('{"openapi": "3.0.0"}') == {"openapi": "3.0.0"}

    def test_yaml(self) -> None:
        assert parse_spec_text("openapi: '3.0.0'\n") == {"openapi": "3.0.0"}

    def test_invalid_json_with_json_hint(self) -> None:
        with pytest.raises(SpecLoadError, match="Invalid JSON"):
            parse_spec_text("{not json", hint="json")

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(SpecLoadError, match="object"):
            parse_spec_text(json.dumps([1, 2, 3]))

    def test_garbage_rejected(self) -> None:
        with pytest.raises(SpecLoadError):
            parse_spec_text("key: [unclosed")


# ---------------------------------------------------------------------------
# validate_openapi_version
# ---------------------------------------------------------------------------


class TestValidateOpenapiVersion:
    @pytest.mark.parametrize("version", ["3.0.0", "3.0.3", "3.1.0"])
    def test_accepts_3x(self, version: str) -> None:
        assert validate_openapi_version({"openapi": version}) == version

    def test_rejects_swagger(self) -> None:
        with pytest.raises(SpecLoadError, match="Swagger 2.0"):
            validate_openapi_version({"swagger": "2.0"})

    def test_rejects_missing(self) -> None:
        with pytest.raises(SpecLoadError, match="Missing 'openapi'"):
            validate_openapi_version({})

    def test_rejects_future_major(self) -> None:
        with pytest.raises(SpecLoadError, match="Unsupported"):
            validate_openapi_version({"openapi": "4.0.0"})


# ---------------------------------------------------------------------------
# Malformed document sections
# ---------------------------------------------------------------------------


def _document_with(**overrides: Any) -> str:
    operation: dict[str, Any] = {"responses": {"200": {"description": "ok"}}}
    operation.update(overrides.pop("operation", {}))
    raw: dict[str, Any] = {
        "openapi": "3.0.3",
        "info": {"title": "T", "version": "1"},
        "paths": {"/items": {"post": operation}},
    }
    raw.update(overrides)
    return json.dumps(raw)


class TestMalformedSections:
    @pytest.mark.parametrize(
        ("text", "section"),
        [
            (_document_with(info="nope"), "info"),
            (_document_with(components=[1]), "components"),
            (_document_with(operation={"responses": [1]}), "responses"),
            (
                _document_with(operation={"responses": {"200": {"description": "ok", "content": [1]}}}),
                "content",
            ),
            (
                _document_with(operation={"responses": {"200": {"description": "ok", "headers": [1]}}}),
                "headers",
            ),
            (_document_with(operation={"requestBody": {"content": [1]}}), "requestBody content"),
            (
                _document_with(
                    operation={"parameters": [{"name": "q", "in": "query", "content": "x"}]}
                ),
                "content",
            ),
        ],
        ids=["info", "components", "responses", "response-content", "headers", "body-content",
             "parameter-content"],
    )
    def test_non_object_section_is_malformed(self, text: str, section: str) -> None:
        with pytest.raises(SpecLoadError, match=section) as exc_info:
            load_document(text)
        assert exc_info.value.kind == SpecLoadErrorKind.MALFORMED_DOCUMENT
