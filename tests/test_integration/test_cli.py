"""End-to-end tests for the specgate command line."""

from __future__ import annotations

import json
import re
from pathlib import Path

import pytest

from specgate import __version__
from specgate.app import app

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
USERS = str(FIXTURES_DIR / "users_api.yaml")
PRODUCTS = str(FIXTURES_DIR / "products_api.json")

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def _strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


@pytest.fixture(autouse=True)
def _isolated(isolated_config: Path) -> Path:
    return isolated_config


class TestRoot:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specgate {__version__}" in result.output

    def test_help_lists_groups(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        output = _strip_ansi(result.output)
        for group in ("validate", "inspect", "config"):
            assert group in output


class TestValidateRequest:
    def test_conforming_request(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            [
                "-s", USERS, "validate", "request",
                "-m", "POST", "-p", "/users",
                "-d", '{"name": "Bob", "email": "bob@example.com"}',
            ],
        )
        assert result.exit_code == 0, result.output
        assert "conforms to the contract" in result.output

    def test_violation_exits_with_contract_code(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            ["--plain", "-s", USERS, "validate", "request", "-m", "GET", "-p", "/users", "--query", "limit=1000"],
        )
        assert result.exit_code == 8
        assert "query.limit\tRangeViolation" in result.output

    def test_query_from_path(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app, ["-s", USERS, "validate", "request", "-m", "GET", "-p", "/users?apiVersion=3"]
        )
        assert result.exit_code == 8
        assert "query.apiVersion" in result.output

    def test_json_output(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            ["--json", "-s", USERS, "validate", "request", "-m", "POST", "-p", "/users"],
        )
        assert result.exit_code == 8
        data = json.loads(result.stdout)
        assert data["valid"] is False
        assert data["violations"] == [
            {"path": "body", "message": "request body is required", "kind": "MissingRequiredField"}
        ]

    def test_unknown_operation(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app, ["--plain", "-s", USERS, "validate", "request", "-m", "GET", "-p", "/orders"]
        )
        assert result.exit_code == 8
        assert "UnknownOperation" in result.output

    def test_body_from_file(self, cli_runner, isolated_config: Path) -> None:
        body = isolated_config / "product.json"
        body.write_text(json.dumps({"name": "Lamp", "price": 12.5}))
        result = cli_runner.invoke(
            app,
            [
                "-s", PRODUCTS, "validate", "request",
                "-m", "POST", "-p", "/api/products",
                "-H", "X-Api-Key: secret", "-d", f"@{body}",
            ],
        )
        assert result.exit_code == 0, result.output

    def test_invalid_body_is_usage_error(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app, ["-s", USERS, "validate", "request", "-m", "POST", "-p", "/users", "-d", "{oops"]
        )
        assert result.exit_code == 2
        assert "not valid JSON" in result.output

    def test_malformed_header(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app, ["-s", USERS, "validate", "request", "-m", "GET", "-p", "/users", "-H", "NoColon"]
        )
        assert result.exit_code == 2


class TestValidateResponse:
    def test_conforming_response(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            [
                "-s", USERS, "validate", "response",
                "-m", "GET", "-p", "/health", "--status", "200", "-d", '{"status": "ok"}',
            ],
        )
        assert result.exit_code == 0, result.output

    def test_enum_violation(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            [
                "--plain", "-s", USERS, "validate", "response",
                "-m", "GET", "-p", "/health", "--status", "200", "-d", '{"status": "down"}',
            ],
        )
        assert result.exit_code == 8
        assert ".status\tEnumViolation" in result.output

    def test_undocumented_status(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            ["--json", "-s", USERS, "validate", "response", "-m", "GET", "-p", "/health", "--status", "500"],
        )
        assert result.exit_code == 8
        (violation,) = json.loads(result.stdout)["violations"]
        assert violation["kind"] == "UnknownOperation"
        assert violation["path"] == ""


class TestValidateExchanges:
    def test_recorded_file(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app, ["-s", USERS, "validate", "exchanges", str(FIXTURES_DIR / "exchanges.yaml")]
        )
        assert result.exit_code == 8
        assert "2 of 3 exchange(s) violated the contract." in _strip_ansi(result.output)

    def test_json_results(self, cli_runner) -> None:
        result = cli_runner.invoke(
            app,
            ["--json", "-s", USERS, "validate", "exchanges", str(FIXTURES_DIR / "exchanges.yaml")],
        )
        assert result.exit_code == 8
        data = json.loads(result.stdout)
        assert [entry["valid"] for entry in data] == [True, False, False]
        assert data[0]["operation"] == "GET /users"
        assert data[2]["operation"] is None
        assert data[2]["response"] is None

    def test_all_conforming(self, cli_runner, isolated_config: Path) -> None:
        path = isolated_config / "ok.json"
        path.write_text(json.dumps({
            "request": {"method": "GET", "path": "/health"},
            "response": {"status_code": 200, "body": {"status": "ok"}},
        }))
        result = cli_runner.invoke(app, ["-s", USERS, "validate", "exchanges", str(path)])
        assert result.exit_code == 0, result.output
        assert "All 1 exchange(s) conform" in _strip_ansi(result.output)

    def test_missing_file(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["-s", USERS, "validate", "exchanges", "missing.yaml"])
        assert result.exit_code == 2

    def test_invalid_entry(self, cli_runner, isolated_config: Path) -> None:
        path = isolated_config / "bad.yaml"
        path.write_text("- request: {path: /users}\n")
        result = cli_runner.invoke(app, ["-s", USERS, "validate", "exchanges", str(path)])
        assert result.exit_code == 2
        assert "Exchange #1" in _strip_ansi(result.output)


class TestSpecResolution:
    def test_no_spec(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["inspect", "info"])
        assert result.exit_code == 2
        assert "No spec given" in result.output

    def test_env_var(self, cli_runner, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECGATE_SPEC", PRODUCTS)
        result = cli_runner.invoke(app, ["--json", "inspect", "info"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["title"] == "Products API"

    def test_project_config(self, cli_runner, isolated_config: Path) -> None:
        (isolated_config / "specgate.json").write_text(json.dumps({"default_spec": USERS}))
        result = cli_runner.invoke(app, ["--json", "inspect", "info"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["title"] == "Users API"

    def test_cyclic_spec(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["-s", str(FIXTURES_DIR / "cyclic.yaml"), "inspect", "info"])
        assert result.exit_code == 7

    def test_unresolved_ref(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["-s", str(FIXTURES_DIR / "unresolved.yaml"), "inspect", "paths"])
        assert result.exit_code == 7
        assert "Widget" in result.output

    def test_missing_spec_file(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["-s", "nowhere.yaml", "inspect", "info"])
        assert result.exit_code == 7


class TestInspect:
    def test_paths(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "-s", USERS, "inspect", "paths"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        keys = [(row["Method"], row["Path"]) for row in rows]
        assert ("GET", "/users") in keys
        assert ("DELETE", "/users/{userId}") in keys
        delete = next(row for row in rows if row["Method"] == "DELETE")
        assert delete["Deprecated"] == "Yes"

    def test_schemas(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "-s", USERS, "inspect", "schemas"])
        assert result.exit_code == 0, result.output
        rows = {row["Schema"]: row for row in json.loads(result.stdout)}
        assert rows["Role"]["Type"] == "string"
        assert rows["UserList"]["Type"] == "object"

    def test_info(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--json", "-s", USERS, "inspect", "info"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["openapi_version"] == "3.0.3"
        assert data["servers"] == ["https://api.example.com/v1"]
        assert data["operations"] == 5


class TestConfigCommands:
    def test_set_and_show(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.ttl_seconds", "600"])
        assert result.exit_code == 0, result.output
        assert "Set cache.ttl_seconds = 600" in result.output

        result = cli_runner.invoke(app, ["--json", "config", "show"])
        assert result.exit_code == 0
        assert '"ttl_seconds": 600' in result.output

    def test_set_unknown_key(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["config", "set", "nope", "1"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.output

    def test_default_spec_used_by_commands(self, cli_runner) -> None:
        cli_runner.invoke(app, ["config", "set", "default_spec", USERS])
        result = cli_runner.invoke(app, ["--json", "inspect", "info"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["title"] == "Users API"

    def test_reset(self, cli_runner) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.enabled", "false"])
        result = cli_runner.invoke(app, ["config", "reset", "--yes"])
        assert result.exit_code == 0
        assert "reset to defaults" in result.output

        from specgate.config import load_global_config

        assert load_global_config().cache.enabled is True

    def test_reset_declined(self, cli_runner) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.enabled", "false"])
        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0

        from specgate.config import load_global_config

        assert load_global_config().cache.enabled is False
