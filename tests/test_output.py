"""Tests for the output formatting system.

Covers:
- OutputFormat resolution (auto -> rich/plain based on TTY)
- NO_COLOR / TERM=dumb colour disabling
- stdout vs stderr discipline and quiet/verbose rules
- print_table and print_violations in JSON and plain modes
- Global instance management
"""

from __future__ import annotations

import json

import pytest

from specgate import output as output_module
from specgate.models import Violation, ViolationKind
from specgate.output import (
    OutputFormat,
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)

VIOLATIONS = [
    Violation(path="", message="no operation", kind=ViolationKind.UNKNOWN_OPERATION),
    Violation(path=".users[0].id", message="expected integer", kind=ViolationKind.TYPE_MISMATCH),
]


@pytest.fixture()
def non_tty(monkeypatch):
    monkeypatch.setattr("specgate.output._is_tty", lambda: False)


@pytest.fixture()
def tty(monkeypatch):
    monkeypatch.setattr("specgate.output._is_tty", lambda: True)


class TestOutputFormatResolution:
    def test_auto_resolves_to_plain_when_not_tty(self, non_tty):
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.PLAIN

    def test_auto_resolves_to_rich_when_tty(self, tty, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        assert OutputManager(format=OutputFormat.AUTO).format == OutputFormat.RICH

    def test_auto_is_plain_on_tty_without_colour(self, tty):
        assert OutputManager(format=OutputFormat.AUTO, no_color=True).format == OutputFormat.PLAIN

    def test_explicit_format_kept(self, non_tty):
        assert OutputManager(format=OutputFormat.JSON).format == OutputFormat.JSON


class TestColourDisabling:
    def test_no_color_env(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_default_enabled(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStreams:
    def test_diagnostics_go_to_stderr(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.info("loading")
        mgr.warning("careful")
        mgr.error("broken")
        mgr.suggest("try again")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "loading" in captured.err
        assert "Warning: careful" in captured.err
        assert "Error: broken" in captured.err
        assert "→ try again" in captured.err

    def test_quiet_suppresses_info_not_errors(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        mgr.info("loading")
        mgr.success("done")
        mgr.error("broken")
        err = capsys.readouterr().err
        assert "loading" not in err
        assert "done" not in err
        assert "Error: broken" in err

    def test_debug_needs_verbose(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).debug("hidden")
        OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True).debug("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "[debug] shown" in err


class TestDataOutput:
    def test_format_data_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).format_data({"title": "Users API", "operations": 5})
        assert json.loads(capsys.readouterr().out) == {"title": "Users API", "operations": 5}

    def test_format_data_plain_dict(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).format_data({"a": 1, "b": "x"})
        assert capsys.readouterr().out == "a\t1\nb\tx\n"

    def test_print_table_json(self, capsys):
        mgr = OutputManager(format=OutputFormat.JSON)
        mgr.print_table(["Method", "Path"], [["GET", "/users"], ["POST", "/users"]])
        assert json.loads(capsys.readouterr().out) == [
            {"Method": "GET", "Path": "/users"},
            {"Method": "POST", "Path": "/users"},
        ]

    def test_print_table_plain(self, capsys):
        mgr = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        mgr.print_table(["Method", "Path"], [["GET", "/users"]])
        assert capsys.readouterr().out == "Method\tPath\nGET\t/users\n"


class TestPrintViolations:
    def test_plain_rows_with_root_marker(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_violations(VIOLATIONS)
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "path\tkind\tmessage"
        assert lines[1] == "<root>\tUnknownOperation\tno operation"
        assert lines[2] == ".users[0].id\tTypeMismatch\texpected integer"

    def test_json_records(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_violations(VIOLATIONS[1:])
        assert json.loads(capsys.readouterr().out) == [
            {"path": ".users[0].id", "kind": "TypeMismatch", "message": "expected integer"}
        ]

    def test_empty_prints_nothing_in_plain(self, capsys):
        OutputManager(format=OutputFormat.PLAIN, no_color=True).print_violations([])
        assert capsys.readouterr().out == ""

    def test_empty_prints_empty_list_in_json(self, capsys):
        OutputManager(format=OutputFormat.JSON).print_violations([])
        assert json.loads(capsys.readouterr().out) == []


class TestGlobalInstance:
    def test_lazy_default(self):
        reset_output()
        assert isinstance(get_output(), OutputManager)

    def test_set_and_convenience_functions(self, capsys):
        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True))
        output_module.print_data("hello")
        output_module.error("bad")
        captured = capsys.readouterr()
        assert captured.out == "hello\n"
        assert "Error: bad" in captured.err
