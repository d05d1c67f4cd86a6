"""Validate commands -- check observed traffic against the contract.

Provides the ``specgate validate`` sub-command group:

* ``request`` -- one request given on the command line.
* ``response`` -- one response given on the command line.
* ``exchanges`` -- a YAML/JSON file of recorded exchanges.

Every command exits with :data:`~specgate.exit_codes.EXIT_CONTRACT_VIOLATION`
when at least one violation is found, so CI pipelines can gate on it.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from pydantic import ValidationError

from specgate.commands._shared import load_active_document
from specgate.exceptions import InvalidUsageError, SpecgateError
from specgate.exit_codes import EXIT_CONTRACT_VIOLATION
from specgate.models import Exchange, ExchangeResult, ValidationResult
from specgate.output import (
    OutputFormat,
    error,
    format_data,
    get_output,
    info,
    print_violations,
    success,
)
from specgate.validation import ContractValidator

validate_app = typer.Typer(no_args_is_help=True)


# ------------------------------------------------------------------ #
# Argument parsing
# ------------------------------------------------------------------ #


def parse_pairs(items: list[str], separator: str, label: str) -> dict[str, Any]:
    """Parse ``key<sep>value`` arguments; repeated keys collect into lists.

    Raises:
        InvalidUsageError: If an item lacks the separator or has an empty key.
    """
    result: dict[str, Any] = {}
    for item in items:
        key, sep, value = item.partition(separator)
        key = key.strip()
        if not sep or not key:
            raise InvalidUsageError(f"Invalid {label} '{item}', expected KEY{separator}VALUE")
        value = value.strip() if separator == ":" else value
        existing = result.get(key)
        if existing is None:
            result[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            result[key] = [existing, value]
    return result


def parse_body(body: Optional[str]) -> Any:
    """Decode a ``--body`` value: inline JSON or ``@file`` holding JSON.

    Raises:
        InvalidUsageError: If the file is missing or the text is not JSON.
    """
    if body is None:
        return None
    text = body
    if body.startswith("@"):
        path = Path(body[1:]).expanduser()
        if not path.is_file():
            raise InvalidUsageError(f"Body file not found: {path}")
        text = path.read_text(encoding="utf-8")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"Body is not valid JSON: {exc}") from exc


def load_exchanges(path: Path) -> list[Exchange]:
    """Read one exchange or a list of exchanges from a YAML or JSON file.

    Raises:
        InvalidUsageError: If the file is missing, unparsable, or an entry
            does not describe an exchange.
    """
    if not path.is_file():
        raise InvalidUsageError(f"Exchange file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise InvalidUsageError(f"Cannot parse {path}: {exc}") from exc

    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        raise InvalidUsageError(f"{path} must hold an exchange or a list of exchanges")

    exchanges: list[Exchange] = []
    for index, entry in enumerate(data):
        try:
            exchanges.append(Exchange.model_validate(entry))
        except ValidationError as exc:
            raise InvalidUsageError(f"Exchange #{index + 1} in {path} is invalid: {exc}") from exc
    return exchanges


# ------------------------------------------------------------------ #
# Rendering
# ------------------------------------------------------------------ #


def _report(result: ValidationResult, what: str) -> None:
    if get_output().format == OutputFormat.JSON:
        format_data(result.model_dump(mode="json"))
    elif result.valid:
        success(f"{what} conforms to the contract.")
    else:
        print_violations(result.violations, title=f"{what}: {len(result.violations)} violation(s)")
    if not result.valid:
        raise typer.Exit(code=EXIT_CONTRACT_VIOLATION)


def _build_validator(ctx: typer.Context) -> ContractValidator:
    document, config = load_active_document(ctx)
    return ContractValidator(document, config.validation)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@validate_app.command("request")
def validate_request_command(
    ctx: typer.Context,
    method: str = typer.Option(..., "--method", "-m", help="HTTP method."),
    path: str = typer.Option(..., "--path", "-p", help="Request path, optionally with a query string."),
    query: list[str] = typer.Option([], "--query", help="Query parameter as KEY=VALUE (repeatable)."),
    header: list[str] = typer.Option([], "--header", "-H", help="Header as NAME:VALUE (repeatable)."),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="JSON body, or @file."),
) -> None:
    """Validate a single request.

    Example::

        specgate -s users.yaml validate request -m GET -p /users --query limit=10
        specgate validate request -m POST -p /products --body @product.json
    """
    try:
        query_params = parse_pairs(query, "=", "query parameter") if query else None
        headers = parse_pairs(header, ":", "header")
        parsed_body = parse_body(body)
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    validator = _build_validator(ctx)
    result = validator.validate_request(method, path, query_params, headers, parsed_body)
    _report(result, f"Request {method.upper()} {path}")


@validate_app.command("response")
def validate_response_command(
    ctx: typer.Context,
    method: str = typer.Option(..., "--method", "-m", help="HTTP method of the originating request."),
    path: str = typer.Option(..., "--path", "-p", help="Path of the originating request."),
    status: int = typer.Option(..., "--status", help="HTTP status code returned."),
    header: list[str] = typer.Option([], "--header", "-H", help="Header as NAME:VALUE (repeatable)."),
    body: Optional[str] = typer.Option(None, "--body", "-d", help="JSON body, or @file."),
) -> None:
    """Validate a single response.

    Example::

        specgate validate response -m GET -p /users --status 200 --body @users.json
    """
    try:
        headers = parse_pairs(header, ":", "header")
        parsed_body = parse_body(body)
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    validator = _build_validator(ctx)
    result = validator.validate_response(method, path, status, headers, parsed_body)
    _report(result, f"Response {status} to {method.upper()} {path}")


@validate_app.command("exchanges")
def validate_exchanges_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="YAML or JSON file of recorded exchanges."),
) -> None:
    """Validate recorded exchanges from a file.

    The file holds one exchange or a list of them, each with a ``request``
    (``method``, ``path``, ``query``, ``headers``, ``body``) and an optional
    ``response`` (``status_code``, ``headers``, ``body``).

    Example::

        specgate -s users.yaml validate exchanges traffic.yaml
    """
    try:
        exchanges = load_exchanges(file)
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    validator = _build_validator(ctx)
    results = [validator.validate_exchange(exchange) for exchange in exchanges]
    failing = [r for r in results if not r.valid]

    if get_output().format == OutputFormat.JSON:
        format_data([r.model_dump(mode="json") for r in results])
    else:
        for result in failing:
            print_violations(result.violations, title=_title(result))
        if failing:
            info(f"{len(failing)} of {len(results)} exchange(s) violated the contract.")
        else:
            success(f"All {len(results)} exchange(s) conform to the contract.")

    if failing:
        raise typer.Exit(code=EXIT_CONTRACT_VIOLATION)


def _title(result: ExchangeResult) -> str:
    target = f" ({result.operation})" if result.operation else ""
    return f"{result.method} {result.path}{target}"
