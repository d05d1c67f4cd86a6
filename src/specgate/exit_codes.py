"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specgate.exceptions.SpecgateError` subclass.
CI scripts can inspect the exit code to tell a broken contract definition
apart from a contract violation without parsing stderr.

Example::

    $ specgate validate exchanges recorded.yaml
    $ echo $?
    8   # EXIT_CONTRACT_VIOLATION -- at least one exchange broke the contract
"""

EXIT_SUCCESS = 0
"""The command completed successfully and no violations were found."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_NO_MATCHING_OPERATION = 4
"""The exchange does not correspond to any documented operation."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while fetching a remote specification."""

EXIT_SPEC_LOAD_ERROR = 7
"""The OpenAPI specification could not be parsed, resolved, or validated."""

EXIT_CONTRACT_VIOLATION = 8
"""Validation completed and reported at least one violation."""
