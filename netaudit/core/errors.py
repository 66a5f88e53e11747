# netaudit/core/errors.py
"""
Error taxonomy for an audit run.
Each error carries the process exit code the CLI reports for it.
"""


EXIT_OK = 0
EXIT_CONFIGURATION = 1
EXIT_INVALID_INSTANCE = 2
EXIT_NO_INPUT = 3
EXIT_DISPATCH = 4


class NetAuditError(Exception):
    """Base class for errors that terminate an audit run."""

    exit_code = EXIT_CONFIGURATION


class ConfigurationError(NetAuditError):
    """Invalid or incomplete run configuration."""

    exit_code = EXIT_CONFIGURATION


class NoInputError(ConfigurationError):
    """Neither a capture file nor an instance directory was given."""

    exit_code = EXIT_NO_INPUT


class InvalidInstancePath(NetAuditError):
    """No instance name can be derived from the instance directory."""

    exit_code = EXIT_INVALID_INSTANCE


class DispatchFailure(NetAuditError):
    """The processing stage reported failure or raised."""

    exit_code = EXIT_DISPATCH
