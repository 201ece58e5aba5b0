"""Exception hierarchy for flagkit.

All exceptions inherit from :class:`FlagkitError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`flagkit.exit_codes`.
flagkit itself never catches these: every failure raised by a flag set,
command, or registry propagates unchanged out of
:func:`~flagkit.builder.apply`. The ``flagkit`` CLI entry point
(:func:`flagkit.app.main`) catches ``FlagkitError`` and exits with the
appropriate code.

Subclass hierarchy::

    FlagkitError (exit 1)
    +-- InvalidFlagError      (exit 2)
    +-- DuplicateFlagError    (exit 2)
    +-- FlagNotFoundError     (exit 2)
    +-- ApplicantError        (exit 2)
    +-- BindingConflictError  (exit 3)
    +-- RequiredFlagError     (exit 4)
    +-- ConfigError           (exit 5)
"""

from flagkit.exit_codes import (
    EXIT_BINDING_CONFLICT,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_DECLARATION,
    EXIT_REQUIRED_FLAG,
)


class FlagkitError(Exception):
    """Base exception for all flagkit errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`flagkit.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidFlagError(FlagkitError):
    """Raised when a flag name or shorthand is malformed (empty name, multi-character shorthand)."""

    exit_code = EXIT_INVALID_DECLARATION


class DuplicateFlagError(FlagkitError):
    """Raised when a flag name or shorthand is registered twice on the same flag set."""

    exit_code = EXIT_INVALID_DECLARATION


class FlagNotFoundError(FlagkitError):
    """Raised when an operation refers to a flag that is not registered on the command."""

    exit_code = EXIT_INVALID_DECLARATION


class ApplicantError(FlagkitError):
    """Raised when an applicant is applied a second time."""

    exit_code = EXIT_INVALID_DECLARATION


class BindingConflictError(FlagkitError):
    """Raised when a registry key is already bound to a different flag."""

    exit_code = EXIT_BINDING_CONFLICT


class RequiredFlagError(FlagkitError):
    """Raised before a command runs when one or more mandatory flags are unset.

    Args:
        names: The unset flag names, in declaration order.
    """

    exit_code = EXIT_REQUIRED_FLAG

    def __init__(self, names: list[str]):
        self.names = list(names)
        super().__init__(f"Required flag(s) not set: {', '.join(self.names)}")


class ConfigError(FlagkitError):
    """Raised for configuration problems (missing file, invalid JSON or YAML, wrong shape)."""

    exit_code = EXIT_CONFIG_ERROR
