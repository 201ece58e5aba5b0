"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~flagkit.exceptions.FlagkitError` subclass.
Programs built with flagkit can let these propagate from their entry point
so that wrappers can tell a wiring bug from an operator mistake without
parsing stderr.

Example::

    $ mytool serve
    Error: Required flag(s) not set: config
    $ echo $?
    4   # EXIT_REQUIRED_FLAG -- a mandatory flag was not supplied
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_DECLARATION = 2
"""A flag declaration could not be applied (bad name, duplicate, unknown flag)."""

EXIT_BINDING_CONFLICT = 3
"""A registry key was bound to two different flags."""

EXIT_REQUIRED_FLAG = 4
"""A mandatory flag was not set when the command ran."""

EXIT_CONFIG_ERROR = 5
"""A configuration file could not be read or parsed."""
