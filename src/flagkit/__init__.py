"""flagkit -- declarative flag registration for click-based command trees.

Flags are declared once with a base constructor plus composable option
combinators, collected as deferred *applicants*, and bound onto a live
command (and onto a configuration registry) in a single pass at startup.

Typical usage::

    from flagkit import Command, apply_all, flag
    from flagkit.options import env, mandatory, persistent
    from flagkit.types import string

    FLAGS = [flag("config", string("default.yaml"), persistent(), env(), mandatory())]

    root = Command("tool", callback=lambda cmd, args: ...)
    apply_all(root, FLAGS)
    root.execute()

Modules:
    builder: :func:`flag`, :class:`Applicant`, :func:`apply`, :func:`apply_all`.
    options: Option combinators (``persistent``, ``env``, ``filename``, ...).
    types: Value-type constructors (``string``, ``boolean``, ``duration``, ...).
    models: Pydantic models for descriptors, flag handles and settings.
    flagset: Typed flag storage and click conversion.
    command: Command objects that own flag sets and run on click.
    registry: Key/value registry layering flags, environment and files.
    config: XDG config-file discovery and loading.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr output with Rich support.
    app: The ``flagkit`` developer CLI (``inspect``, ``env``).
"""

from flagkit.builder import Applicant, FlagApplicant, apply, apply_all, flag, wrap
from flagkit.command import Command
from flagkit.registry import Registry, get_registry

__version__ = "0.1.0"

__all__ = [
    "Applicant",
    "Command",
    "FlagApplicant",
    "Registry",
    "apply",
    "apply_all",
    "flag",
    "get_registry",
    "wrap",
]
