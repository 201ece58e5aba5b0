"""Declare flags now, bind them to a command later.

This is the core of flagkit. A flag is declared once with :func:`flag` --
a name, a value type from :mod:`flagkit.types` and any number of option
combinators from :mod:`flagkit.options` -- and the result is an
:class:`Applicant`: an inspectable, deferred action. Applicants are
collected from wherever a program declares them and applied to the live
command at startup with :func:`apply_all`.

**Bind sequence** (:func:`apply`), in order:

1. Select the command's persistent or local flag set from the scope.
2. Call the value-type constructor to register the typed flag.
3. Look the flag up again by name. A miss means the value type broke its
   contract and raises :class:`~flagkit.exceptions.FlagNotFoundError`.
4. Bind the flag to ``env_key`` in the registry, if set.
5. Mark the flag required, if mandatory.
6. Mark directory completion, if the path hint is a directory.
7. Mark file completion with the extensions, if the path hint is a file.

Every error raised by the flag set, the command or the registry propagates
unchanged.

Example::

    applicants = [
        flag("config", string("default.yaml"), persistent(), env(), mandatory(),
             filename("yaml", "json"), description("Config file")),
        flag("verbose", boolean(), abbr("v"), persistent()),
    ]

    root = Command("tool", callback=run)
    apply_all(root, applicants)
    root.execute()
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional

from flagkit.command import Command
from flagkit.exceptions import ApplicantError, FlagNotFoundError
from flagkit.models import FlagDescriptor, PathKind
from flagkit.options import FlagOption
from flagkit.output import debug
from flagkit.registry import Registry, get_registry
from flagkit.types import FlagType


class Applicant:
    """A deferred action that configures a :class:`~flagkit.command.Command`.

    An applicant runs successfully at most once; applying it again (to the
    same or to another command) raises
    :class:`~flagkit.exceptions.ApplicantError`. A call that raises does not
    count.

    Args:
        action: Called as ``action(command, registry)``.
        label: Short description used in ``repr`` and error messages.
    """

    def __init__(
        self,
        action: Callable[[Command, Optional[Registry]], None],
        label: str = "",
    ) -> None:
        self._action = action
        self.label = label
        self.applied_to: Optional[Command] = None

    @property
    def applied(self) -> bool:
        return self.applied_to is not None

    def __call__(self, command: Command, registry: Optional[Registry] = None) -> None:
        if self.applied_to is not None:
            raise ApplicantError(
                f"{self!r} was already applied to '{self.applied_to.command_path()}'"
            )
        self._action(command, registry)
        self.applied_to = command

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class FlagApplicant(Applicant):
    """The :class:`Applicant` returned by :func:`flag`.

    Exposes the finished :attr:`descriptor` so declarations can be inspected
    and tested before any command exists.
    """

    def __init__(self, descriptor: FlagDescriptor) -> None:
        super().__init__(
            lambda command, registry: apply(descriptor, command, registry),
            label=descriptor.name,
        )
        self.descriptor = descriptor


def wrap(fn: Callable[[Command], None], label: str = "") -> Applicant:
    """Turn any command customisation into an :class:`Applicant`.

    Lets non-flag setup (help text, subcommands) be collected alongside flag
    declarations and applied in the same pass::

        apply_all(root, [wrap(lambda cmd: cmd.add_command(serve)), *flags])
    """
    return Applicant(lambda command, registry: fn(command), label=label or getattr(fn, "__name__", ""))


def flag(name: str, flag_type: FlagType, *options: FlagOption) -> FlagApplicant:
    """Declare a flag.

    Creates a :class:`~flagkit.models.FlagDescriptor` with the defaults
    (local, optional, no path hint, no shorthand, no registry key), applies
    *options* in order, and wraps the result in a :class:`FlagApplicant`.
    Nothing touches a command until the applicant is called.

    The name is not validated here; an empty name is rejected by the flag
    set when the applicant runs.

    Args:
        name: Flag name, used as ``--<name>``.
        flag_type: A value-type constructor such as ``string("x")``.
        *options: Option combinators such as ``persistent()``.
    """
    descriptor = FlagDescriptor(name=name, value_type=flag_type)
    for option in options:
        option(descriptor)
    return FlagApplicant(descriptor)


def apply(
    descriptor: FlagDescriptor,
    command: Command,
    registry: Optional[Registry] = None,
) -> None:
    """Run the bind sequence for *descriptor* against *command*.

    Args:
        descriptor: The finished declaration.
        command: The live command to register on.
        registry: Registry for ``env_key`` bindings; defaults to
            :func:`~flagkit.registry.get_registry`.

    Raises:
        InvalidFlagError: Bad name or shorthand (from the flag set).
        DuplicateFlagError: Name or shorthand already registered.
        FlagNotFoundError: The value type did not register ``descriptor.name``.
        BindingConflictError: ``env_key`` already bound to another flag.
    """
    flag_set = command.persistent_flags() if descriptor.is_persistent else command.local_flags()
    debug(f"Registering --{descriptor.name} on {flag_set.name!r}")
    descriptor.value_type(descriptor, flag_set)

    handle = flag_set.lookup(descriptor.name)
    if handle is None:
        raise FlagNotFoundError(
            f"Flag '{descriptor.name}' is missing from {flag_set.name!r} right after registration"
        )

    if descriptor.env_key:
        (registry if registry is not None else get_registry()).bind_flag(descriptor.env_key, handle)

    if descriptor.mandatory:
        command.mark_flag_required(descriptor.name)

    if descriptor.path_kind == PathKind.DIRECTORY:
        command.mark_flag_dirname(descriptor.name)
    elif descriptor.path_kind == PathKind.FILE:
        command.mark_flag_filename(descriptor.name, *descriptor.extensions)


def apply_all(
    command: Command,
    applicants: Iterable[Applicant],
    registry: Optional[Registry] = None,
) -> None:
    """Apply *applicants* to *command* in order, stopping at the first error."""
    for applicant in applicants:
        applicant(command, registry)
