"""Command objects that own flag sets and run on top of click.

:class:`Command` is the live target that :func:`~flagkit.builder.apply`
binds declarations onto. It exposes the small surface the applicator needs
(:meth:`~Command.local_flags`, :meth:`~Command.persistent_flags`,
:meth:`~Command.mark_flag_required`, :meth:`~Command.mark_flag_dirname`,
:meth:`~Command.mark_flag_filename`) and leaves parsing, type conversion,
help rendering and dispatch to click.

**Execution model**

1. :meth:`Command.to_click` converts the command tree into a
   ``click.Command`` / ``click.Group`` tree. Every command receives its own
   local and persistent flags plus the persistent flags of all ancestors,
   so ``tool serve --config x`` and ``tool --config x serve`` both work.
2. When click invokes a command, values supplied on the command line are
   written back into the shared :class:`~flagkit.models.Flag` handles.
3. On the command that actually runs (the leaf), required flags are checked
   *before* its callback; unset ones raise
   :class:`~flagkit.exceptions.RequiredFlagError`.
4. The callback is called as ``callback(command, args)``.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

import click
from click.core import ParameterSource

from flagkit.exceptions import DuplicateFlagError, FlagNotFoundError, RequiredFlagError
from flagkit.flagset import FlagSet, click_names, split_list_values, to_click_option, to_identifier
from flagkit.models import Flag, FlagKind, PathKind
from flagkit.output import debug

CommandCallback = Callable[["Command", list[str]], Any]


class Command:
    """A named command with local and persistent flag sets.

    Args:
        name: Command name as typed on the command line.
        callback: Called as ``callback(command, args)`` when this command
            runs. A command with subcommands and no callback only dispatches.
        help: Help text shown by ``--help``.
    """

    def __init__(
        self,
        name: str,
        callback: Optional[CommandCallback] = None,
        help: str = "",
    ) -> None:
        self.name = name
        self.callback = callback
        self.help = help
        self.parent: Optional[Command] = None
        self.commands: dict[str, Command] = {}
        self._local = FlagSet(name)
        self._persistent = FlagSet(f"{name} (persistent)")

    def __repr__(self) -> str:
        return f"Command({self.command_path()!r})"

    # ------------------------------------------------------------------ #
    # Tree
    # ------------------------------------------------------------------ #

    def add_command(self, *commands: Command) -> None:
        """Attach *commands* as subcommands of this command."""
        for child in commands:
            if child is self:
                raise ValueError("A command cannot be its own subcommand")
            child.parent = self
            self.commands[child.name] = child

    def root(self) -> Command:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def command_path(self) -> str:
        """Full command path from the root, e.g. ``"tool db migrate"``."""
        if self.parent is None:
            return self.name
        return f"{self.parent.command_path()} {self.name}"

    def walk(self) -> Iterator[Command]:
        """Yield this command and all descendants, depth first."""
        yield self
        for child in self.commands.values():
            yield from child.walk()

    # ------------------------------------------------------------------ #
    # Flag sets
    # ------------------------------------------------------------------ #

    def local_flags(self) -> FlagSet:
        """Flags visible only on this command."""
        return self._local

    def persistent_flags(self) -> FlagSet:
        """Flags declared here and inherited by every descendant."""
        return self._persistent

    def inherited_flags(self) -> list[Flag]:
        """Persistent flags of ancestors, nearest ancestor first.

        A name declared closer to this command hides the same name further
        up the tree.
        """
        seen: set[str] = set()
        result: list[Flag] = []
        node = self.parent
        while node is not None:
            for flag in node.persistent_flags():
                if flag.name not in seen:
                    seen.add(flag.name)
                    result.append(flag)
            node = node.parent
        return result

    def own_flags(self) -> list[Flag]:
        """Local flags followed by persistent flags declared on this command.

        Raises:
            DuplicateFlagError: If a name or shorthand is declared both
                locally and persistently, or two flags map to the same click
                destination or option.
        """
        result: list[Flag] = []
        shorthands: dict[str, str] = {}
        claimed: dict[str, str] = {}
        for flag in [*self._local, *self._persistent]:
            if any(f.name == flag.name for f in result):
                raise DuplicateFlagError(
                    f"Flag '{flag.name}' is declared both locally and persistently on '{self.command_path()}'"
                )
            self._claim(flag, shorthands, claimed)
            result.append(flag)
        return result

    def visible_flags(self) -> list[Flag]:
        """Every flag this command accepts: own flags, then inherited ones.

        An inherited flag with the same name as an own flag is hidden by it.

        Raises:
            DuplicateFlagError: If an inherited flag's shorthand, destination
                or option is already used on this command.
        """
        result = self.own_flags()
        shorthands: dict[str, str] = {}
        claimed: dict[str, str] = {}
        for flag in result:
            self._claim(flag, shorthands, claimed)
        own_names = {f.name for f in result}
        for flag in self.inherited_flags():
            if flag.name in own_names:
                continue
            self._claim(flag, shorthands, claimed)
            result.append(flag)
        return result

    def _claim(self, flag: Flag, shorthands: dict[str, str], claimed: dict[str, str]) -> None:
        if flag.shorthand:
            if flag.shorthand in shorthands:
                raise DuplicateFlagError(
                    f"Shorthand '-{flag.shorthand}' is used by both '{shorthands[flag.shorthand]}' "
                    f"and '{flag.name}' on '{self.command_path()}'"
                )
            shorthands[flag.shorthand] = flag.name
        for click_name in click_names(flag):
            if click_name in claimed:
                raise DuplicateFlagError(
                    f"Flags '{claimed[click_name]}' and '{flag.name}' both map to {click_name!r} "
                    f"on '{self.command_path()}'"
                )
            claimed[click_name] = flag.name

    def flag(self, name: str) -> Optional[Flag]:
        """Find *name* among local, persistent, then inherited flags."""
        found = self._local.lookup(name) or self._persistent.lookup(name)
        if found is not None:
            return found
        for inherited in self.inherited_flags():
            if inherited.name == name:
                return inherited
        return None

    def _declared_flag(self, name: str) -> Flag:
        found = self._local.lookup(name) or self._persistent.lookup(name)
        if found is None:
            raise FlagNotFoundError(f"No flag named '{name}' on command '{self.command_path()}'")
        return found

    # ------------------------------------------------------------------ #
    # Annotations
    # ------------------------------------------------------------------ #

    def mark_flag_required(self, name: str) -> None:
        """Require *name* to be set on the command line before execution.

        Raises:
            FlagNotFoundError: If *name* is not declared on this command.
        """
        self._declared_flag(name).required = True

    def mark_flag_dirname(self, name: str) -> None:
        """Complete *name*'s value as a directory.

        Raises:
            FlagNotFoundError: If *name* is not declared on this command.
        """
        flag = self._declared_flag(name)
        flag.path_kind = PathKind.DIRECTORY
        flag.extensions = ()

    def mark_flag_filename(self, name: str, *extensions: str) -> None:
        """Complete *name*'s value as a file limited to *extensions* (none = any).

        Raises:
            FlagNotFoundError: If *name* is not declared on this command.
        """
        flag = self._declared_flag(name)
        flag.path_kind = PathKind.FILE
        flag.extensions = tuple(e.lstrip(".") for e in extensions)

    @property
    def required_flags(self) -> list[str]:
        """Names of every visible flag marked required, in declaration order."""
        return [f.name for f in self.visible_flags() if f.required]

    def check_required_flags(self) -> None:
        """Raise :class:`RequiredFlagError` if any required flag is unset."""
        missing = [f.name for f in self.visible_flags() if f.required and not f.changed]
        if missing:
            raise RequiredFlagError(missing)

    # ------------------------------------------------------------------ #
    # click
    # ------------------------------------------------------------------ #

    def to_click(self) -> click.Command:
        """Build the click command tree rooted at this command."""
        flags = self.visible_flags()
        params: list[click.Parameter] = [to_click_option(f) for f in flags]
        callback = self._make_click_callback(flags)

        if self.commands:
            group = click.Group(
                name=self.name,
                params=params,
                callback=callback,
                help=self.help or None,
                invoke_without_command=self.callback is not None,
                no_args_is_help=self.callback is None,
            )
            for child in self.commands.values():
                group.add_command(child.to_click())
            return group

        params.append(click.Argument(["args"], nargs=-1))
        return click.Command(
            name=self.name,
            params=params,
            callback=callback,
            help=self.help or None,
        )

    def _make_click_callback(self, flags: list[Flag]) -> Callable[..., Any]:
        def _invoke(**kwargs: Any) -> Any:
            ctx = click.get_current_context()
            args = list(kwargs.pop("args", ()))
            for flag in flags:
                dest = to_identifier(flag.name)
                if ctx.get_parameter_source(dest) != ParameterSource.COMMANDLINE:
                    continue
                value = kwargs[dest]
                if flag.kind == FlagKind.STRING_LIST:
                    value = split_list_values(value)
                flag.set(value)

            if ctx.invoked_subcommand is not None:
                return None

            debug(f"Running '{self.command_path()}'")
            self.check_required_flags()
            if self.callback is None:
                return None
            return self.callback(self, args)

        return _invoke

    def reset_values(self) -> None:
        """Forget values recorded by a previous execution across the whole tree."""
        for node in self.root().walk():
            for flag in [*node.local_flags(), *node.persistent_flags()]:
                flag.reset()

    def execute(self, args: Optional[list[str]] = None, prog_name: Optional[str] = None) -> Any:  # noqa: ANN401
        """Parse *args* and run the selected command.

        click usage errors and every :class:`~flagkit.exceptions.FlagkitError`
        propagate to the caller. ``--help`` returns ``0``.

        Args:
            args: Argument list; defaults to ``sys.argv[1:]``.
            prog_name: Program name shown in usage lines.

        Returns:
            Whatever the selected command's callback returned.
        """
        self.reset_values()
        return self.to_click().main(
            args=args,
            prog_name=prog_name or self.name,
            standalone_mode=False,
        )
