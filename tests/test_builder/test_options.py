"""Tests for flagkit.options and flagkit.builder.flag.

Covers:
- flag() defaults before any combinator runs
- Each combinator writes exactly its own attribute
- Commutativity of combinators that target different attributes
- Last-write-wins for combinators that target the same attribute
- env() / env_name() equivalence
- filename() extension handling
"""

from __future__ import annotations

import itertools

import pytest

from flagkit.builder import FlagApplicant, flag
from flagkit.models import FlagDescriptor, FlagScope, PathKind
from flagkit.options import (
    abbr,
    description,
    dirname,
    env,
    env_name,
    filename,
    mandatory,
    persistent,
)
from flagkit.types import string

STR = string("default.yaml")


def _descriptor(*options) -> FlagDescriptor:
    return flag("config", STR, *options).descriptor


# ------------------------------------------------------------------ #
# Defaults
# ------------------------------------------------------------------ #


class TestFlagDefaults:
    """flag() with no combinators."""

    def test_returns_flag_applicant(self) -> None:
        assert isinstance(flag("config", STR), FlagApplicant)

    def test_defaults(self) -> None:
        fd = _descriptor()
        assert fd.name == "config"
        assert fd.value_type is STR
        assert fd.scope == FlagScope.LOCAL
        assert fd.mandatory is False
        assert fd.path_kind == PathKind.NONE
        assert fd.extensions == ()
        assert fd.abbreviation is None
        assert fd.description == ""
        assert fd.env_key is None

    def test_empty_name_accepted_at_construction(self) -> None:
        assert flag("", STR).descriptor.name == ""

    def test_not_applied_yet(self) -> None:
        applicant = flag("config", STR, persistent())
        assert applicant.applied is False
        assert applicant.applied_to is None


# ------------------------------------------------------------------ #
# Individual combinators
# ------------------------------------------------------------------ #


class TestCombinators:
    """Each combinator changes exactly one attribute."""

    def test_persistent(self) -> None:
        fd = _descriptor(persistent())
        assert fd.scope == FlagScope.PERSISTENT
        assert fd.is_persistent is True

    def test_mandatory(self) -> None:
        assert _descriptor(mandatory()).mandatory is True

    def test_description(self) -> None:
        assert _descriptor(description("Config file")).description == "Config file"

    def test_abbr(self) -> None:
        assert _descriptor(abbr("c")).abbreviation == "c"

    def test_abbr_not_validated_at_construction(self) -> None:
        assert _descriptor(abbr("cfg")).abbreviation == "cfg"

    def test_env_uses_flag_name(self) -> None:
        assert _descriptor(env()).env_key == "config"

    def test_env_name(self) -> None:
        assert _descriptor(env_name("APP_CONFIG")).env_key == "APP_CONFIG"

    def test_dirname(self) -> None:
        fd = _descriptor(dirname())
        assert fd.path_kind == PathKind.DIRECTORY
        assert fd.extensions == ()

    def test_filename_with_extensions(self) -> None:
        fd = _descriptor(filename("yaml", "json"))
        assert fd.path_kind == PathKind.FILE
        assert set(fd.extensions) == {"yaml", "json"}

    def test_filename_strips_leading_dots(self) -> None:
        assert _descriptor(filename(".yaml")).extensions == ("yaml",)

    def test_filename_without_extensions_is_unrestricted(self) -> None:
        fd = _descriptor(filename())
        assert fd.path_kind == PathKind.FILE
        assert fd.extensions == ()

    def test_only_target_attribute_changes(self) -> None:
        baseline = _descriptor().model_dump()
        changed = _descriptor(mandatory()).model_dump()
        diff = {k for k in baseline if baseline[k] != changed[k]}
        assert diff == {"mandatory"}


# ------------------------------------------------------------------ #
# Composition
# ------------------------------------------------------------------ #


INDEPENDENT = [
    persistent(),
    mandatory(),
    description("help"),
    abbr("c"),
    env_name("cfg"),
    filename("yaml"),
]


class TestComposition:
    """Order only matters for combinators writing the same attribute."""

    @pytest.mark.parametrize("x, y", list(itertools.combinations(INDEPENDENT, 2)))
    def test_independent_combinators_commute(self, x, y) -> None:
        assert _descriptor(x, y) == _descriptor(y, x)

    def test_all_independent_in_reverse_order(self) -> None:
        assert _descriptor(*INDEPENDENT) == _descriptor(*reversed(INDEPENDENT))

    def test_env_equivalent_to_env_name_of_flag_name(self) -> None:
        a = flag("output", STR, env()).descriptor
        b = flag("output", STR, env_name("output")).descriptor
        assert a.env_key == b.env_key == "output"
        assert a == b

    def test_last_description_wins(self) -> None:
        assert _descriptor(description("a"), description("b")).description == "b"

    def test_env_name_after_env_wins(self) -> None:
        assert _descriptor(env(), env_name("other")).env_key == "other"

    def test_env_after_env_name_wins(self) -> None:
        assert _descriptor(env_name("other"), env()).env_key == "config"

    def test_dirname_then_filename(self) -> None:
        fd = _descriptor(dirname(), filename("yaml"))
        assert fd.path_kind == PathKind.FILE
        assert fd.extensions == ("yaml",)

    def test_filename_then_dirname(self) -> None:
        fd = _descriptor(filename("yaml"), dirname())
        assert fd.path_kind == PathKind.DIRECTORY
        assert fd.extensions == ()

    def test_combinators_never_change_name(self) -> None:
        fd = _descriptor(*INDEPENDENT, env(), dirname())
        assert fd.name == "config"

    def test_combinator_instances_are_reusable(self) -> None:
        shared = persistent()
        a = flag("a", STR, shared).descriptor
        b = flag("b", STR, shared).descriptor
        assert a.is_persistent and b.is_persistent
