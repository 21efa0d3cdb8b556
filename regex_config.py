#!/usr/bin/env python3
"""
YAML front end for building expressions and loading match cases.

Expressions are written as nested YAML data rather than regex syntax:

    expression:
      concat:
        - Sca            # a bare string is a literal
        - literal: la
        - repeat: la

Supported keys: literal, empty, concat, alternate, repeat (alias: star).
concat and alternate take a list that is folded left, so
``concat: [a, b, c]`` is ``(a . b) . c``.

Case files are a top-level list of entries:

    - name: scala
      expression: {concat: [Sca, la, {repeat: la}]}
      cases:
        Scala: true
        Scalaland: false
"""

from dataclasses import dataclass, field
from functools import reduce
from pathlib import Path
from typing import Any, Optional

import yaml

from trampoline_regex import Regexp, describe, empty, literal


class ConfigError(ValueError):
    """Malformed expression data or case file."""


@dataclass
class MatchCase:
    """A named expression with the expected outcome for each input."""
    name: str
    expression: Regexp
    cases: dict[str, bool] = field(default_factory=dict)

    @property
    def pattern(self) -> str:
        return describe(self.expression)


def build_expression(data: Any, where: str = "expression") -> Regexp:
    """Convert YAML-shaped data into an expression.

    Nested data is walked with an explicit work list, so nesting depth is not
    limited by the Python stack.

    Raises:
        ConfigError: If the data does not describe a valid expression
    """
    # Work items are ("visit", data, where) or ("combine", (kind, count), where)
    pending = [("visit", data, where)]
    built: list[Regexp] = []

    while pending:
        action, data, where = pending.pop()

        if action == "combine":
            kind, count = data
            parts = built[len(built) - count:]
            del built[len(built) - count:]
            if kind in ("repeat", "star"):
                built.append(parts[0].repeat())
            elif kind == "concat":
                built.append(reduce(lambda left, right: left.concat(right), parts))
            else:
                built.append(reduce(lambda first, second: first.alternate(second), parts))
            continue

        if isinstance(data, str):
            built.append(literal(data))
            continue

        if not isinstance(data, dict) or len(data) != 1:
            raise ConfigError(
                f"{where}: expected a string or a mapping with exactly one key, got {data!r}")

        (kind, value), = data.items()

        if kind == "literal":
            if not isinstance(value, str):
                raise ConfigError(f"{where}.literal: expected a string, got {value!r}")
            built.append(literal(value))

        elif kind == "empty":
            if value is not None:
                raise ConfigError(f"{where}.empty: takes no value, got {value!r}")
            built.append(empty())

        elif kind in ("repeat", "star"):
            pending.append(("combine", (kind, 1), where))
            pending.append(("visit", value, f"{where}.{kind}"))

        elif kind in ("concat", "alternate"):
            if not isinstance(value, list) or not value:
                raise ConfigError(f"{where}.{kind}: expected a non-empty list, got {value!r}")
            pending.append(("combine", (kind, len(value)), where))
            # Pushed in reverse so items are built left to right
            for i in reversed(range(len(value))):
                pending.append(("visit", value[i], f"{where}.{kind}[{i}]"))

        else:
            raise ConfigError(f"{where}: unknown expression kind {kind!r}")

    return built[0]


def parse_expression(source: str) -> Regexp:
    """Build an expression from an inline YAML document."""
    try:
        data = yaml.safe_load(source)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML expression: {e}") from e
    return build_expression(data)


def _parse_case_entry(entry: Any, index: int) -> MatchCase:
    where = f"entry {index}"
    if not isinstance(entry, dict):
        raise ConfigError(f"{where}: expected a mapping, got {type(entry).__name__}")

    name = entry.get("name", "unnamed")
    if not isinstance(name, str):
        raise ConfigError(f"{where}: name must be a string, got {name!r}")
    where = f"entry {index} ({name})"

    if "expression" not in entry:
        raise ConfigError(f"{where}: missing 'expression'")
    expression = build_expression(entry["expression"], f"{where}.expression")

    raw_cases = entry.get("cases") or {}
    if not isinstance(raw_cases, dict):
        raise ConfigError(f"{where}.cases: expected a mapping of input to true/false")

    cases = {}
    for text, expected in raw_cases.items():
        # YAML turns bare keys like 1 or null into non-strings
        if text is None:
            text = ""
        if not isinstance(text, str):
            raise ConfigError(f"{where}.cases: input {text!r} must be quoted as a string")
        if not isinstance(expected, bool):
            raise ConfigError(f"{where}.cases[{text!r}]: expected true or false, got {expected!r}")
        cases[text] = expected

    return MatchCase(name=name, expression=expression, cases=cases)


def load_cases(path: Path, name: Optional[str] = None) -> list[MatchCase]:
    """Load match cases from a YAML file, optionally keeping only `name`."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Case file not found: {path}")

    with open(path, encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    # Expect top-level list
    if not isinstance(data, list):
        raise ConfigError(f"Expected list in {path}, got {type(data).__name__}")

    cases = [_parse_case_entry(entry, i) for i, entry in enumerate(data)]
    if name is not None:
        cases = [c for c in cases if c.name == name]
    return cases
