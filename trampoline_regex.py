#!/usr/bin/env python3
"""
Stack-safe regular expression matcher.

Expressions are built from a small algebra (literal, empty, concatenation,
alternation, repetition) and matched by an iterative interpreter. The
recursive definition of "does this expression match at this position" is
rewritten as explicit continuation frames plus a flat dispatch loop, so the
Python call stack stays at a constant depth no matter how deeply expressions
are nested or how many times a repetition iterates.

Matching is committed-choice: alternation keeps the first branch that
succeeds, concatenation keeps the first split point, and repetition is
greedy without backtracking.

Usage:
    >>> from trampoline_regex import literal
    >>> scala = literal("Sca").concat(literal("la")).concat(literal("la").repeat())
    >>> scala.matches("Scalalala")
    True
    >>> scala.matches("Scalaland")
    False
"""

from dataclasses import dataclass
from typing import Callable, Optional, Union


class StepLimitExceeded(RuntimeError):
    """Raised when the trampoline runs past its configured step budget."""

    def __init__(self, max_steps: int):
        super().__init__(f"Matching did not finish within {max_steps} steps")
        self.max_steps = max_steps


# =============================================================================
# Expression Grammar
# =============================================================================

class Regexp:
    """Base class for all expression nodes.

    Nodes are immutable and compare by identity, so subexpressions can be
    shared freely between larger expressions. Use expressions_equal() for
    structural comparison.
    """

    def __new__(cls, *args, **kwargs):
        if cls is Regexp:
            raise TypeError("Regexp is abstract; build expressions with literal(), "
                            "empty() and the combinators")
        return super().__new__(cls)

    def concat(self, other: 'Regexp') -> 'Regexp':
        """Match self, then other immediately after."""
        return Concat(self, _check_regexp(other))

    def alternate(self, other: 'Regexp') -> 'Regexp':
        """Match self; if it fails, match other from the same position."""
        return Alternate(self, _check_regexp(other))

    def repeat(self) -> 'Regexp':
        """Match self zero or more times, greedily."""
        return Repeat(self)

    def star(self) -> 'Regexp':
        return self.repeat()

    def __add__(self, other):
        if not isinstance(other, Regexp):
            return NotImplemented
        return self.concat(other)

    def __or__(self, other):
        if not isinstance(other, Regexp):
            return NotImplemented
        return self.alternate(other)

    def match_end(self, text: str, *, zero_width_guard: bool = True,
                  max_steps: Optional[int] = None,
                  on_step: Optional[Callable[['Call'], None]] = None) -> Optional[int]:
        """Return the end position of the committed match from position 0.

        Returns None if the expression fails at the start of the input. A
        result shorter than len(text) means only a prefix was consumed.
        """
        return trampoline(Evaluate(self, 0, DONE), text,
                          zero_width_guard=zero_width_guard,
                          max_steps=max_steps, on_step=on_step)

    def matches(self, text: str, *, zero_width_guard: bool = True,
                max_steps: Optional[int] = None,
                on_step: Optional[Callable[['Call'], None]] = None) -> bool:
        """Check whether the expression matches the entire input."""
        end = self.match_end(text, zero_width_guard=zero_width_guard,
                             max_steps=max_steps, on_step=on_step)
        return end is not None and end == len(text)


@dataclass(frozen=True, eq=False)
class Literal(Regexp):
    """Matches exactly `text` at the current position."""
    text: str

    def __repr__(self):
        return f"Literal({self.text!r})"


@dataclass(frozen=True, eq=False)
class Empty(Regexp):
    """Never matches, not even the empty string."""

    def __repr__(self):
        return "Empty()"


@dataclass(frozen=True, eq=False)
class Concat(Regexp):
    left: Regexp
    right: Regexp


@dataclass(frozen=True, eq=False)
class Alternate(Regexp):
    first: Regexp
    second: Regexp


@dataclass(frozen=True, eq=False)
class Repeat(Regexp):
    inner: Regexp


EMPTY = Empty()


def _check_regexp(value) -> Regexp:
    if not isinstance(value, Regexp):
        raise TypeError(f"Expected a Regexp, got {type(value).__name__}")
    return value


def literal(text: str) -> Regexp:
    """Build an expression matching exactly `text`."""
    if not isinstance(text, str):
        raise TypeError(f"Literal text must be a str, got {type(text).__name__}")
    return Literal(text)


def empty() -> Regexp:
    """Build an expression that always fails."""
    return EMPTY


def concat(left: Regexp, right: Regexp) -> Regexp:
    return _check_regexp(left).concat(right)


def alternate(first: Regexp, second: Regexp) -> Regexp:
    return _check_regexp(first).alternate(second)


def repeat(inner: Regexp) -> Regexp:
    return _check_regexp(inner).repeat()


def matches(expression: Regexp, text: str, **options) -> bool:
    """Module-level form of Regexp.matches()."""
    return _check_regexp(expression).matches(text, **options)


def expressions_equal(a: Regexp, b: Regexp) -> bool:
    """Structural equality check that does not recurse on the Python stack."""
    pending = [(a, b)]
    while pending:
        x, y = pending.pop()
        if x is y:
            continue
        if type(x) is not type(y):
            return False
        if isinstance(x, Literal):
            if x.text != y.text:
                return False
        elif isinstance(x, Concat):
            pending.append((x.left, y.left))
            pending.append((x.right, y.right))
        elif isinstance(x, Alternate):
            pending.append((x.first, y.first))
            pending.append((x.second, y.second))
        elif isinstance(x, Repeat):
            pending.append((x.inner, y.inner))
    return True


def describe(expression: Regexp, max_depth: int = 8) -> str:
    """Render an expression as a short pattern string for display.

    Subtrees nested deeper than `max_depth` are shown as "...".
    """
    return _describe(expression, 0, max_depth)


def _describe(node: Regexp, depth: int, max_depth: int) -> str:
    if depth > max_depth:
        return "..."

    if isinstance(node, Literal):
        if not node.text:
            return "''"
        return "".join(f"\\{c}" if c in "\\()*|.'" else c for c in node.text)
    elif isinstance(node, Empty):
        return "<empty>"
    elif isinstance(node, Concat):
        left = _describe(node.left, depth + 1, max_depth)
        right = _describe(node.right, depth + 1, max_depth)
        return f"{left}{right}"
    elif isinstance(node, Alternate):
        first = _describe(node.first, depth + 1, max_depth)
        second = _describe(node.second, depth + 1, max_depth)
        # Wrap in parentheses if nested (not at top level)
        if depth > 0:
            return f"({first}|{second})"
        return f"{first}|{second}"
    elif isinstance(node, Repeat):
        inner = _describe(node.inner, depth + 1, max_depth)
        if isinstance(node.inner, Literal) and len(node.inner.text) == 1:
            return f"{inner}*"
        if isinstance(node.inner, Alternate):
            return f"{inner}*" if inner.startswith("(") else f"({inner})*"
        return f"({inner})*"
    return str(node)


# =============================================================================
# Continuations
# =============================================================================

@dataclass(frozen=True, eq=False)
class AfterConcat:
    """Left side of a concatenation is in progress; `right` is still owed."""
    right: Regexp
    next: 'Continuation'

    def resume(self, position: Optional[int]) -> 'Call':
        if position is None:
            return Resume(None, self.next)
        return Evaluate(self.right, position, self.next)


@dataclass(frozen=True, eq=False)
class AfterAlternate:
    """First branch is in progress; `second` is tried from `start` if it fails."""
    second: Regexp
    start: int
    next: 'Continuation'

    def resume(self, position: Optional[int]) -> 'Call':
        if position is None:
            return Evaluate(self.second, self.start, self.next)
        return Resume(position, self.next)


@dataclass(frozen=True, eq=False)
class AfterRepeat:
    """One more iteration of `node` is in progress, begun at `last_good`.

    With `stop_on_empty` set, an iteration that succeeds without consuming
    input ends the repetition instead of starting another iteration at the
    same position.
    """
    node: Repeat
    last_good: int
    next: 'Continuation'
    stop_on_empty: bool = True

    def resume(self, position: Optional[int]) -> 'Call':
        if position is None:
            return Resume(self.last_good, self.next)
        if self.stop_on_empty and position == self.last_good:
            return Resume(self.last_good, self.next)
        return Evaluate(self.node, position, self.next)


@dataclass(frozen=True, eq=False)
class Done:
    """Terminal continuation: the result is the result of the whole match."""

    def resume(self, position: Optional[int]) -> 'Call':
        return Finished(position)


DONE = Done()

Continuation = Union[AfterConcat, AfterAlternate, AfterRepeat, Done]


# =============================================================================
# Units of Work
# =============================================================================

@dataclass(frozen=True, eq=False)
class Evaluate:
    """Start matching `expression` at `position`, then resume `continuation`."""
    expression: Regexp
    position: int
    continuation: Continuation


@dataclass(frozen=True, eq=False)
class Resume:
    """Feed a finished inner result to `continuation`."""
    position: Optional[int]
    continuation: Continuation


@dataclass(frozen=True)
class Finished:
    position: Optional[int]


Call = Union[Evaluate, Resume, Finished]


# =============================================================================
# Trampoline Driver
# =============================================================================

def _evaluate(call: Evaluate, text: str, zero_width_guard: bool) -> Call:
    """Dispatch one Evaluate step by expression kind."""
    node = call.expression
    position = call.position
    k = call.continuation

    if isinstance(node, Concat):
        return Evaluate(node.left, position, AfterConcat(node.right, k))

    if isinstance(node, Alternate):
        return Evaluate(node.first, position, AfterAlternate(node.second, position, k))

    if isinstance(node, Repeat):
        return Evaluate(node.inner, position,
                        AfterRepeat(node, position, k, zero_width_guard))

    if isinstance(node, Literal):
        if text.startswith(node.text, position):
            return Resume(position + len(node.text), k)
        return Resume(None, k)

    if isinstance(node, Empty):
        return Resume(None, k)

    raise TypeError(f"Unknown expression node: {type(node).__name__}")


def trampoline(call: Call, text: str, *, zero_width_guard: bool = True,
               max_steps: Optional[int] = None,
               on_step: Optional[Callable[[Call], None]] = None) -> Optional[int]:
    """Run units of work until a Finished result appears.

    Each iteration replaces the current unit of work with exactly one new
    one, so the Python stack never grows during matching.

    Args:
        call: Initial unit of work, usually Evaluate(expression, 0, DONE)
        text: Input string being matched
        zero_width_guard: Stop a repetition whose iteration consumed nothing.
            Without it, repeating an expression that can match the empty
            string never terminates.
        max_steps: Raise StepLimitExceeded after this many steps
        on_step: Called with each unit of work before it is dispatched

    Returns:
        The final position, or None if the match failed
    """
    steps = 0
    while not isinstance(call, Finished):
        if max_steps is not None and steps >= max_steps:
            raise StepLimitExceeded(max_steps)
        if on_step is not None:
            on_step(call)

        if isinstance(call, Evaluate):
            call = _evaluate(call, text, zero_width_guard)
        else:
            call = call.continuation.resume(call.position)
        steps += 1

    return call.position
