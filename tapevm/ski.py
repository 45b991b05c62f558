"""
SKI combinator reducer.

Applicative-order evaluation of S/K/I terms with an explicit stack and a
fuel counter. Partially applied combinators are values of their own:

    I x          -> x
    K x          -> KPartial(x)          KPartial(a) y -> a
    S x          -> SPartial1(x)         SPartial1(a) y -> SPartial2(a, y)
    SPartial2(f, g) x -> (f x) (g x)

Usage:
    python -m tapevm.ski                 # print the demo reductions
    python -m tapevm.ski 'S K K I'       # reduce one term
"""

from __future__ import annotations

import sys
from dataclasses import dataclass

from lark import Lark, Transformer
from lark.exceptions import UnexpectedInput, VisitError

DEFAULT_FUEL = 1_000_000


class ReductionLimit(RuntimeError):
    """Fuel ran out before the term reached a value."""


# ============================================================
# Terms and values
# ============================================================

@dataclass(frozen=True)
class Comb:
    name: str
    def __repr__(self): return self.name

@dataclass(frozen=True)
class App:
    f: object
    x: object
    def __repr__(self): return f"App({self.f!r}, {self.x!r})"

@dataclass(frozen=True)
class KPartial:
    """K waiting for its second argument."""
    a: object

@dataclass(frozen=True)
class SPartial1:
    """S with one argument."""
    a: object

@dataclass(frozen=True)
class SPartial2:
    """S with two arguments."""
    a: object
    b: object


S = Comb("S")
K = Comb("K")
I = Comb("I")

COMBINATORS = {"S": S, "K": K, "I": I}

# Standard birds, written in S/K/I.
DEFINITIONS = {
    "B": "S (K S) K",
    "W": "S S (S K)",
    "C": "S (B B S) (K K)",
}


# ============================================================
# Parser
# ============================================================

GRAMMAR = r"""
    start: _term+
    _term: NAME | group
    group: "(" _term+ ")"

    NAME: /[A-Za-z][A-Za-z0-9_]*/
    %ignore /\s+/
"""

parser = Lark(GRAMMAR, parser="lalr")


def _apply_all(terms):
    """Left-associative application: a b c = (a b) c."""
    result = terms[0]
    for t in terms[1:]:
        result = App(result, t)
    return result


class _ToTerm(Transformer):
    def __init__(self, definitions: dict[str, str], expanding: frozenset[str]):
        super().__init__()
        self.definitions = definitions
        self.expanding = expanding

    def NAME(self, tok):
        name = str(tok)
        if name in COMBINATORS:
            return COMBINATORS[name]
        if name in self.definitions:
            if name in self.expanding:
                raise ValueError(f"Recursive definition: {name}")
            return _parse(self.definitions[name], self.definitions,
                          self.expanding | {name})
        raise NameError(f"Unknown combinator: {name}")

    def group(self, children):
        return _apply_all(children)

    def start(self, children):
        return _apply_all(children)


def _parse(text: str, definitions: dict[str, str], expanding: frozenset[str]):
    try:
        tree = parser.parse(text)
    except UnexpectedInput as e:
        raise SyntaxError(f"Bad SKI term {text!r}: {e}") from e
    # Transformer errors arrive wrapped; unwrap so callers see NameError.
    try:
        return _ToTerm(definitions, expanding).transform(tree)
    except VisitError as e:
        raise e.orig_exc from e


def parse_term(text: str, definitions: dict[str, str] | None = None):
    """Parse a term; names in `definitions` expand to their own terms."""
    defs = dict(DEFINITIONS)
    if definitions:
        defs.update(definitions)
    return _parse(text, defs, frozenset())


# ============================================================
# Evaluation
# ============================================================

# Modes
E_EVAL   = 0
E_RETURN = 1

# Frames
F_ARG   = 0   # function evaluated; evaluate the pending argument next
F_APPLY = 1   # argument evaluated; apply the saved function value


def _contract(f, x):
    """One rewrite step. Returns a value, or an App still to be evaluated."""
    if f == I:
        return x
    if f == K:
        return KPartial(x)
    if f == S:
        return SPartial1(x)
    if isinstance(f, KPartial):
        return f.a
    if isinstance(f, SPartial1):
        return SPartial2(f.a, x)
    if isinstance(f, SPartial2):
        return App(App(f.a, x), App(f.b, x))
    raise TypeError(f"Cannot apply {f!r}")


def evaluate(term, fuel: int = DEFAULT_FUEL):
    """Reduce a term to a value. Raises ReductionLimit after `fuel` steps."""
    stack: list[tuple[int, object]] = []
    mode = E_EVAL
    cur = term
    value = None
    steps = 0

    while True:
        steps += 1
        if steps > fuel:
            raise ReductionLimit(f"No value within {fuel} steps")

        if mode == E_EVAL:
            if isinstance(cur, App):
                stack.append((F_ARG, cur.x))
                cur = cur.f
            else:
                value = cur
                mode = E_RETURN
            continue

        if not stack:
            return value

        kind, payload = stack.pop()
        if kind == F_ARG:
            stack.append((F_APPLY, value))
            cur = payload
            mode = E_EVAL
        else:
            result = _contract(payload, value)
            if isinstance(result, App):
                cur = result
                mode = E_EVAL
            else:
                value = result


def reduce_source(text: str, fuel: int = DEFAULT_FUEL,
                  definitions: dict[str, str] | None = None):
    return evaluate(parse_term(text, definitions), fuel)


# ============================================================
# Formatting
# ============================================================

def _spine(t) -> list:
    """Head and arguments of a term or partial value, in application order."""
    if isinstance(t, App):
        return _spine(t.f) + [t.x]
    if isinstance(t, KPartial):
        return [K, t.a]
    if isinstance(t, SPartial1):
        return [S, t.a]
    if isinstance(t, SPartial2):
        return [S, t.a, t.b]
    return [t]


def format_term(t) -> str:
    parts = _spine(t)
    out = [repr(parts[0])]
    for arg in parts[1:]:
        s = format_term(arg)
        out.append(f"({s})" if len(_spine(arg)) > 1 else s)
    return " ".join(out)


# ============================================================
# Main
# ============================================================

DEMO_DEFINITIONS = {
    "S2": "B (B W) (B B C)",
}

DEMO_TERMS = [
    "B",
    "W",
    "C",
    "S S K I K K",
    "S2 S2 K I K K",
]


def main():
    if len(sys.argv) > 1:
        try:
            print(format_term(reduce_source(" ".join(sys.argv[1:]))))
        except (SyntaxError, NameError, ValueError, ReductionLimit) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    for text in DEMO_TERMS:
        try:
            value = reduce_source(text, definitions=DEMO_DEFINITIONS)
            print(f"{text}  =>  {format_term(value)}")
        except ReductionLimit as e:
            print(f"{text}  =>  (diverges: {e})")


if __name__ == "__main__":
    main()
