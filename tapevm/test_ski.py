"""
SKI reducer tests.
"""

from __future__ import annotations

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from tapevm import ski
from tapevm.ski import (
    App, I, K, S, KPartial, SPartial1, SPartial2, ReductionLimit,
    evaluate, format_term, parse_term, reduce_source,
)


def test_parse_is_left_associative():
    assert parse_term("S K I") == App(App(S, K), I)
    assert parse_term("S (K I)") == App(S, App(K, I))
    assert parse_term("((S))") == S


def test_parse_expands_definitions():
    assert parse_term("B") == parse_term("S (K S) K")
    assert parse_term("X I", {"X": "K"}) == App(K, I)


def test_parse_errors():
    with pytest.raises(NameError):
        parse_term("S Q")
    with pytest.raises(SyntaxError):
        parse_term("S (K")
    with pytest.raises(ValueError):
        parse_term("L", {"L": "S L"})


def test_identity_and_constant():
    assert reduce_source("I S") == S
    assert reduce_source("K S I") == S
    assert reduce_source("K S") == KPartial(S)


def test_s_partials():
    assert reduce_source("S K") == SPartial1(K)
    assert reduce_source("S K K") == SPartial2(K, K)


def test_skk_is_identity():
    for x in ("S", "K", "I", "K S"):
        assert reduce_source(f"S K K ({x})") == reduce_source(x)


def test_birds():
    # B f g x = f (g x)
    assert format_term(reduce_source("B K I S")) == "K S"
    # W f x = f x x
    assert reduce_source("W K S") == S
    # C f x y = f y x
    assert reduce_source("C K I S") == S


def test_ssk_ikk():
    assert reduce_source("S S K I K K") == I


def test_fuel_limit():
    omega = "S I I (S I I)"
    with pytest.raises(ReductionLimit):
        reduce_source(omega, fuel=10_000)


def test_evaluate_values_are_fixed_points():
    v = SPartial2(K, KPartial(I))
    assert evaluate(v) == v


def test_format():
    assert format_term(S) == "S"
    assert format_term(parse_term("S (K S) K")) == "S (K S) K"
    assert format_term(SPartial2(KPartial(S), K)) == "S (K S) K"


def test_demo_main(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ski"])
    ski.main()
    lines = capsys.readouterr().out.splitlines()
    assert "S S K I K K  =>  I" in lines
    assert "S2 S2 K I K K  =>  I" in lines
    assert len(lines) == len(ski.DEMO_TERMS)


def test_main_reduces_argument(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ski", "B", "K", "I", "S"])
    ski.main()
    assert capsys.readouterr().out == "K S\n"


def test_main_reports_errors(monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["ski", "S", "Q"])
    with pytest.raises(SystemExit) as exc:
        ski.main()
    assert exc.value.code == 1
    assert "Error:" in capsys.readouterr().err
