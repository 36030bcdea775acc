#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cfg.py — Gramáticas libres de contexto (CFG): símbolos, reglas y lectura de texto.

Formato de entrada:
  - Separador de producción: "->"
  - Alternativas separadas por "|"
  - Tokens en el lado derecho separados por espacios
  - "." representa la cadena vacía (ε); una alternativa vacía también es ε
  - Comentarios con "#" y líneas en blanco permitidas (sólo en parse_txt)

Ejemplos:
  S -> A B | a
  A -> 012 U_0 | .

Un token con forma de no terminal (A, U_0, A_1,2) es un único símbolo; cualquier
otro token se separa en un símbolo por carácter ("012" -> "0", "1", "2").
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Set, Tuple

ARROW = "->"
BLANK = "."  # ε
NT_PATTERN = re.compile(r"^[A-Z](_[A-Za-z0-9,]+)*$")


class GrammarSyntaxError(ValueError):
    """Texto de regla mal formado."""


def is_nonterminal(token: str) -> bool:
    """Una mayúscula seguida de cero o más grupos "_xxx" (letras, dígitos o comas)."""
    return NT_PATTERN.fullmatch(token) is not None


@dataclass(frozen=True)
class Rule:
    lhs: str
    rhs: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "rhs", tuple(self.rhs))

    @property
    def is_blank(self) -> bool:
        return self.rhs == (BLANK,)

    @property
    def is_unit(self) -> bool:
        return len(self.rhs) == 1 and is_nonterminal(self.rhs[0])

    def __str__(self):
        return f"{self.lhs} {ARROW} {' '.join(self.rhs)}"


def tokenize_alternative(alt: str) -> List[str]:
    symbols: List[str] = []
    for tok in alt.split():
        if is_nonterminal(tok):
            symbols.append(tok)
        else:
            symbols.extend(tok)
    if not symbols:
        return [BLANK]
    if BLANK in symbols and len(symbols) > 1:
        raise GrammarSyntaxError(f"'{BLANK}' sólo puede aparecer solo en una alternativa: {alt!r}")
    return symbols


def parse_rule(text: str) -> List[Rule]:
    """Parsea "LHS -> ALT1 | ALT2 | ..." en una regla por alternativa."""
    lhs, sep, rhs_str = text.partition(ARROW)
    if not sep:
        raise GrammarSyntaxError(f"Línea inválida (no se encontró {ARROW}): {text}")
    lhs = lhs.strip()
    if not is_nonterminal(lhs):
        raise GrammarSyntaxError(f"El lado izquierdo no es un no terminal: {lhs!r}")
    return [Rule(lhs, tokenize_alternative(alt)) for alt in rhs_str.split("|")]


@dataclass(frozen=True)
class Grammar:
    start: str
    rules: Tuple[Rule, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    @staticmethod
    def from_rules(rules: Iterable[Rule], start: str | None = None) -> "Grammar":
        rules = tuple(rules)
        if start is None:
            if not rules:
                raise GrammarSyntaxError("Gramática vacía: no hay símbolo inicial")
            start = rules[0].lhs
        return Grammar(start, rules)

    @staticmethod
    def parse_txt(text: str, start: str | None = None) -> "Grammar":
        """Parsea varias líneas de reglas. El símbolo inicial por defecto es el primer LHS."""
        rules: List[Rule] = []
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith('#'):
                continue
            rules.extend(parse_rule(line))
        return Grammar.from_rules(rules, start)

    @property
    def nonterminals(self) -> Set[str]:
        nts = {self.start}
        for r in self.rules:
            nts.add(r.lhs)
            nts.update(s for s in r.rhs if is_nonterminal(s))
        return nts

    @property
    def terminals(self) -> Set[str]:
        return {s for r in self.rules for s in r.rhs if not is_nonterminal(s) and s != BLANK}

    def to_cnf(self):
        """Convierte a CNF; devuelve None si la conversión falla."""
        from fnc import to_cnf
        return to_cnf(self)

    def to_json(self) -> dict:
        return {
            "start": self.start,
            "nonterminals": sorted(self.nonterminals),
            "terminals": sorted(self.terminals),
            "rules": [[r.lhs, list(r.rhs)] for r in self.rules],
        }

    def to_txt(self) -> str:
        # Agrupa alternativas por LHS conservando el orden de aparición
        grouped = {}
        for r in self.rules:
            grouped.setdefault(r.lhs, []).append(" ".join(r.rhs))
        return "\n".join(f"{A} {ARROW} " + " | ".join(alts) for A, alts in grouped.items())
