#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cnf.py — Gramática en Forma Normal de Chomsky (FNC/CNF) producida por fnc.py.

Cada regla tiene exactamente una de dos formas:
  - TerminalRule: A -> a
  - BinaryRule:   A -> B C   (B y C no terminales)

No hay reglas ε. Si el símbolo inicial original derivaba la cadena vacía,
se indica con accepts_empty (en texto se imprime "S_newstart -> ." como anotación).

Los índices terminal_rules / binary_rules tienen la forma que espera un parser CYK:
  terminal_rules: a -> {A}
  binary_rules:   (B, C) -> {A}
"""

from __future__ import annotations
import json
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Set, Tuple, Union

from graphviz import Digraph

from cfg import ARROW, BLANK


@dataclass(frozen=True)
class TerminalRule:
    lhs: str
    terminal: str

    @property
    def rhs(self) -> Tuple[str, ...]:
        return (self.terminal,)


@dataclass(frozen=True)
class BinaryRule:
    lhs: str
    left: str
    right: str

    @property
    def rhs(self) -> Tuple[str, ...]:
        return (self.left, self.right)


CNFRule = Union[TerminalRule, BinaryRule]


@dataclass(frozen=True)
class CNFGrammar:
    start: str
    rules: Tuple[CNFRule, ...]
    accepts_empty: bool = False

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))

    @property
    def nonterminals(self) -> Set[str]:
        nts = {self.start}
        for r in self.rules:
            nts.add(r.lhs)
            if isinstance(r, BinaryRule):
                nts.update(r.rhs)
        return nts

    @property
    def terminals(self) -> Set[str]:
        return {r.terminal for r in self.rules if isinstance(r, TerminalRule)}

    @property
    def terminal_rules(self) -> Dict[str, Set[str]]:
        index: Dict[str, Set[str]] = defaultdict(set)
        for r in self.rules:
            if isinstance(r, TerminalRule):
                index[r.terminal].add(r.lhs)
        return index

    @property
    def binary_rules(self) -> Dict[Tuple[str, str], Set[str]]:
        index: Dict[Tuple[str, str], Set[str]] = defaultdict(set)
        for r in self.rules:
            if isinstance(r, BinaryRule):
                index[r.rhs].add(r.lhs)
        return index

    # Serialización -------------------------------------------------------------
    def to_json(self, mappings: dict | None = None) -> dict:
        rules: Dict[str, list] = {}
        for r in self.rules:
            rules.setdefault(r.lhs, []).append(list(r.rhs))
        return {
            "start": self.start,
            "nonterminals": sorted(self.nonterminals),
            "terminals": sorted(self.terminals),
            "rules": rules,
            "accepts_empty": self.accepts_empty,
            "mappings": mappings or {},
        }

    @staticmethod
    def from_json(data: dict | str) -> "CNFGrammar":
        if isinstance(data, str):
            data = json.loads(data)
        rules = []
        for A, rhss in data["rules"].items():
            for rhs in rhss:
                if len(rhs) == 1:
                    rules.append(TerminalRule(A, rhs[0]))
                elif len(rhs) == 2:
                    rules.append(BinaryRule(A, rhs[0], rhs[1]))
                else:
                    raise ValueError(f"Regla no CNF: {A} -> {rhs}")
        return CNFGrammar(data["start"], rules, data.get("accepts_empty", False))

    def to_txt(self) -> str:
        grouped: Dict[str, list] = {}
        for r in self.rules:
            grouped.setdefault(r.lhs, []).append(" ".join(r.rhs))
        lines = []
        if self.accepts_empty:
            lines.append(f"# {self.start} {ARROW} {BLANK}")
        lines.extend(f"{A} {ARROW} " + " | ".join(alts) for A, alts in grouped.items())
        return "\n".join(lines)

    def to_graphviz(self) -> Digraph:
        """Grafo de dependencias: una arista A -> X por cada símbolo X en el RHS de A."""
        g = Digraph('G', node_attr={'shape': 'plain'})
        seen = set()
        term_ids: Dict[str, str] = {}
        for r in self.rules:
            for sym in r.rhs:
                if (r.lhs, sym) in seen:
                    continue
                seen.add((r.lhs, sym))
                if isinstance(r, TerminalRule):
                    if sym not in term_ids:
                        term_ids[sym] = f"t{len(term_ids)}"
                        g.node(term_ids[sym], sym, shape='box')
                    g.edge(r.lhs, term_ids[sym])
                else:
                    g.edge(r.lhs, sym)
        return g
