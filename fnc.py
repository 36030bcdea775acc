#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
fnc.py — Conversión de una CFG a Forma Normal de Chomsky (FNC/CNF).

Etapas (cada una es una función pura: tupla de reglas -> tupla de reglas):
  1. remove_epsilon  : elimina no terminales anulables (A -> .)
  2. remove_unit     : elimina producciones unitarias (A -> B)
  3. split_long      : parte RHS de longitud > 2 en cadenas binarias
  4. lift_terminals  : sustituye terminales en RHS de longitud 2
  5. assemble_cnf    : clasifica cada regla como A -> a o A -> B C

Antes de la etapa 1 se envuelve el símbolo inicial: S_newstart -> S.

CLI:
  fnc --in grammar.txt --out cnf.json --txt cnf.txt --report report.md [--start S] [--dot cnf.dot]

Salidas:
  - cnf.json : gramática en CNF estructurada (JSON)
  - cnf.txt  : gramática en CNF legible (mismo estilo con "->" y "|")
  - report.md: resumen de pasos y estadísticas
  - cnf.dot  : grafo de dependencias entre símbolos (Graphviz)

Notas:
  - Los símbolos frescos (S_newstart, A_extra{i},{j}, U_extra,{t}) los reparte un
    FreshSymbols por conversión, que conoce todos los símbolos de la gramática.
  - La cadena vacía no se representa con una regla; si el inicio original es
    anulable, CNFGrammar.accepts_empty es True.
"""

from __future__ import annotations
import argparse
import itertools
import json
import logging
import sys
from collections import deque
from typing import Dict, Iterable, List, Set, Tuple

from cfg import Grammar, GrammarSyntaxError, Rule, is_nonterminal
from cnf import BinaryRule, CNFGrammar, CNFRule, TerminalRule

log = logging.getLogger(__name__)

NEWSTART_SUFFIX = "_newstart"
EXTRA_SUFFIX = "_extra"
SUBSTITUTE_PREFIX = "U_extra,"

Rules = Tuple[Rule, ...]


class ConversionFailure(Exception):
    """Alguna regla no quedó con forma CNF tras las cuatro etapas."""


# ------------------------------ Símbolos frescos ------------------------------
class FreshSymbols:
    """Reparte no terminales nuevos que no chocan con ningún símbolo existente."""

    def __init__(self, taken: Iterable[str] = ()):
        self.taken: Set[str] = set(taken)
        self.substitutes: Dict[str, str] = {}  # terminal -> NT sustituto
        self._chain_counter = itertools.count()

    @staticmethod
    def for_grammar(g: Grammar) -> "FreshSymbols":
        return FreshSymbols(g.nonterminals | g.terminals)

    def _claim(self, name: str) -> str:
        assert is_nonterminal(name), name
        self.taken.add(name)
        return name

    def new_start(self, start: str) -> str:
        name = start + NEWSTART_SUFFIX
        while name in self.taken:
            name += NEWSTART_SUFFIX
        return self._claim(name)

    def chain(self, lhs: str, length: int) -> List[str]:
        """Nombres A_extra{i},0 .. A_extra{i},{length-1}; i es único por cadena."""
        while True:
            i = next(self._chain_counter)
            names = [f"{lhs}{EXTRA_SUFFIX}{i},{j}" for j in range(length)]
            if self.taken.isdisjoint(names):
                break
        for name in names:
            self._claim(name)
        return names

    def substitute(self, terminal: str) -> str:
        """NT dedicado a un terminal; se reutiliza en toda la gramática."""
        if terminal in self.substitutes:
            return self.substitutes[terminal]
        if terminal.isascii() and terminal.isalnum():
            tag = terminal
        else:
            tag = "x" + ",".join(f"{ord(c):x}" for c in terminal)
        name = SUBSTITUTE_PREFIX + tag
        n = 0
        while name in self.taken:
            n += 1
            name = f"{SUBSTITUTE_PREFIX}{tag},{n}"
        self.substitutes[terminal] = self._claim(name)
        return name


def _dedupe(rules: Iterable[Rule]) -> Rules:
    return tuple(dict.fromkeys(rules))


def drop_undefined(rules: Iterable[Rule]) -> Rules:
    """Descarta reglas que usan un no terminal sin ninguna regla propia (hasta punto fijo)."""
    rules = tuple(rules)
    while True:
        defined = {r.lhs for r in rules}
        kept = tuple(r for r in rules
                     if all(not is_nonterminal(s) or s in defined for s in r.rhs))
        if len(kept) == len(rules):
            return kept
        rules = kept


# ------------------------------ Etapas ------------------------------
def nullable_symbols(rules: Iterable[Rule], exclude: str | None = None) -> Set[str]:
    rules = tuple(rules)
    nullable: Set[str] = set()
    changed = True
    while changed:
        changed = False
        for r in rules:
            if r.lhs in nullable or r.lhs == exclude:
                continue
            if r.is_blank or all(s in nullable for s in r.rhs):
                nullable.add(r.lhs)
                changed = True
    return nullable


def remove_epsilon(rules: Iterable[Rule], start: str) -> Rules:
    """Elimina A -> . reescribiendo cada ocurrencia de un anulable.

    Cada ocurrencia se borra por separado; las reglas sintetizadas vuelven a la
    cola, así que con varias ocurrencias se obtienen todas las combinaciones no
    vacías. Un RHS que queda vacío se descarta. `start` nunca se trata como
    anulable.
    """
    rules = tuple(rules)
    nullable = nullable_symbols(rules, exclude=start)
    # partición: reglas ε por un lado, el resto por otro
    kept = [r for r in rules if not r.is_blank or r.lhs == start]
    log.debug("anulables: %s", sorted(nullable))

    result: Dict[Rule, None] = {}
    queue = deque(kept)
    while queue:
        rule = queue.popleft()
        if rule in result:
            continue
        result[rule] = None
        for i, sym in enumerate(rule.rhs):
            if sym not in nullable:
                continue
            rhs = rule.rhs[:i] + rule.rhs[i + 1:]
            if rhs:
                # vuelve a la cola para borrar también varias ocurrencias (S -> A b A da S -> b);
                # sin esto se pierden cadenas no vacías
                queue.append(Rule(rule.lhs, rhs))
    return drop_undefined(result)


def remove_unit(rules: Iterable[Rule]) -> Rules:
    """Elimina A -> B copiando en A las reglas no unitarias de todo B alcanzable por unitarias."""
    units, rest = [], []
    for r in rules:
        (units if r.is_unit else rest).append(r)
    graph: Dict[str, List[str]] = {}
    for u in units:
        graph.setdefault(u.lhs, []).append(u.rhs[0])

    derived: List[Rule] = []
    for u in units:
        # cierre unitario desde B; la partición es fija, así que los ciclos terminan
        targets = {u.rhs[0]}
        pending = [u.rhs[0]]
        while pending:
            for nxt in graph.get(pending.pop(), []):
                if nxt not in targets:
                    targets.add(nxt)
                    pending.append(nxt)
        derived.extend(Rule(u.lhs, r.rhs) for r in rest if r.lhs in targets)
    log.debug("unitarias eliminadas: %d, reglas derivadas: %d", len(units), len(derived))
    return drop_undefined(_dedupe(rest + derived))


def split_long(rules: Iterable[Rule], fresh: FreshSymbols) -> Rules:
    """A -> X1 X2 ... Xn (n > 2) pasa a A -> X1 A_extra{i},0, A_extra{i},0 -> X2 A_extra{i},1, ..."""
    out: List[Rule] = []
    for r in rules:
        if len(r.rhs) <= 2:
            out.append(r)
            continue
        chain = fresh.chain(r.lhs, len(r.rhs) - 2)
        heads = [r.lhs] + chain
        for k in range(len(chain)):
            out.append(Rule(heads[k], (r.rhs[k], heads[k + 1])))
        # el último eslabón se queda con los dos símbolos finales
        out.append(Rule(heads[-1], r.rhs[-2:]))
    return tuple(out)


def lift_terminals(rules: Iterable[Rule], fresh: FreshSymbols) -> Rules:
    """Reemplaza terminales en RHS de longitud 2 por un NT compartido por terminal."""
    out: List[Rule] = []
    for r in rules:
        if len(r.rhs) != 2:
            out.append(r)
            continue
        out.append(Rule(r.lhs, tuple(s if is_nonterminal(s) else fresh.substitute(s) for s in r.rhs)))
    out.extend(Rule(nt, (t,)) for t, nt in fresh.substitutes.items())
    return _dedupe(out)


def make_cnf_rule(r: Rule) -> CNFRule:
    if len(r.rhs) == 1:
        assert not is_nonterminal(r.rhs[0]), f"CNF inválida: {r} (unitaria)"
        return TerminalRule(r.lhs, r.rhs[0])
    if len(r.rhs) == 2:
        return BinaryRule(r.lhs, *r.rhs)
    raise ConversionFailure(f"CNF inválida: {r}")


def assemble_cnf(rules: Iterable[Rule], start: str, accepts_empty: bool = False) -> CNFGrammar:
    cnf_rules = [make_cnf_rule(r) for r in rules]
    # agrupadas por LHS en orden de aparición, el mismo orden que usa to_json
    grouped: Dict[str, List[CNFRule]] = {}
    for r in cnf_rules:
        grouped.setdefault(r.lhs, []).append(r)
    return CNFGrammar(start, [r for rs in grouped.values() for r in rs], accepts_empty)


# ------------------------------ Conversor ------------------------------
class CNFConverter:
    def __init__(self, g: Grammar):
        self.g = g
        self._reset()

    def _reset(self):
        # Estado por conversión: cada llamada a convert() empieza de cero
        self.fresh = FreshSymbols.for_grammar(self.g)
        self.report: List[str] = []
        # Mapeos para reconstrucción
        self.mappings = {
            "added_start": None,
            "removed_epsilon": {"nullable": [], "start_nullable": False},
            "removed_unit": {"unit_pairs": []},
            "binarization": {},      # NT de la cadena -> su RHS binario
            "terminal_lifting": {},  # terminal -> NT sustituto
        }

    def convert(self) -> Tuple[CNFGrammar, dict, str]:
        self._reset()
        self.report.append("== Conversión a FNC/CNF iniciada ==")
        S = self.g.start
        S0 = self.fresh.new_start(S)
        rules: Rules = self.g.rules + (Rule(S0, (S,)),)
        self.mappings["added_start"] = {"new_start": S0, "old_start": S}
        self.report.append(f"Símbolo inicial introducido: {S0} → {S}")

        nullable = nullable_symbols(rules, exclude=S0)
        start_nullable = S in nullable
        rules = remove_epsilon(rules, S0)
        self.mappings["removed_epsilon"] = {"nullable": sorted(nullable), "start_nullable": start_nullable}
        self.report.append(f"ε-producciones eliminadas. Anulables: {sorted(nullable)}. Reglas: {len(rules)}.")

        unit_pairs = sorted({(r.lhs, r.rhs[0]) for r in rules if r.is_unit})
        rules = remove_unit(rules)
        self.mappings["removed_unit"]["unit_pairs"] = unit_pairs
        self.report.append(f"Producciones unitarias eliminadas. Pares: {unit_pairs}.")

        before = len(rules)
        old_lhs = {r.lhs for r in rules}
        rules = split_long(rules, self.fresh)
        self.mappings["binarization"] = {r.lhs: list(r.rhs) for r in rules if r.lhs not in old_lhs}
        self.report.append(f"Binarización aplicada: {before} reglas -> {len(rules)} reglas.")

        rules = lift_terminals(rules, self.fresh)
        self.mappings["terminal_lifting"] = dict(self.fresh.substitutes)
        self.report.append(
            f"Terminal lifting aplicado. Introducidos {len(self.fresh.substitutes)} preterminales."
        )

        cnf = assemble_cnf(rules, S0, start_nullable)
        self.report.append("== Conversión finalizada ==")
        log.debug("CNF con %d reglas", len(cnf.rules))
        return cnf, self.mappings, "\n".join(self.report)


def convert(g: Grammar) -> CNFGrammar:
    """Convierte a CNF. Lanza ConversionFailure si alguna regla no encaja."""
    cnf, _, _ = CNFConverter(g).convert()
    return cnf


def to_cnf(g: Grammar) -> CNFGrammar | None:
    try:
        return convert(g)
    except ConversionFailure as e:
        log.debug("conversión fallida: %s", e)
        return None


# ------------------------------ CLI ------------------------------

def main(argv: List[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Convertir CFG a FNC/CNF.")
    ap.add_argument("--in", dest="infile", required=True, help="Ruta del archivo de gramática (txt)")
    ap.add_argument("--out", dest="outfile", default="cnf.json", help="Salida JSON (cnf.json)")
    ap.add_argument("--txt", dest="txtfile", default="cnf.txt", help="Salida legible (cnf.txt)")
    ap.add_argument("--report", dest="repfile", default="report.md", help="Reporte de pasos (report.md)")
    ap.add_argument("--start", dest="start", default=None, help="Símbolo inicial (por defecto, primer LHS)")
    ap.add_argument("--dot", dest="dotfile", default=None, help="Grafo de símbolos en formato DOT")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log de depuración")
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    with open(args.infile, "r", encoding="utf-8") as f:
        text = f.read()
    try:
        g = Grammar.parse_txt(text, start=args.start)
        cnf_g, mappings, report = CNFConverter(g).convert()
    except (GrammarSyntaxError, ConversionFailure) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Escribir salidas
    with open(args.outfile, "w", encoding="utf-8") as f:
        json.dump(cnf_g.to_json(mappings=mappings), f, ensure_ascii=False, indent=2)
    with open(args.txtfile, "w", encoding="utf-8") as f:
        f.write(cnf_g.to_txt() + "\n")
    with open(args.repfile, "w", encoding="utf-8") as f:
        f.write("# CNF Conversion Report\n\n")
        f.write(report + "\n\n")
        f.write("## Resumen\n")
        f.write(f"- No terminales: {len(cnf_g.nonterminals)}\n")
        f.write(f"- Terminales: {len(cnf_g.terminals)}\n")
        f.write(f"- Reglas: {len(cnf_g.rules)}\n")
        f.write(f"- Acepta ε: {'sí' if cnf_g.accepts_empty else 'no'}\n")
    if args.dotfile:
        cnf_g.to_graphviz().save(filename=args.dotfile)
    print("Conversión a FNC/CNF completada.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
