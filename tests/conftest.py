from collections import defaultdict

import pytest

from cfg import BLANK, is_nonterminal


def derivable(start, rules, max_len):
    """Cadenas de longitud <= max_len derivables desde start (punto fijo por NT)."""
    lang = defaultdict(set)
    changed = True
    while changed:
        changed = False
        for r in rules:
            produced = {""}
            for sym in r.rhs:
                if sym == BLANK:
                    part = {""}
                elif is_nonterminal(sym):
                    part = lang[sym]
                else:
                    part = {sym}
                produced = {a + b for a in produced for b in part if len(a + b) <= max_len}
                if not produced:
                    break
            new = produced - lang[r.lhs]
            if new:
                lang[r.lhs] |= new
                changed = True
    return set(lang[start])


@pytest.fixture
def language():
    return derivable
