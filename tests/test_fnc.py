import pytest

from cfg import Grammar, Rule, is_nonterminal
from cnf import BinaryRule, TerminalRule
from fnc import (
    CNFConverter, ConversionFailure, FreshSymbols, assemble_cnf, convert, lift_terminals,
    remove_epsilon, remove_unit, split_long, to_cnf,
)


def rules_of(*lines):
    return Grammar.parse_txt("\n".join(lines)).rules


def check_shape(cnf):
    for r in cnf.rules:
        if isinstance(r, TerminalRule):
            assert not is_nonterminal(r.terminal), r
        else:
            assert isinstance(r, BinaryRule)
            assert is_nonterminal(r.left) and is_nonterminal(r.right), r


def check_equivalent(language, g, max_len=6):
    cnf = convert(g)
    check_shape(cnf)
    expected = language(g.start, g.rules, max_len)
    assert language(cnf.start, cnf.rules, max_len) == expected - {""}
    assert cnf.accepts_empty == ("" in expected)
    return cnf


# ---- escenarios ----

def test_near_cnf_grammar(language):
    g = Grammar.parse_txt("S -> A B | a\nA -> a\nB -> b")
    cnf = check_equivalent(language, g)
    assert cnf.start == "S_newstart"
    assert BinaryRule("S_newstart", "A", "B") in cnf.rules
    assert TerminalRule("S_newstart", "a") in cnf.rules
    assert language(cnf.start, cnf.rules, 4) == {"ab", "a"}


def test_nullable_start(language):
    g = Grammar.parse_txt("S -> A A\nA -> . | a")
    cnf = check_equivalent(language, g)
    assert cnf.accepts_empty
    assert language(cnf.start, cnf.rules, 4) == {"a", "aa"}
    assert all(r.rhs != (".",) for r in cnf.rules)


def test_long_rule_chain(language):
    g = Grammar.parse_txt("A -> 0 1 2 3")
    rules = split_long(remove_unit(remove_epsilon(g.rules, "A")), FreshSymbols.for_grammar(g))
    chain = sorted({r.lhs for r in rules} - {"A"})
    assert chain == ["A_extra0,0", "A_extra0,1"]
    assert rules == (
        Rule("A", ("0", "A_extra0,0")),
        Rule("A_extra0,0", ("1", "A_extra0,1")),
        Rule("A_extra0,1", ("2", "3")),
    )
    assert language("A", rules, 6) == {"0123"}
    check_equivalent(language, g)


def test_mixed_rule_reuses_substitute():
    fresh = FreshSymbols({"A", "B", "C", "0"})
    rules = lift_terminals([Rule("A", ("B", "0")), Rule("C", ("0", "0")), Rule("B", ("0",))], fresh)
    assert rules == (
        Rule("A", ("B", "U_extra,0")),
        Rule("C", ("U_extra,0", "U_extra,0")),
        Rule("B", ("0",)),
        Rule("U_extra,0", ("0",)),
    )


def test_epsilon_single_occurrence_deletion():
    rules = remove_epsilon(rules_of("S -> A b A", "A -> . | a", "S_0 -> S"), "S_0")
    assert Rule("S", ("b", "A")) in rules
    assert Rule("S", ("A", "b")) in rules
    assert Rule("S", ("b",)) in rules
    assert not any(r.is_blank for r in rules)


def test_epsilon_only_nullable_symbol_is_dropped():
    rules = remove_epsilon(rules_of("S -> A b | c", "A -> .", "S_0 -> S"), "S_0")
    assert set(rules) == {Rule("S", ("b",)), Rule("S", ("c",)), Rule("S_0", ("S",))}


def test_transitive_nullable(language):
    check_equivalent(language, Grammar.parse_txt("C -> B c\nB -> A A\nA -> . | a"))


def test_recursive_nullable(language):
    # A -> A | .
    g = Grammar.parse_txt("S -> A b\nA -> A | . | a")
    cnf = check_equivalent(language, g)
    assert language(cnf.start, cnf.rules, 3) == {"b", "ab"}


def test_unit_chain_any_order(language):
    g = Grammar.parse_txt("S -> A\nA -> B\nB -> C\nC -> c d | e")
    rules = remove_unit(g.rules)
    assert not any(r.is_unit for r in rules)
    assert Rule("S", ("c", "d")) in rules and Rule("S", ("e",)) in rules
    check_equivalent(language, g)


def test_unit_cycle_terminates(language):
    g = Grammar.parse_txt("S -> A | s\nA -> B | a\nB -> A | b")
    rules = remove_unit(g.rules)
    assert not any(r.is_unit for r in rules)
    cnf = check_equivalent(language, g)
    assert language(cnf.start, cnf.rules, 2) == {"s", "a", "b"}


def test_pure_unit_cycle_leaves_no_dangling_rules(language):
    g = Grammar.parse_txt("S -> A B | s\nA -> B\nB -> A")
    cnf = check_equivalent(language, g)
    assert {r.lhs for r in cnf.rules} >= (cnf.nonterminals - {cnf.start})


def test_fresh_names_avoid_collisions(language):
    g = Grammar.parse_txt(
        "S -> a b c | S_newstart U_extra,a\nS_newstart -> x\nU_extra,a -> y\nS_extra0,0 -> z\nS -> S_extra0,0"
    )
    cnf = check_equivalent(language, g)
    assert cnf.start == "S_newstart_newstart"
    assert TerminalRule("U_extra,a,1", "a") in cnf.rules
    assert TerminalRule("U_extra,a", "y") in cnf.rules


def test_symbol_terminals(language):
    g = Grammar.parse_txt("E -> E + T | T\nT -> ( E ) | i")
    cnf = check_equivalent(language, g, max_len=7)
    assert TerminalRule("U_extra,x2b", "+") in cnf.rules


def test_reconvert_cnf_is_equivalent(language):
    g = Grammar.parse_txt("S -> a S b | a b | .")
    cnf = check_equivalent(language, g)
    again = Grammar.from_rules([Rule(r.lhs, r.rhs) for r in cnf.rules], cnf.start)
    check_equivalent(language, again)
    assert language(convert(again).start, convert(again).rules, 6) == {"ab", "aabb", "aaabbb"}


def test_assembler_fails_on_bad_length():
    with pytest.raises(ConversionFailure):
        assemble_cnf([Rule("S", ("a",)), Rule("S", ("A", "B", "C"))], "S")
    with pytest.raises(ConversionFailure):
        assemble_cnf([Rule("S", ())], "S")


def test_to_cnf_maps_failure_to_none(monkeypatch):
    import fnc
    monkeypatch.setattr(fnc, "split_long", lambda rules, fresh: rules)
    g = Grammar.parse_txt("S -> A B C\nA -> a\nB -> b\nC -> c")
    assert to_cnf(g) is None
    assert g.to_cnf() is None


def test_grammar_to_cnf():
    cnf = Grammar.parse_txt("S -> a b").to_cnf()
    assert cnf is not None
    assert cnf.start == "S_newstart"


def test_converter_report_and_mappings():
    g = Grammar.parse_txt("S -> A 0 1 | .\nA -> a")
    cnf, mappings, report = CNFConverter(g).convert()
    assert mappings["added_start"] == {"new_start": "S_newstart", "old_start": "S"}
    assert mappings["removed_epsilon"]["start_nullable"]
    assert mappings["terminal_lifting"] == {"0": "U_extra,0", "1": "U_extra,1"}
    assert set(mappings["binarization"]) == {"S_extra0,0", "S_newstart_extra1,0"}
    assert report.splitlines()[0] == "== Conversión a FNC/CNF iniciada =="
    assert report.splitlines()[-1] == "== Conversión finalizada =="
    assert cnf.accepts_empty


def test_newline_token_is_a_terminal():
    cnf = convert(Grammar("S", [Rule("S", ("a", "A\n"))]))
    assert cnf.terminals == {"a", "A\n"}
    assert TerminalRule("U_extra,x41,a", "A\n") in cnf.rules
    assert BinaryRule("S_newstart", "U_extra,a", "U_extra,x41,a") in cnf.rules


def test_converter_can_run_twice():
    conv = CNFConverter(Grammar.parse_txt("S -> a b c | .\nA -> a"))
    first = conv.convert()
    second = conv.convert()
    assert second[0] == first[0]
    assert second[0].start == "S_newstart"
    assert second[2] == first[2]
