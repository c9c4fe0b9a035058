""" Test cases for matching, scoring and selection """

import pytest

from rulebard import evaluator, facts, query, rule, ruleset
from rulebard.query import NO_MATCH, Query, Selected

from . import selection_counts

def test_greet_sunny_scenario(greet_rule):
    rs = ruleset.build([greet_rule])
    result = evaluator.evaluate(rs, facts.WorldState({"weather": "sunny"}), Query("dialogue"))
    assert result == Selected("greet_sunny", "line_042")
    assert result.matched
    assert result

    result = evaluator.evaluate(rs, facts.WorldState({"weather": "rainy"}), Query("dialogue"))
    assert result == NO_MATCH
    assert not result.matched
    assert not result

def test_unknown_kind_is_no_match(dialogue_ruleset, world):
    assert evaluator.evaluate(dialogue_ruleset, world, Query("combat")) is NO_MATCH
    assert evaluator.evaluate_all(dialogue_ruleset, world, Query("combat")) == []

def test_missing_ruleset_is_misuse(world):
    with pytest.raises(TypeError):
        evaluator.evaluate(None, world, Query("dialogue")) # type: ignore
    with pytest.raises(TypeError):
        evaluator.evaluate_all(None, world, Query("dialogue")) # type: ignore

def test_single_matching_rule_always_selected():
    r = rule.Rule("r", "k", (("hp", ">=", 10), ("mood", "in", ["calm", "bored"])), priority=-3, weight=0.0, output="o")
    rs = ruleset.build([r])
    world = facts.WorldState({"hp": 10, "mood": "bored"})
    for seed in (None, 0, 1, 2, 99):
        assert evaluator.evaluate(rs, world, Query("k", seed=seed)) == Selected("r", "o")

    world.set_fact("mood", "angry")
    assert selection_counts(rs, world, "k", range(20)) == {None: 20}

def test_highest_priority_wins(dialogue_ruleset, world):
    # greet_sunny (1) beats greet_any (0)
    assert evaluator.evaluate(dialogue_ruleset, world, Query("dialogue")) == Selected("greet_sunny", "line_042")

    # warn_hurt (5) beats everything once hp is low
    world.set_fact("hp", 10)
    assert evaluator.evaluate(dialogue_ruleset, world, Query("dialogue")) == Selected("warn_hurt", "line_100")

    world.set_fact("weather", "foggy")
    world.set_fact("hp", 100)
    assert evaluator.evaluate(dialogue_ruleset, world, Query("dialogue")) == Selected("greet_any", "line_001")

def test_lower_priority_never_selected():
    rs = ruleset.build([
        rule.Rule("a", "k", priority=5, output="a"),
        rule.Rule("b", "k", priority=5, output="b"),
        rule.Rule("c", "k", priority=3, weight=1000.0, output="c"),
    ])
    counts = selection_counts(rs, facts.WorldState(), "k", range(200))
    assert counts["c"] == 0
    assert counts["a"] > 0
    assert counts["b"] > 0

def test_seeded_choice_is_reproducible():
    rs = ruleset.build([
        rule.Rule("one", "k", weight=1.0, output="1"),
        rule.Rule("two", "k", weight=1.0, output="2"),
        rule.Rule("three", "k", weight=2.0, output="3"),
    ])
    world = facts.WorldState()
    for seed in range(20):
        first = evaluator.evaluate(rs, world, Query("k", seed=seed))
        for _ in range(5):
            assert evaluator.evaluate(rs, world, Query("k", seed=seed)) == first

    # varying only the seed changes the outcome
    outcomes = set(evaluator.evaluate(rs, world, Query("k", seed=seed)) for seed in range(50))
    assert len(outcomes) > 1

def test_seeded_choice_ignores_declaration_order():
    rules = [
        rule.Rule("one", "k", weight=1.0, output="1"),
        rule.Rule("two", "k", weight=1.0, output="2"),
        rule.Rule("three", "k", weight=2.0, output="3"),
    ]
    forward = ruleset.build(rules)
    backward = ruleset.build(list(reversed(rules)))
    world = facts.WorldState()
    for seed in range(30):
        assert evaluator.evaluate(forward, world, Query("k", seed=seed)) == evaluator.evaluate(backward, world, Query("k", seed=seed))

def test_weights_shape_the_distribution():
    rs = ruleset.build([
        rule.Rule("rare", "k", weight=1.0, output="r"),
        rule.Rule("common", "k", weight=9.0, output="c"),
    ])
    counts = selection_counts(rs, facts.WorldState(), "k", range(1000))
    assert counts["common"] > counts["rare"] * 3

def test_zero_weight_only_when_alone():
    rs = ruleset.build([
        rule.Rule("never", "k", weight=0.0, output="n"),
        rule.Rule("always", "k", weight=0.5, output="a"),
    ])
    counts = selection_counts(rs, facts.WorldState(), "k", list(range(100)) + [None] * 20)
    assert counts == {"always": 120}

    # all zero weights fall back to a uniform pick
    rs = ruleset.build([
        rule.Rule("z1", "k", weight=0.0, output="1"),
        rule.Rule("z2", "k", weight=0.0, output="2"),
    ])
    counts = selection_counts(rs, facts.WorldState(), "k", range(100))
    assert set(counts) == {"z1", "z2"}

def test_overrides_shadow_world(dialogue_ruleset, world):
    q = Query("dialogue", overrides={"weather": "rainy"})
    assert evaluator.evaluate(dialogue_ruleset, world, q) == Selected("greet_rainy", "line_043")
    # world untouched
    assert world["weather"] == "sunny"
    assert evaluator.evaluate(dialogue_ruleset, world, Query("dialogue")) == Selected("greet_sunny", "line_042")

    # overrides can supply facts the world doesn't have
    q = Query("idle_anim", overrides={"is_night": True})
    assert evaluator.evaluate(dialogue_ruleset, facts.WorldState(), q) == Selected("idle_yawn", b"\x00yawn")

def test_exclusions(dialogue_ruleset, world):
    q = Query("dialogue", exclusions=frozenset(("greet_sunny",)))
    assert evaluator.evaluate(dialogue_ruleset, world, q) == Selected("greet_any", "line_001")

    q = Query("dialogue", exclusions={"greet_sunny", "greet_any"})
    assert evaluator.evaluate(dialogue_ruleset, world, q) is NO_MATCH

def test_evaluate_all(dialogue_ruleset, world):
    matches = evaluator.evaluate_all(dialogue_ruleset, world, Query("dialogue"))
    assert [r.rule_id for r in matches] == ["greet_sunny"]

    rs = ruleset.build([
        rule.Rule("a", "k", priority=2, output="a"),
        rule.Rule("b", "k", priority=1, output="b"),
        rule.Rule("c", "k", priority=2, output="c"),
    ])
    assert [r.rule_id for r in evaluator.evaluate_all(rs, facts.WorldState(), Query("k"))] == ["a", "c"]

def test_type_mismatch_never_raises():
    rs = ruleset.build([
        rule.Rule("r", "k", (("hp", ">", 3), ("name", "has", "x"), ("flags", "in", [1, 2])), output="o"),
    ])
    world = facts.WorldState({"hp": "lots", "name": 7, "flags": facts.tags("a")})
    assert evaluator.evaluate(rs, world, Query("k")) is NO_MATCH

def test_choose_single_candidate_skips_randomness():
    r = rule.Rule("only", "k", weight=0.0)
    assert evaluator.choose([r]) is r
    assert evaluator.choose([r], seed=12) is r

def test_query_validation():
    with pytest.raises(ValueError):
        query.Query("k", seed=-1)
    with pytest.raises(TypeError):
        query.Query("k", overrides={"bad": object()})
    assert query.Query("k", overrides={"a": 1}) == query.Query("k", overrides={"a": 1})
    assert hash(query.Query("k", exclusions={"x"})) == hash(query.Query("k", exclusions=frozenset(("x",))))
