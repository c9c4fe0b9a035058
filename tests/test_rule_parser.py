""" Test cases for loading authored rules from toml """

import pytest

from rulebard import evaluator, facts, rule_parser
from rulebard.rule import Condition, Operator
from rulebard.query import NO_MATCH, Query, Selected
from rulebard.ruleset import ValidationError

def test_parse_criteria():
    assert rule_parser.parse_criteria("weather == 'sunny'") == Condition("weather", Operator.EQ, "sunny")
    assert rule_parser.parse_criteria('weather != "rainy"') == Condition("weather", Operator.NE, "rainy")
    assert rule_parser.parse_criteria("hp >= 10") == Condition("hp", Operator.GE, 10)
    assert rule_parser.parse_criteria("hp<=10") == Condition("hp", Operator.LE, 10)
    assert rule_parser.parse_criteria("hp > 2.5") == Condition("hp", Operator.GT, 2.5)
    assert rule_parser.parse_criteria("hp < -3") == Condition("hp", Operator.LT, -3)
    assert rule_parser.parse_criteria("region in ['docks', 'market']") == Condition("region", Operator.IN, ("docks", "market"))
    assert rule_parser.parse_criteria("guard.state has 'alert'") == Condition("guard.state", Operator.HAS_FLAG, "alert")
    assert rule_parser.parse_criteria("quest:flags has 4") == Condition("quest:flags", Operator.HAS_FLAG, 4)
    assert rule_parser.parse_criteria("0 <= hour < 12") == Condition("hour", Operator.IN_RANGE, (0, 12))
    assert rule_parser.parse_criteria("0.5 <= luck < 1.0") == Condition("luck", Operator.IN_RANGE, (0.5, 1.0))
    assert rule_parser.parse_criteria("is_night") == Condition("is_night", Operator.EQ, True)
    assert rule_parser.parse_criteria(" !is_night ") == Condition("is_night", Operator.EQ, False)

def test_parse_criteria_errors():
    for bad in ["", "!", "!1abc", "hp ~ 3", "hp == ", "hp == sunny", "== 3", "3"]:
        with pytest.raises(ValueError):
            rule_parser.parse_criteria(bad)
    with pytest.raises(ValueError):
        rule_parser.parse_criteria(3) # type: ignore

def test_parse_eval():
    test_config = """
        [greet_sunny]
        kind = "dialogue"
        priority = 1
        weight = 1
        output = "line_042"
        criteria = ["weather == 'sunny'"]

        [greet_night]
        kind = "dialogue"
        priority = 2
        cooldown = 1
        output = "line_050"
        criteria = ["weather == 'sunny'", "is_night", "20 <= hour < 24"]

        [idle]
        kind = "idle_anim"
        output = "stretch"
    """

    rs = rule_parser.loads(test_config, version=2)
    assert rs.version == 2
    assert len(rs) == 3
    assert rs.rule("greet_night").cooldown == 1
    assert rs.rule("greet_sunny").weight == 1.0
    assert rs.rule("idle").conditions == ()

    world = facts.WorldState({"weather": "sunny", "is_night": False, "hour": 21})
    assert evaluator.evaluate(rs, world, Query("dialogue")) == Selected("greet_sunny", "line_042")
    world.set_fact("is_night", True)
    assert evaluator.evaluate(rs, world, Query("dialogue")) == Selected("greet_night", "line_050")
    world.set_fact("weather", "rainy")
    assert evaluator.evaluate(rs, world, Query("dialogue")) is NO_MATCH
    assert evaluator.evaluate(rs, world, Query("idle_anim")) == Selected("idle", "stretch")

def test_bad_rule_tables():
    with pytest.raises(ValueError, match="kind"):
        rule_parser.loadd({"r": {"output": "o"}})
    with pytest.raises(ValueError, match="output"):
        rule_parser.loadd({"r": {"kind": "k"}})
    with pytest.raises(ValueError, match="priority"):
        rule_parser.loadd({"r": {"kind": "k", "output": "o", "priority": "high"}})
    with pytest.raises(ValueError, match="criteria"):
        rule_parser.loadd({"r": {"kind": "k", "output": "o", "criteria": "hp > 3"}})
    with pytest.raises(ValueError, match="bad criteria for r"):
        rule_parser.loadd({"r": {"kind": "k", "output": "o", "criteria": ["hp >>> 3"]}})

def test_invariants_still_enforced():
    with pytest.raises(ValidationError) as excinfo:
        rule_parser.loadd({
            "a": {"kind": "k", "output": "o", "weight": -1},
            "b": {"kind": "", "output": "o"},
        })
    assert excinfo.value.rule_ids == ["a", "b"]
