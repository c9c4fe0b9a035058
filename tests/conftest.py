import logging

import pytest

from rulebard import facts, rule, ruleset, session

# some logging to turn on if we like
#logging.getLogger("rulebard.evaluator").level = logging.DEBUG

@pytest.fixture
def world() -> facts.WorldState:
    return facts.WorldState({
        "weather": "sunny",
        "hp": 80,
        "gold": 12.5,
        "is_night": False,
        "guard_state": facts.tags("alert", "armed"),
        "quest_flags": 0b0101,
    })

@pytest.fixture
def greet_rule() -> rule.Rule:
    return rule.Rule(
        "greet_sunny",
        "dialogue",
        (rule.Condition("weather", rule.Operator.EQ, "sunny"),),
        priority=1,
        weight=1.0,
        output="line_042",
    )

@pytest.fixture
def dialogue_ruleset(greet_rule:rule.Rule) -> ruleset.Ruleset:
    return ruleset.build([
        greet_rule,
        rule.Rule("greet_rainy", "dialogue", (("weather", "==", "rainy"),), priority=1, output="line_043"),
        rule.Rule("greet_any", "dialogue", (), priority=0, output="line_001"),
        rule.Rule("warn_hurt", "dialogue", (("hp", "<", 25),), priority=5, output="line_100", cooldown=2),
        rule.Rule("idle_stretch", "idle_anim", (("is_night", "==", False),), output=b"\x00stretch"),
        rule.Rule("idle_yawn", "idle_anim", (("is_night", "==", True),), output=b"\x00yawn"),
    ], version=3)

@pytest.fixture
def evaluation_session() -> session.EvaluationSession:
    return session.EvaluationSession()
