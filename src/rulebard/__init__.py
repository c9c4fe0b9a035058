""" rulebard: contextual rule selection for games

Picks dialogue lines, animations, barks and ambient events from the current
state of the game world without hand written branching logic.

The game describes its world as facts: the weather is "rainy", the player has
killed 12 enemies, the guard is "alert". Designers write rules, each a set of
conditions over those facts plus an output the game understands (a dialogue
key, an animation name). Rules are grouped by query kind ("dialogue",
"idle_anim", ...).

When something happens the game asks a question: "what should the guard say
right now?". That's a Query of kind "dialogue", maybe with a few extra facts
that only matter for this question. The evaluator finds every rule of that
kind whose conditions all hold, keeps the ones with the highest priority, and
picks one of those at random in proportion to their weights. A seed makes that
pick reproducible for tests and replays.

An EvaluationSession remembers recent picks so a rule with a cooldown isn't
chosen again for the next few queries of its kind.

Rulesets are immutable once built. They can be compiled ahead of time into a
versioned binary blob and loaded quickly at startup. Loading a new version
means building a new Ruleset and swapping the reference.

Example

    ruleset = build([
        Rule("greet_sunny", "dialogue", [("weather", "==", "sunny")], output="line_042"),
    ])
    world = WorldState({"weather": "sunny"})
    evaluate(ruleset, world, Query("dialogue"))  # Selected("greet_sunny", "line_042")
"""

from .facts import FactType, FactValue, WorldState, fact_type, tags
from .rule import Condition, Operator, Rule
from .ruleset import Ruleset, ValidationError, ValidationErrorCase, build
from .query import NO_MATCH, NoMatch, Query, Selected, SelectionResult
from .session import EvaluationSession
from .evaluator import evaluate, evaluate_all
from .serialization import FormatError, UnsupportedVersion, serialize, deserialize, load_ruleset
from .rule_parser import loads, loadd
