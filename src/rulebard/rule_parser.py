""" Loading authored rules from TOML.

Each top level table is one rule, keyed by its id:

    [greet_sunny]
    kind = "dialogue"
    priority = 1
    weight = 1.0
    cooldown = 0
    output = "line_042"
    criteria = ["weather == 'sunny'", "hp >= 10", "0 <= hour < 12"]

Criteria are strings of the form:

    CRITERIA := KEY | "!" KEY | KEY OP VALUE | VALUE "<=" KEY "<" VALUE
    OP := "==" | "!=" | ">" | "<" | ">=" | "<=" | "in" | "has"
    KEY := [a-zA-Z_][a-zA-Z0-9_:.]*
    VALUE := a TOML literal (number, bool, 'string', "string", [array])

A bare KEY means KEY == true, "!" KEY means KEY == false.
"""

import re
import logging
from collections.abc import Mapping
from typing import Any

import toml # type: ignore

from rulebard import rule as r_rule, ruleset as r_ruleset

logger = logging.getLogger(__name__)

KEY_PATTERN = r"[a-zA-Z_][a-zA-Z0-9_:.]*"
KEY_RE = re.compile(f"^{KEY_PATTERN}$")
RANGE_RE = re.compile(rf"^(?P<low>.+?)\s*<=\s*(?P<key>{KEY_PATTERN})\s*<\s*(?P<high>[^=].*)$")
BINARY_RE = re.compile(rf"^(?P<key>{KEY_PATTERN})\s*(?P<op>==|!=|>=|<=|>|<|in\b|has\b)\s*(?P<value>.+)$")

def parse_value(data:str) -> Any:
    try:
        return toml.loads(f"v = {data.strip()}")["v"]
    except (toml.TomlDecodeError, IndexError) as e:
        raise ValueError(f'bad value "{data}"') from e

def parse_criteria(cri:str) -> r_rule.Condition:
    if not isinstance(cri, str):
        raise ValueError(f'criteria must be a string, got {cri!r}')

    data = cri.strip()
    if not data:
        raise ValueError("empty criteria")

    if data[0] == "!":
        # inverted flag case
        key = data[1:].strip()
        if not KEY_RE.match(key):
            raise ValueError(f'bad key in inverted criteria "{cri}"')
        return r_rule.Condition(key, r_rule.Operator.EQ, False)

    if KEY_RE.match(data):
        # bare flag case
        return r_rule.Condition(data, r_rule.Operator.EQ, True)

    m = RANGE_RE.match(data)
    if m:
        low = parse_value(m.group("low"))
        high = parse_value(m.group("high"))
        return r_rule.Condition(m.group("key"), r_rule.Operator.IN_RANGE, (low, high))

    m = BINARY_RE.match(data)
    if not m:
        raise ValueError(f'could not parse criteria "{cri}"')
    return r_rule.Condition(
        m.group("key"),
        r_rule.Operator.parse(m.group("op")),
        parse_value(m.group("value")),
    )

def parse_rule(rule_id:str, rule:Mapping[str, Any]) -> r_rule.Rule:
    if not isinstance(rule, Mapping):
        raise ValueError(f'rule {rule_id} must be a table')

    if "kind" not in rule or not isinstance(rule["kind"], str):
        raise ValueError(f'missing or bad kind in rule {rule_id}')
    if "output" not in rule or not isinstance(rule["output"], str):
        raise ValueError(f'missing or bad output in rule {rule_id}')

    priority = rule.get("priority", 0)
    if not isinstance(priority, int) or isinstance(priority, bool):
        raise ValueError(f'bad priority in rule {rule_id}')
    weight = rule.get("weight", 1.0)
    if not isinstance(weight, (int, float)) or isinstance(weight, bool):
        raise ValueError(f'bad weight in rule {rule_id}')
    cooldown = rule.get("cooldown", 0)
    if not isinstance(cooldown, int) or isinstance(cooldown, bool):
        raise ValueError(f'bad cooldown in rule {rule_id}')

    criteria_data:list[str]
    if "criteria" not in rule:
        criteria_data = []
    elif not isinstance(rule["criteria"], list):
        raise ValueError(f'criteria for {rule_id} must be a list')
    else:
        criteria_data = rule["criteria"]

    conditions = []
    for cri in criteria_data:
        try:
            conditions.append(parse_criteria(cri))
        except ValueError as e:
            raise ValueError(f'bad criteria for {rule_id}: {e}') from e

    return r_rule.Rule(
        rule_id,
        rule["kind"],
        tuple(conditions),
        priority=priority,
        weight=weight,
        output=rule["output"],
        cooldown=cooldown,
    )

def loads(data:str, version:int=0) -> r_ruleset.Ruleset:
    """
    Loads rules from a toml string into a ruleset.

    Parameters
    ----------
    data : str
        toml encoded rule data
    version : int
        content version to stamp on the ruleset

    Returns
    -------
    out : Ruleset
        validated ruleset holding every rule in data
    """

    rule_data = toml.loads(data)
    return loadd(rule_data, version=version)

def loadd(rule_data:Mapping[str, Any], version:int=0) -> r_ruleset.Ruleset:
    """
    Loads rules from a rule data dict into a ruleset.

    Parameters
    ----------
    rule_data : dict
        dictionary of rules. Keys are rule ids. Values are the rule data to
        decode.
    version : int
        content version to stamp on the ruleset

    Returns
    -------
    out : Ruleset
        validated ruleset holding every rule in rule_data
    """
    rules = [parse_rule(rule_id, rule) for rule_id, rule in rule_data.items()]
    ruleset = r_ruleset.build(rules, version=version)
    logger.info(f'loaded {len(rules)} rules in {len(ruleset.kinds())} kinds')
    return ruleset
