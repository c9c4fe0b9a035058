""" Matching, scoring and selection of rules.

evaluate() picks at most one rule for a query:

 * only rules in the query's kind are considered, an unknown kind is NoMatch
 * query overrides shadow world facts for this call only
 * excluded rules and rules cooling down in the session are skipped
 * a rule matches if every one of its conditions holds
 * of the matches, only those with the highest priority remain
 * ties are broken by weighted random choice, reproducible with query.seed

Nothing here raises for data dependent reasons. Bad facts, unknown kinds and
empty groups all just fail to match.
"""

import contextlib
import logging
from collections.abc import Mapping, Sequence
from typing import Optional

import numpy as np

from rulebard.facts import FactValue
from rulebard.query import NO_MATCH, Query, Selected, SelectionResult
from rulebard.rule import Rule
from rulebard.ruleset import Ruleset
from rulebard.session import EvaluationSession

logger = logging.getLogger(__name__)

# used for tie-breaks when a query carries no seed
_random = np.random.default_rng()

def _top_matches(
    group:Sequence[Rule],
    facts:Mapping[str, FactValue],
    query:Query,
    session:Optional[EvaluationSession],
) -> list[Rule]:
    matched:list[Rule] = []
    for rule in group:
        # groups are sorted by descending priority, so once something matched
        # nothing further down can beat it
        if matched and rule.priority < matched[0].priority:
            break
        if rule.rule_id in query.exclusions:
            continue
        if session is not None and session.is_cooling_down(rule.rule_id):
            continue
        if rule.matches(facts):
            matched.append(rule)
    return matched

def choose(candidates:Sequence[Rule], seed:Optional[int]=None) -> Rule:
    """ weighted random choice among equal priority candidates

    The same seed, candidates and weights always give the same rule, no matter
    what order the candidates come in. Zero weight rules only win when every
    candidate has zero weight.
    """
    if len(candidates) == 1:
        return candidates[0]

    ordered = sorted(candidates, key=lambda r: r.rule_id)
    weights = np.array([r.weight for r in ordered], dtype=np.float64)
    total = weights.sum()
    if total > 0:
        p = weights / total
    else:
        p = np.full(len(ordered), 1.0 / len(ordered))

    r = _random if seed is None else np.random.default_rng(seed)
    idx = r.choice(len(ordered), 1, p=p)[0]
    return ordered[idx]

def evaluate_all(
    ruleset:Ruleset,
    world_state:Mapping[str, FactValue],
    query:Query,
    session:Optional[EvaluationSession]=None,
) -> list[Rule]:
    """ every highest priority match, in group order

    Does not choose between them and does not touch the session, beyond
    honoring its cooldowns. """
    if ruleset is None:
        raise TypeError("evaluate_all requires a ruleset")
    group = ruleset.group(query.kind)
    if group is None:
        return []
    return _top_matches(group, query.effective_facts(world_state), query, session)

def evaluate(
    ruleset:Ruleset,
    world_state:Mapping[str, FactValue],
    query:Query,
    session:Optional[EvaluationSession]=None,
) -> SelectionResult:
    """ Selects the best fitting rule for query.

    Returns Selected(rule_id, output) or NO_MATCH. If a session is given it
    counts this evaluation and records the selection.
    """
    if ruleset is None:
        raise TypeError("evaluate requires a ruleset")

    group = ruleset.group(query.kind)
    if group is None:
        logger.debug(f'no rules for query kind {query.kind!r}')
        return NO_MATCH

    facts = query.effective_facts(world_state)

    lock = session.lock if session is not None else contextlib.nullcontext()
    with lock:
        if session is not None:
            session.advance(query.kind)

        matched = _top_matches(group, facts, query, session)
        if not matched:
            return NO_MATCH

        rule = choose(matched, query.seed)

        if session is not None:
            session.record(query.kind, rule.rule_id, rule.cooldown)

    logger.debug(f'selected {rule.rule_id!r} for {query.kind!r} from {len(matched)} candidates')
    return Selected(rule.rule_id, rule.output)
