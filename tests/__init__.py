import collections
from collections.abc import Iterable, Mapping
from typing import Any, Optional

from rulebard import evaluator, query, ruleset, session

def selection_counts(
    rs:ruleset.Ruleset,
    world:Mapping[str, Any],
    kind:str,
    seeds:Iterable[Optional[int]],
    sess:Optional[session.EvaluationSession]=None,
) -> collections.Counter[Optional[str]]:
    """ evaluates the same query once per seed, counting selected rule ids

    NoMatch is counted under None. """
    counts:collections.Counter[Optional[str]] = collections.Counter()
    for seed in seeds:
        result = evaluator.evaluate(rs, world, query.Query(kind, seed=seed), sess)
        if isinstance(result, query.Selected):
            counts[result.rule_id] += 1
        else:
            counts[None] += 1
    return counts
