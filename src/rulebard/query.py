""" Queries into a ruleset and the results they produce. """

import collections
import dataclasses
import types
from collections.abc import Mapping
from typing import Any, Optional, Union

from rulebard.facts import FactValue, normalize

@dataclasses.dataclass(frozen=True)
class Query:
    """ A request to select one rule of a given kind.

    overrides shadow world facts with the same key for this query only.
    exclusions are rule ids that must not be selected.
    seed makes the weighted tie-break reproducible.
    """
    kind: str
    overrides: Mapping[str, FactValue] = dataclasses.field(default_factory=dict)
    exclusions: frozenset[str] = frozenset()
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "overrides", types.MappingProxyType({k: normalize(v) for k, v in self.overrides.items()}))
        object.__setattr__(self, "exclusions", frozenset(self.exclusions))
        if self.seed is not None and (not isinstance(self.seed, int) or self.seed < 0):
            raise ValueError(f'seed must be a non-negative int, got {self.seed!r}')

    def __hash__(self) -> int:
        return hash((self.kind, frozenset(self.overrides.items()), self.exclusions, self.seed))

    def __eq__(self, other:object) -> bool:
        if not isinstance(other, Query):
            return NotImplemented
        return (
            self.kind == other.kind
            and dict(self.overrides) == dict(other.overrides)
            and self.exclusions == other.exclusions
            and self.seed == other.seed
        )

    def effective_facts(self, world_state:Mapping[str, FactValue]) -> Mapping[str, FactValue]:
        """ world facts with this query's overrides layered on top """
        if not self.overrides:
            return world_state
        return collections.ChainMap(self.overrides, world_state) # type: ignore[arg-type]

class NoMatch:
    """ No rule matched. Use the NO_MATCH singleton. """

    matched = False

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NoMatch"

    def __eq__(self, other:object) -> bool:
        return isinstance(other, NoMatch)

    def __hash__(self) -> int:
        return hash(NoMatch)

NO_MATCH = NoMatch()

@dataclasses.dataclass(frozen=True)
class Selected:
    rule_id: str
    output: Union[str, bytes]

    matched = True

    def __bool__(self) -> bool:
        return True

SelectionResult = Union[Selected, NoMatch]
