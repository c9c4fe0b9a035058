""" Facts and the WorldState that holds them.

A fact is a key (str) and a value drawn from a closed set of types. The host
game owns the WorldState and mutates it between evaluations. The evaluator
only ever reads from it.
"""

import enum
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Optional, Union

FactValue = Union[bool, int, float, str, frozenset[str]]

class FactType(enum.Enum):
    BOOL = enum.auto()
    INT = enum.auto()
    FLOAT = enum.auto()
    STR = enum.auto()
    TAGS = enum.auto()

def fact_type(value:Any) -> FactType:
    # bool is an int subclass, so it has to be checked first
    if isinstance(value, bool):
        return FactType.BOOL
    elif isinstance(value, int):
        return FactType.INT
    elif isinstance(value, float):
        return FactType.FLOAT
    elif isinstance(value, str):
        return FactType.STR
    elif isinstance(value, frozenset) and all(isinstance(x, str) for x in value):
        return FactType.TAGS
    else:
        raise TypeError(f'fact values must be bool, int, float, str or a set of str tags, got {value!r}')

def tags(*names:str) -> frozenset[str]:
    """ convenience for building a TAGS fact value """
    return frozenset(names)

def normalize(value:Any) -> FactValue:
    """ coerces host supplied values to a FactValue or raises TypeError

    sets, lists and tuples of strings become frozenset tags. """
    if isinstance(value, (set, list, tuple)):
        value = frozenset(value)
    fact_type(value)
    return value

class WorldState(Mapping[str, FactValue]):
    """ Mutable fact store owned by the host.

    Reads go through the Mapping interface. Evaluations should be handed a
    snapshot if the host might mutate the state while they run.
    """

    def __init__(self, facts:Optional[Mapping[str, Any]]=None) -> None:
        self._facts:dict[str, FactValue] = {}
        if facts:
            self.update(facts)

    def __getitem__(self, key:str) -> FactValue:
        return self._facts[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._facts)

    def __len__(self) -> int:
        return len(self._facts)

    def __repr__(self) -> str:
        return f'WorldState({self._facts!r})'

    def set_fact(self, key:str, value:Any) -> None:
        if not isinstance(key, str) or not key:
            raise TypeError(f'fact keys must be non-empty strings, got {key!r}')
        self._facts[key] = normalize(value)

    def remove_fact(self, key:str) -> None:
        self._facts.pop(key, None)

    def update(self, facts:Union[Mapping[str, Any], Iterable[tuple[str, Any]]]) -> None:
        items = facts.items() if isinstance(facts, Mapping) else facts
        for key, value in items:
            self.set_fact(key, value)

    def clear(self) -> None:
        self._facts.clear()

    def snapshot(self) -> "WorldState":
        """ an independent point-in-time copy of this state """
        snap = WorldState()
        snap._facts = dict(self._facts)
        return snap
