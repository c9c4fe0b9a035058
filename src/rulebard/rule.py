""" Rules and the conditions they are made of.

A Condition is a predicate over a single fact. A Rule is the conjunction of
its conditions, along with the output the host gets back when the rule is
selected and the metadata (priority, weight, cooldown) used to pick between
several matching rules.

Conditions never raise while evaluating. A missing fact or a fact of the wrong
type simply fails to hold.

IN_RANGE is half open, low <= fact < high. Other bound shapes are written as
two conditions, e.g. fact >= low and fact <= high for a closed range.
"""

import enum
import dataclasses
from collections.abc import Mapping
from typing import Any, Optional, Union

from rulebard import config, util
from rulebard.facts import FactValue

class Operator(enum.Enum):
    EQ = "=="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="
    IN = "in"
    HAS_FLAG = "has"
    IN_RANGE = "range"

    @classmethod
    def parse(cls, op:Union["Operator", str]) -> "Operator":
        """ accepts an Operator, its symbol ("==", "has") or its name ("eq") """
        if isinstance(op, Operator):
            return op
        if not isinstance(op, str):
            raise ValueError(f'unknown operator {op!r}')
        try:
            return cls(op)
        except ValueError:
            pass
        try:
            return cls[op.upper()]
        except KeyError:
            raise ValueError(f'unknown operator {op!r}') from None

ORDERING_OPERATORS = frozenset((Operator.GT, Operator.LT, Operator.GE, Operator.LE))

def _equal(a:Any, b:Any) -> Optional[bool]:
    """ type aware equality. None means the types can't be compared. """
    if util.is_number(a) and util.is_number(b):
        if isinstance(a, float) or isinstance(b, float):
            return util.pyisclose(
                    float(a), float(b),
                    rtol=config.Settings.Evaluator.FLOAT_REL_TOL,
                    atol=config.Settings.Evaluator.FLOAT_ABS_TOL)
        return a == b
    elif isinstance(a, bool) and isinstance(b, bool):
        return a == b
    elif isinstance(a, str) and isinstance(b, str):
        return a == b
    elif isinstance(a, frozenset) and isinstance(b, frozenset):
        return a == b
    else:
        return None

def _normalize_value(op:Operator, value:Any) -> Any:
    if op == Operator.IN:
        if isinstance(value, (set, frozenset)):
            # sets have no stable order, keep serialized forms deterministic
            return tuple(sorted(value, key=repr))
        elif isinstance(value, (list, tuple)):
            return tuple(value)
    elif op == Operator.IN_RANGE:
        if isinstance(value, (list, tuple)):
            return tuple(value)
    elif isinstance(value, (set, list, tuple)):
        return frozenset(value)
    return value

def _is_atom(value:Any) -> bool:
    return isinstance(value, (bool, int, float, str))

def _is_finite_atom(value:Any) -> bool:
    return not isinstance(value, float) or util.is_finite(value)

@dataclasses.dataclass(frozen=True)
class Condition:
    key: str
    op: Operator
    value: Any

    def __post_init__(self) -> None:
        op = Operator.parse(self.op)
        object.__setattr__(self, "op", op)
        object.__setattr__(self, "value", _normalize_value(op, self.value))

    def holds(self, facts:Mapping[str, FactValue]) -> bool:
        try:
            fact = facts[self.key]
        except KeyError:
            return False

        op = self.op
        value = self.value
        if op == Operator.EQ:
            return _equal(fact, value) is True
        elif op == Operator.NE:
            return _equal(fact, value) is False
        elif op in ORDERING_OPERATORS:
            if not util.is_number(fact):
                return False
            if op == Operator.GT:
                return fact > value
            elif op == Operator.LT:
                return fact < value
            elif op == Operator.GE:
                return fact >= value
            else:
                return fact <= value
        elif op == Operator.IN:
            return any(_equal(fact, atom) is True for atom in value)
        elif op == Operator.HAS_FLAG:
            if isinstance(fact, frozenset):
                if isinstance(value, str):
                    return value in fact
                elif isinstance(value, frozenset):
                    return value <= fact
                return False
            elif isinstance(fact, int) and not isinstance(fact, bool) and isinstance(value, int):
                return fact & value == value
            return False
        elif op == Operator.IN_RANGE:
            if not util.is_number(fact):
                return False
            low, high = value
            return low <= fact < high
        else:
            raise ValueError(f'unknown operator {op}')

    def problems(self) -> list[str]:
        """ describes anything malformed about this condition """
        ret:list[str] = []
        if not isinstance(self.key, str) or not self.key:
            ret.append(f'condition key must be a non-empty string, got {self.key!r}')

        op = self.op
        value = self.value
        if op in (Operator.EQ, Operator.NE):
            if not (_is_atom(value) or (isinstance(value, frozenset) and all(isinstance(x, str) for x in value))):
                ret.append(f'{op.name} needs an atom or a tag set, got {value!r}')
            elif not _is_finite_atom(value):
                ret.append(f'{op.name} needs a finite number, got {value!r}')
        elif op in ORDERING_OPERATORS:
            if not util.is_number(value) or not util.is_finite(value):
                ret.append(f'{op.name} needs a finite number, got {value!r}')
        elif op == Operator.IN:
            if not isinstance(value, tuple) or len(value) == 0 or not all(_is_atom(x) for x in value):
                ret.append(f'IN needs a non-empty collection of atoms, got {value!r}')
            elif not all(_is_finite_atom(x) for x in value):
                ret.append(f'IN needs finite numbers, got {value!r}')
        elif op == Operator.HAS_FLAG:
            if isinstance(value, frozenset):
                if not value or not all(isinstance(x, str) for x in value):
                    ret.append(f'HAS_FLAG needs non-empty string tags, got {value!r}')
            elif not (isinstance(value, str) or (util.is_number(value) and isinstance(value, int))):
                ret.append(f'HAS_FLAG needs an int bitmask or a tag, got {value!r}')
        elif op == Operator.IN_RANGE:
            if not isinstance(value, tuple) or len(value) != 2 or not all(util.is_number(x) for x in value):
                ret.append(f'IN_RANGE needs a (low, high) pair of numbers, got {value!r}')
            elif not all(util.is_finite(x) for x in value):
                ret.append(f'IN_RANGE bounds must be finite, got {value!r}')
            elif value[0] > value[1]:
                ret.append(f'IN_RANGE low bound above high bound in {value!r}')
        return ret

    def storage_problems(self) -> list[str]:
        """ describes anything too large to store in a serialized ruleset """
        ret:list[str] = []
        if isinstance(self.key, str):
            p = util.str16_problem(self.key, "condition key")
            if p:
                ret.append(p)
        values = self.value if isinstance(self.value, (tuple, frozenset)) else (self.value,)
        for x in values:
            p = util.atom_problem(x, f'{self.op.name} value')
            if p:
                ret.append(p)
        return ret

@dataclasses.dataclass(frozen=True)
class Rule:
    rule_id: str
    kind: str
    conditions: tuple[Condition, ...] = ()
    priority: int = 0
    weight: float = 1.0
    output: Union[str, bytes] = ""
    cooldown: int = 0

    def __post_init__(self) -> None:
        conditions = tuple(
            c if isinstance(c, Condition) else Condition(*c)
            for c in self.conditions
        )
        object.__setattr__(self, "conditions", conditions)
        if util.is_number(self.weight):
            object.__setattr__(self, "weight", float(self.weight))

    @property
    def keys(self) -> frozenset[str]:
        """ the fact keys this rule reads """
        return frozenset(c.key for c in self.conditions)

    def matches(self, facts:Mapping[str, FactValue]) -> bool:
        for c in self.conditions:
            if not c.holds(facts):
                return False
        return True
