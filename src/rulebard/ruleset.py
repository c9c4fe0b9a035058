""" Compiled, immutable collections of rules.

A Ruleset is built once (from authored rules or from its binary form) and then
only read. Rules are grouped by query kind, each group sorted by descending
priority so evaluation can stop scanning as soon as it has matches and the
priority drops. A secondary index maps fact keys to the rules that read them.

Updating rules means building a new Ruleset and swapping the reference.
"""

import enum
import logging
import collections
import types
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Optional

from rulebard import util
from rulebard.rule import Rule

logger = logging.getLogger(__name__)

class ValidationErrorCase(enum.Enum):
    EMPTY_ID = enum.auto()
    DUPLICATE_ID = enum.auto()
    EMPTY_KIND = enum.auto()
    BAD_PRIORITY = enum.auto()
    NEGATIVE_WEIGHT = enum.auto()
    NEGATIVE_COOLDOWN = enum.auto()
    BAD_CONDITION = enum.auto()
    BAD_OUTPUT = enum.auto()
    OUT_OF_RANGE = enum.auto()

class ValidationError(Exception):
    """ One or more rules violate ruleset invariants.

    problems holds every (rule_id, case, detail) found, not just the first.
    """
    def __init__(self, problems:list[tuple[str, ValidationErrorCase, str]], *args:Any, **kwargs:Any) -> None:
        if not args:
            args = (f'{len(problems)} invalid rule definition(s): ' + "; ".join(f'{rule_id!r} {case.name} {detail}' for rule_id, case, detail in problems),)
        super().__init__(*args, **kwargs)
        self.problems = problems

    @property
    def rule_ids(self) -> list[str]:
        """ offending rule ids, in the order they were found, without repeats """
        return list(dict.fromkeys(rule_id for rule_id, _, _ in self.problems))

    @property
    def cases(self) -> set[ValidationErrorCase]:
        return set(case for _, case, _ in self.problems)

def _validate_rule(rule:Rule) -> list[tuple[ValidationErrorCase, str]]:
    problems:list[tuple[ValidationErrorCase, str]] = []
    if not isinstance(rule.rule_id, str) or not rule.rule_id:
        problems.append((ValidationErrorCase.EMPTY_ID, "rule id must be a non-empty string"))
    if not isinstance(rule.kind, str) or not rule.kind:
        problems.append((ValidationErrorCase.EMPTY_KIND, "query kind must be a non-empty string"))
    if not isinstance(rule.priority, int) or isinstance(rule.priority, bool):
        problems.append((ValidationErrorCase.BAD_PRIORITY, f'priority must be an int, got {rule.priority!r}'))
    if not util.is_number(rule.weight) or not util.is_finite(rule.weight) or rule.weight < 0:
        problems.append((ValidationErrorCase.NEGATIVE_WEIGHT, f'weight must be a finite number >= 0, got {rule.weight!r}'))
    if not isinstance(rule.cooldown, int) or isinstance(rule.cooldown, bool) or rule.cooldown < 0:
        problems.append((ValidationErrorCase.NEGATIVE_COOLDOWN, f'cooldown must be an int >= 0, got {rule.cooldown!r}'))
    if not isinstance(rule.output, (str, bytes)):
        problems.append((ValidationErrorCase.BAD_OUTPUT, f'output must be str or bytes, got {type(rule.output).__name__}'))
    for c in rule.conditions:
        for detail in c.problems():
            problems.append((ValidationErrorCase.BAD_CONDITION, detail))

    # everything in a ruleset must also fit the serialized form
    for detail in _storage_problems(rule):
        problems.append((ValidationErrorCase.OUT_OF_RANGE, detail))
    return problems

def _storage_problems(rule:Rule) -> list[str]:
    problems:list[str] = []
    for s, what in ((rule.rule_id, "rule id"), (rule.kind, "query kind")):
        if isinstance(s, str) and s:
            p = util.str16_problem(s, what)
            if p:
                problems.append(p)
    if isinstance(rule.priority, int) and not util.I32_MIN <= rule.priority <= util.I32_MAX:
        problems.append(f'priority {rule.priority} does not fit in a signed 32 bit int')
    if isinstance(rule.cooldown, int) and rule.cooldown > util.U32_MAX:
        problems.append(f'cooldown {rule.cooldown} does not fit in an unsigned 32 bit int')
    if len(rule.conditions) > util.U32_MAX:
        problems.append(f'{len(rule.conditions)} conditions is too many')
    if isinstance(rule.output, str):
        l = util.utf8_len(rule.output)
        if l is None:
            problems.append(f'output is not valid utf8: {rule.output!r}')
        elif l > util.U32_MAX:
            problems.append(f'output is {l} bytes, more than {util.U32_MAX}')
    elif isinstance(rule.output, bytes) and len(rule.output) > util.U32_MAX:
        problems.append(f'output is {len(rule.output)} bytes, more than {util.U32_MAX}')
    for c in rule.conditions:
        problems.extend(c.storage_problems())
    return problems

class Ruleset:
    """ Immutable, indexed collection of rules grouped by query kind. """

    def __init__(
        self,
        rules:tuple[Rule, ...],
        groups:Mapping[str, tuple[Rule, ...]],
        index:Mapping[str, frozenset[str]],
        version:int=0,
    ) -> None:
        # use build() rather than constructing directly
        self._rules = rules
        self._by_id = types.MappingProxyType({r.rule_id: r for r in rules})
        self._groups = types.MappingProxyType(dict(groups))
        self._index = types.MappingProxyType(dict(index))
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    @property
    def rules(self) -> tuple[Rule, ...]:
        """ all rules in declaration order """
        return self._rules

    @property
    def groups(self) -> Mapping[str, tuple[Rule, ...]]:
        return self._groups

    @property
    def index(self) -> Mapping[str, frozenset[str]]:
        return self._index

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __contains__(self, rule_id:object) -> bool:
        return rule_id in self._by_id

    def __eq__(self, other:object) -> bool:
        if not isinstance(other, Ruleset):
            return NotImplemented
        return (
            self._version == other._version
            and self._rules == other._rules
            and dict(self._groups) == dict(other._groups)
            and dict(self._index) == dict(other._index)
        )

    def __hash__(self) -> int:
        return hash((self._version, self._rules))

    def __repr__(self) -> str:
        return f'Ruleset(version={self._version}, rules={len(self._rules)}, kinds={sorted(self._groups)})'

    def kinds(self) -> frozenset[str]:
        return frozenset(self._groups)

    def group(self, kind:str) -> Optional[tuple[Rule, ...]]:
        """ rules for a query kind, highest priority first, None if unknown """
        return self._groups.get(kind)

    def rule(self, rule_id:str) -> Rule:
        return self._by_id[rule_id]

    def rules_for_fact(self, key:str) -> frozenset[str]:
        """ ids of rules with a condition on the given fact key """
        return self._index.get(key, frozenset())

    def affected_rules(self, keys:Iterable[str]) -> frozenset[str]:
        """ ids of rules whose outcome might change when any of keys change """
        affected:set[str] = set()
        for key in keys:
            affected.update(self._index.get(key, ()))
        return frozenset(affected)

    def affected_kinds(self, keys:Iterable[str]) -> frozenset[str]:
        """ query kinds worth re-evaluating when any of keys change """
        return frozenset(self._by_id[rule_id].kind for rule_id in self.affected_rules(keys))

    def merge(self, other:"Ruleset", version:Optional[int]=None) -> "Ruleset":
        """ a new ruleset holding the rules of both, validated as a whole """
        if version is None:
            version = max(self._version, other._version)
        return build(self._rules + other._rules, version=version)

def build(rules:Iterable[Rule], version:int=0) -> Ruleset:
    """ Validates rules and compiles them into a Ruleset.

    Raises ValidationError listing every offending rule if any rule is
    malformed. No rule is ever silently dropped.
    """
    rules = tuple(rules)
    if not isinstance(version, int) or isinstance(version, bool) or not 0 <= version <= util.U32_MAX:
        raise ValueError(f'ruleset version must be an int in [0, {util.U32_MAX}], got {version!r}')

    problems:list[tuple[str, ValidationErrorCase, str]] = []
    seen:set[str] = set()
    for rule in rules:
        if not isinstance(rule, Rule):
            raise TypeError(f'expected Rule, got {type(rule).__name__}')
        for case, detail in _validate_rule(rule):
            problems.append((rule.rule_id, case, detail))
        if rule.rule_id in seen:
            problems.append((rule.rule_id, ValidationErrorCase.DUPLICATE_ID, "rule id already used"))
        seen.add(rule.rule_id)

    if problems:
        raise ValidationError(problems)

    grouped:collections.defaultdict[str, list[Rule]] = collections.defaultdict(list)
    index:collections.defaultdict[str, set[str]] = collections.defaultdict(set)
    for rule in rules:
        grouped[rule.kind].append(rule)
        for key in rule.keys:
            index[key].add(rule.rule_id)

    # sorted is stable, so equal priorities keep declaration order
    groups = {kind: tuple(sorted(group, key=lambda r: -r.priority)) for kind, group in grouped.items()}

    logger.debug(f'built ruleset version {version} with {len(rules)} rules in {len(groups)} kinds')

    return Ruleset(
        rules,
        groups,
        {key: frozenset(rule_ids) for key, rule_ids in index.items()},
        version=version,
    )
