""" Evaluation history carried across repeated queries.

The session counts evaluations per query kind and remembers recent selections
so rules with a cooldown are not picked again too soon. Cooldowns are counted
in evaluations of the rule's query kind, not in wall-clock time: a rule with
cooldown 2 selected at evaluation N is suppressed at N+1 and N+2 and eligible
again at N+3.

The host owns sessions and may share one across threads. The evaluator holds
session.lock for the duration of each evaluation that uses the session.
"""

import logging
import threading
import collections
from typing import Optional

from rulebard import config, util

class CooldownEntry:
    def __init__(self, kind:str, selected_at:int, cooldown:int) -> None:
        self.kind = kind
        self.selected_at = selected_at
        self.cooldown = cooldown

    def __eq__(self, other:object) -> bool:
        if not isinstance(other, CooldownEntry):
            return NotImplemented
        return (self.kind, self.selected_at, self.cooldown) == (other.kind, other.selected_at, other.cooldown)

    def __repr__(self) -> str:
        return f'CooldownEntry({self.kind!r}, {self.selected_at}, {self.cooldown})'

    def expires_at(self) -> int:
        """ the first evaluation counter value at which the rule is eligible """
        return self.selected_at + self.cooldown + 1

class EvaluationSession:
    def __init__(self, history_limit:Optional[int]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        if history_limit is None:
            history_limit = config.Settings.Session.HISTORY_LIMIT
        if history_limit < 1:
            raise ValueError(f'history_limit must be at least 1, got {history_limit}')
        self.history_limit = history_limit
        self.lock = threading.RLock()

        self._counters:collections.Counter[str] = collections.Counter()
        self._history:dict[str, collections.deque[str]] = {}
        self._cooldowns:dict[str, CooldownEntry] = {}

    def counter(self, kind:str) -> int:
        """ how many evaluations of kind have been counted """
        return self._counters[kind]

    def advance(self, kind:str) -> int:
        """ counts one evaluation of kind and drops elapsed cooldowns """
        with self.lock:
            self._counters[kind] += 1
            self._trim(kind)
            return self._counters[kind]

    def is_cooling_down(self, rule_id:str) -> bool:
        entry = self._cooldowns.get(rule_id)
        if entry is None:
            return False
        return self._counters[entry.kind] < entry.expires_at()

    def record(self, kind:str, rule_id:str, cooldown:int=0) -> None:
        """ remembers that rule_id was selected by the current evaluation of kind """
        with self.lock:
            if kind not in self._history:
                self._history[kind] = collections.deque(maxlen=self.history_limit)
            self._history[kind].append(rule_id)
            if cooldown > 0:
                self._cooldowns[rule_id] = CooldownEntry(kind, self._counters[kind], cooldown)
            self._trim(kind)

    def recent(self, kind:str) -> list[str]:
        """ recent selections for kind, oldest first """
        return list(self._history.get(kind, ()))

    def last(self, kind:str) -> Optional[str]:
        history = self._history.get(kind)
        if not history:
            return None
        return history[-1]

    def cooldowns(self) -> dict[str, CooldownEntry]:
        return dict(self._cooldowns)

    def kinds(self) -> set[str]:
        return set(self._counters) | set(self._history)

    def reset(self, kind:Optional[str]=None) -> None:
        """ forgets everything, or just everything about one query kind """
        with self.lock:
            if kind is None:
                self._counters.clear()
                self._history.clear()
                self._cooldowns.clear()
            else:
                self._counters.pop(kind, None)
                self._history.pop(kind, None)
                for rule_id in [r for r, e in self._cooldowns.items() if e.kind == kind]:
                    del self._cooldowns[rule_id]
            self.logger.debug(f'reset session {kind=}')

    def _trim(self, kind:str) -> None:
        counter = self._counters[kind]
        expired = [r for r, e in self._cooldowns.items() if e.kind == kind and counter >= e.expires_at()]
        for rule_id in expired:
            del self._cooldowns[rule_id]

    def _restore(self, counters:dict[str, int], history:dict[str, list[str]], cooldowns:dict[str, CooldownEntry]) -> None:
        with self.lock:
            self._counters = collections.Counter(counters)
            self._history = {k: collections.deque(v, maxlen=self.history_limit) for k, v in history.items()}
            self._cooldowns = dict(cooldowns)

def is_cooling_down(session:EvaluationSession, rule_id:str) -> bool:
    return session.is_cooling_down(rule_id)

def record(session:EvaluationSession, kind:str, rule_id:str, cooldown:int=0) -> None:
    session.record(kind, rule_id, cooldown)
