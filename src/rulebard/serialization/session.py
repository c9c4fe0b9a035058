""" Persisting EvaluationSession state, e.g. alongside a save game.

Sessions are small nested dicts, so they go through msgpack rather than the
hand rolled ruleset format. The payload carries its own version number.
"""

import msgpack # type: ignore

from rulebard import session as r_session
from rulebard.serialization.util import FormatError, UnsupportedVersion

SESSION_FORMAT_VERSION = 1

def session_to_bytes(session:r_session.EvaluationSession) -> bytes:
    with session.lock:
        state = {
            "v": SESSION_FORMAT_VERSION,
            "history_limit": session.history_limit,
            "counters": {kind: session.counter(kind) for kind in session.kinds()},
            "history": {kind: session.recent(kind) for kind in session.kinds()},
            "cooldowns": {
                rule_id: [e.kind, e.selected_at, e.cooldown]
                for rule_id, e in session.cooldowns().items()
            },
        }
    return msgpack.packb(state, use_bin_type=True)

def session_from_bytes(data:bytes) -> r_session.EvaluationSession:
    try:
        state = msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, msgpack.ExtraData, msgpack.FormatError, msgpack.StackError) as e:
        raise FormatError("corrupt session data") from e

    if not isinstance(state, dict) or "v" not in state:
        raise FormatError("session data is missing its version")
    if state["v"] != SESSION_FORMAT_VERSION:
        raise UnsupportedVersion(state["v"])

    try:
        history_limit = state["history_limit"]
        counters = state["counters"]
        history = state["history"]
        cooldown_data = state["cooldowns"]
    except KeyError as e:
        raise FormatError(f'session data is missing {e}') from e

    if not _is_count(history_limit) or history_limit < 1:
        raise FormatError(f'bad history limit {history_limit!r}')
    if not isinstance(counters, dict) or not isinstance(history, dict) or not isinstance(cooldown_data, dict):
        raise FormatError("counters, history and cooldowns must be maps")

    for kind, count in counters.items():
        if not isinstance(kind, str) or not _is_count(count):
            raise FormatError(f'bad counter {kind!r}: {count!r}')

    for kind, rule_ids in history.items():
        if not isinstance(kind, str) or not isinstance(rule_ids, list) or not all(isinstance(r, str) for r in rule_ids):
            raise FormatError(f'bad history for {kind!r}: {rule_ids!r}')

    cooldowns = {}
    for rule_id, entry in cooldown_data.items():
        if not isinstance(rule_id, str) or not isinstance(entry, list) or len(entry) != 3:
            raise FormatError(f'bad cooldown entry {rule_id!r}: {entry!r}')
        kind, selected_at, cooldown = entry
        if not isinstance(kind, str) or not _is_count(selected_at) or not _is_count(cooldown):
            raise FormatError(f'bad cooldown entry {rule_id!r}: {entry!r}')
        cooldowns[rule_id] = r_session.CooldownEntry(kind, selected_at, cooldown)

    session = r_session.EvaluationSession(history_limit=history_limit)
    session._restore(counters, history, cooldowns)
    return session

def _is_count(x:object) -> bool:
    """ int >= 0, but not bool """
    return isinstance(x, int) and not isinstance(x, bool) and x >= 0
