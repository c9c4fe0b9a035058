""" Binary form of a compiled Ruleset.

Format version 1, all integers big-endian:

    header    : format_version u32 | rule_count u32 | ruleset_version u32
    rule      : rule_id str16 | kind str16 | priority i32 | weight f64 |
                cooldown u32 | condition_count u32 | condition* | output
    condition : key str16 | op u8 | value
    value     : type u8 then
                'b' u8 (0 or 1) | 'i' i64 | 'f' f64 | 's' str16 |
                't' count u32, str16* (tag set) |
                'l' count u32, value* (IN atoms) |
                'r' value value (IN_RANGE bounds)
    output    : type u8 ('s' utf8 text, 'b' raw bytes) | length u32 | bytes
    str16     : length u16 | utf8 bytes

Nothing may follow the last rule. Decoders reject any other format_version.
Decoded rules go through ruleset.build, so loading enforces the same
invariants as building from source.
"""

import io
import os
import time
import logging
import tempfile
from typing import Any, Union

from rulebard import rule as r_rule, ruleset as r_ruleset
from rulebard.serialization import util as s_util
from rulebard.serialization.util import FormatError, UnsupportedVersion

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1

# op codes are part of the format, never renumber them
OP_CODES:dict[r_rule.Operator, int] = {
    r_rule.Operator.EQ: 1,
    r_rule.Operator.NE: 2,
    r_rule.Operator.GT: 3,
    r_rule.Operator.LT: 4,
    r_rule.Operator.GE: 5,
    r_rule.Operator.LE: 6,
    r_rule.Operator.IN: 7,
    r_rule.Operator.HAS_FLAG: 8,
    r_rule.Operator.IN_RANGE: 9,
}
OP_LOOKUP:dict[int, r_rule.Operator] = {v: k for k, v in OP_CODES.items()}

def condition_value_to_f(op:r_rule.Operator, value:Any, f:io.IOBase) -> int:
    bytes_written = 0
    if op == r_rule.Operator.IN:
        bytes_written += f.write(b'l')
        bytes_written += s_util.size_to_f(len(value), f)
        for atom in value:
            bytes_written += s_util.primitive_to_f(atom, f)
    elif op == r_rule.Operator.IN_RANGE:
        low, high = value
        bytes_written += f.write(b'r')
        bytes_written += s_util.primitive_to_f(low, f)
        bytes_written += s_util.primitive_to_f(high, f)
    else:
        bytes_written += s_util.primitive_to_f(value, f)
    return bytes_written

def condition_value_from_f(op:r_rule.Operator, f:io.IOBase) -> Any:
    type_code = s_util.read_exact(f, 1)
    # IN is always a list and IN_RANGE always a range, nothing else is either
    if (type_code == b'l') != (op == r_rule.Operator.IN):
        raise FormatError(f'got value type {type_code=} for operator {op.name}')
    if (type_code == b'r') != (op == r_rule.Operator.IN_RANGE):
        raise FormatError(f'got value type {type_code=} for operator {op.name}')

    if type_code == b'l':
        count = s_util.size_from_f(f)
        return tuple(s_util.primitive_from_f(f) for _ in range(count))
    elif type_code == b'r':
        low = s_util.primitive_from_f(f)
        high = s_util.primitive_from_f(f)
        return (low, high)
    else:
        return s_util.primitive_body_from_f(type_code, f)

def condition_to_f(condition:r_rule.Condition, f:io.IOBase) -> int:
    bytes_written = 0
    bytes_written += s_util.to_len_pre_f(condition.key, f)
    bytes_written += s_util.int_to_f(OP_CODES[condition.op], f, blen=1)
    bytes_written += condition_value_to_f(condition.op, condition.value, f)
    return bytes_written

def condition_from_f(f:io.IOBase) -> r_rule.Condition:
    key = s_util.from_len_pre_f(f)
    op_code = s_util.int_from_f(f, blen=1)
    if op_code not in OP_LOOKUP:
        raise FormatError(f'unknown operator code {op_code} for condition on {key!r}')
    op = OP_LOOKUP[op_code]
    value = condition_value_from_f(op, f)
    return r_rule.Condition(key, op, value)

def output_to_f(output:Union[str, bytes], f:io.IOBase) -> int:
    bytes_written = 0
    if isinstance(output, str):
        bytes_written += f.write(b's')
        bytes_written += s_util.bytes_to_f(output.encode("utf8"), f)
    else:
        bytes_written += f.write(b'b')
        bytes_written += s_util.bytes_to_f(output, f)
    return bytes_written

def output_from_f(f:io.IOBase) -> Union[str, bytes]:
    type_code = s_util.read_exact(f, 1)
    b = s_util.bytes_from_f(f)
    if type_code == b'b':
        return b
    elif type_code == b's':
        try:
            return b.decode("utf8")
        except UnicodeDecodeError as e:
            raise FormatError("bad utf8 in rule output") from e
    else:
        raise FormatError(f'got unexpected output type {type_code=}')

def rule_to_f(rule:r_rule.Rule, f:io.IOBase) -> int:
    bytes_written = 0
    bytes_written += s_util.to_len_pre_f(rule.rule_id, f)
    bytes_written += s_util.to_len_pre_f(rule.kind, f)
    bytes_written += s_util.int_to_f(rule.priority, f, signed=True)
    bytes_written += s_util.float_to_f(rule.weight, f)
    bytes_written += s_util.int_to_f(rule.cooldown, f)
    bytes_written += s_util.size_to_f(len(rule.conditions), f)
    for condition in rule.conditions:
        bytes_written += condition_to_f(condition, f)
    bytes_written += output_to_f(rule.output, f)
    return bytes_written

def rule_from_f(f:io.IOBase) -> r_rule.Rule:
    rule_id = s_util.from_len_pre_f(f)
    kind = s_util.from_len_pre_f(f)
    priority = s_util.int_from_f(f, signed=True)
    weight = s_util.float_from_f(f)
    cooldown = s_util.int_from_f(f)
    condition_count = s_util.size_from_f(f)
    conditions = tuple(condition_from_f(f) for _ in range(condition_count))
    output = output_from_f(f)
    return r_rule.Rule(
        rule_id,
        kind,
        conditions,
        priority=priority,
        weight=weight,
        output=output,
        cooldown=cooldown,
    )

def ruleset_to_f(ruleset:r_ruleset.Ruleset, f:io.IOBase) -> int:
    bytes_written = 0
    bytes_written += s_util.int_to_f(FORMAT_VERSION, f)
    bytes_written += s_util.size_to_f(len(ruleset.rules), f)
    bytes_written += s_util.int_to_f(ruleset.version, f)
    for rule in ruleset.rules:
        bytes_written += rule_to_f(rule, f)
    return bytes_written

def ruleset_from_f(f:io.IOBase) -> r_ruleset.Ruleset:
    format_version = s_util.int_from_f(f)
    if format_version != FORMAT_VERSION:
        raise UnsupportedVersion(format_version)
    rule_count = s_util.size_from_f(f)
    version = s_util.int_from_f(f)
    rules = [rule_from_f(f) for _ in range(rule_count)]
    return r_ruleset.build(rules, version=version)

def serialize(ruleset:r_ruleset.Ruleset) -> bytes:
    f = io.BytesIO()
    ruleset_to_f(ruleset, f)
    return f.getvalue()

def deserialize(data:bytes) -> r_ruleset.Ruleset:
    """ Decodes a ruleset serialized by serialize().

    Raises UnsupportedVersion for unknown format versions, FormatError for
    corrupt or truncated input and ValidationError if the decoded rules break
    ruleset invariants. Never returns a partial ruleset.
    """
    f = io.BytesIO(data)
    ruleset = ruleset_from_f(f)
    trailing = len(data) - f.tell()
    if trailing:
        raise FormatError(f'{trailing} unexpected trailing bytes after {len(ruleset)} rules')
    return ruleset

load_ruleset = deserialize

def save_ruleset(ruleset:r_ruleset.Ruleset, filename:str) -> int:
    """ writes ruleset to filename, replacing it only once fully written """
    start_time = time.perf_counter()
    data = serialize(ruleset)
    dirname = os.path.dirname(os.path.abspath(filename))
    temp_file = tempfile.NamedTemporaryFile("wb", dir=dirname, delete=False)
    try:
        with temp_file:
            temp_file.write(data)
        os.replace(temp_file.name, filename)
    except Exception:
        os.unlink(temp_file.name)
        raise
    logger.info(f'saved {len(data)}bytes ({len(ruleset)} rules) to {filename} in {time.perf_counter()-start_time}s')
    return len(data)

def load_ruleset_file(filename:str) -> r_ruleset.Ruleset:
    start_time = time.perf_counter()
    with open(filename, "rb") as f:
        data = f.read()
    ruleset = deserialize(data)
    logger.info(f'loaded {len(ruleset)} rules from {filename} in {time.perf_counter()-start_time}s')
    return ruleset
