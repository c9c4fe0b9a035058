""" Utility methods broadly applicable across the codebase. """

import math
import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)

def fullname(o:Any) -> str:
    # from https://stackoverflow.com/a/2020083/553580
    # Python makes no guarantees as to whether the __module__ special
    # attribute is defined, so we take a more circumspect approach.

    if isinstance(o, type):
        klass = o
    else:
        klass = o.__class__

    module = klass.__module__
    if module is None or module == str.__class__.__module__:
        return klass.__qualname__  # Avoid reporting __builtin__
    else:
        return module + '.' + klass.__qualname__

def is_number(x:Any) -> bool:
    """ int or float, but not bool (which python considers an int) """
    return isinstance(x, (int, float)) and not isinstance(x, bool)

def pyisclose(a:float, b:float, rtol:float=1e-05, atol:float=1e-08) -> bool:
    return abs(a-b) <= (atol + rtol * abs(b))

def is_finite(x:float) -> bool:
    if isinstance(x, int):
        # ints are always finite, and huge ones won't convert to float
        return True
    return not (math.isnan(x) or math.isinf(x))

# widths of the fixed size fields in the binary ruleset format. anything a
# Ruleset accepts has to fit in these.
STR16_MAX_BYTES = 2**16 - 1
U32_MAX = 2**32 - 1
I32_MIN, I32_MAX = -2**31, 2**31 - 1
I64_MIN, I64_MAX = -2**63, 2**63 - 1

def utf8_len(s:str) -> Optional[int]:
    """ encoded length of s, None if s can't be encoded (e.g. lone surrogates) """
    try:
        return len(s.encode("utf8"))
    except UnicodeEncodeError:
        return None

def str16_problem(s:str, what:str) -> Optional[str]:
    """ describes why s can't be stored as a length prefixed string, if it can't """
    l = utf8_len(s)
    if l is None:
        return f'{what} is not valid utf8: {s!r}'
    elif l > STR16_MAX_BYTES:
        return f'{what} is {l} bytes, more than {STR16_MAX_BYTES}'
    return None

def atom_problem(x:Any, what:str) -> Optional[str]:
    """ describes why an int or str atom can't be stored, if it can't """
    if isinstance(x, bool):
        return None
    elif isinstance(x, int):
        if not I64_MIN <= x <= I64_MAX:
            return f'{what} {x} does not fit in a signed 64 bit int'
    elif isinstance(x, str):
        return str16_problem(x, what)
    return None
