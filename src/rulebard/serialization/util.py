""" Primitive big-endian codecs shared by the binary formats.

Every *_to_f writes to a binary file-like object and returns the number of
bytes written. Every *_from_f reads from one and raises FormatError if the
input ends early or holds something that can't be decoded.
"""

import io
import struct
from collections.abc import Collection
from typing import Any, Union

class FormatError(Exception):
    """ Binary input is corrupt, truncated or otherwise undecodable. """

class UnsupportedVersion(FormatError):
    """ Binary input declares a format version this code doesn't understand. """
    def __init__(self, version:int, *args:Any, **kwargs:Any) -> None:
        if not args:
            args = (f'unsupported format version {version}',)
        super().__init__(*args, **kwargs)
        self.version = version

def read_exact(f:io.IOBase, n:int) -> bytes:
    b = f.read(n)
    if b is None or len(b) != n:
        raise FormatError(f'truncated input: wanted {n} bytes at offset {f.tell()-len(b or b"")}, got {len(b or b"")}')
    return b

def size_to_bytes(x:int) -> bytes:
    return x.to_bytes(4, byteorder="big", signed=False)

def size_to_f(x:int, f:io.IOBase) -> int:
    return f.write(size_to_bytes(x))

def size_from_f(f:io.IOBase) -> int:
    return int.from_bytes(read_exact(f, 4), byteorder="big", signed=False)

def float_to_f(value:float, f:io.IOBase) -> int:
    # doubles, so floats survive a round trip exactly
    return f.write(struct.pack(">d", value))

def float_from_f(f:io.IOBase) -> float:
    return struct.unpack(">d", read_exact(f, 8))[0]

def int_to_f(x:int, f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    try:
        return f.write(x.to_bytes(blen, byteorder="big", signed=signed))
    except OverflowError as e:
        raise ValueError(f'{x} does not fit in {blen} bytes ({signed=})') from e

def int_from_f(f:io.IOBase, blen:int=4, signed:bool=False) -> int:
    return int.from_bytes(read_exact(f, blen), byteorder="big", signed=signed)

def bytes_to_f(b:bytes, f:io.IOBase, blen:int=4) -> int:
    i = int_to_f(len(b), f, blen=blen)
    i += f.write(b)
    return i

def bytes_from_f(f:io.IOBase, blen:int=4) -> bytes:
    l = int_from_f(f, blen=blen)
    return read_exact(f, l)

def to_len_pre_f(s:str, f:io.IOBase, blen:int=2) -> int:
    return bytes_to_f(s.encode("utf8"), f, blen=blen)

def from_len_pre_f(f:io.IOBase, blen:int=2) -> str:
    b = bytes_from_f(f, blen=blen)
    try:
        return b.decode("utf8")
    except UnicodeDecodeError as e:
        raise FormatError(f'bad utf8 string at offset {f.tell()-len(b)}') from e

def bool_to_f(b:bool, f:io.IOBase) -> int:
    return int_to_f(1 if b else 0, f, blen=1)

def bool_from_f(f:io.IOBase) -> bool:
    x = int_from_f(f, blen=1)
    if x not in (0, 1):
        raise FormatError(f'bad bool byte {x}')
    return x == 1

def strs_to_f(seq:Collection[str], f:io.IOBase) -> int:
    bytes_written = 0
    bytes_written += size_to_f(len(seq), f)
    for s in seq:
        bytes_written += to_len_pre_f(s, f)
    return bytes_written

def strs_from_f(f:io.IOBase) -> list[str]:
    count = size_from_f(f)
    seq = []
    for i in range(count):
        seq.append(from_len_pre_f(f))
    return seq

def primitive_to_f(x:Union[bool,int,float,str,frozenset[str]], f:io.IOBase, slen:int=2, ilen:int=8) -> int:
    """ writes a type code followed by the value

    bool has to be tested before int since it's an int subclass. frozensets
    are string tag sets, written sorted so equal sets give equal bytes. """
    bytes_written = 0
    if isinstance(x, bool):
        bytes_written += f.write(b'b')
        bytes_written += bool_to_f(x, f)
    elif isinstance(x, int):
        bytes_written += f.write(b'i')
        bytes_written += int_to_f(x, f, blen=ilen, signed=True)
    elif isinstance(x, float):
        bytes_written += f.write(b'f')
        bytes_written += float_to_f(x, f)
    elif isinstance(x, str):
        bytes_written += f.write(b's')
        bytes_written += to_len_pre_f(x, f, blen=slen)
    elif isinstance(x, frozenset):
        bytes_written += f.write(b't')
        bytes_written += strs_to_f(sorted(x), f)
    else:
        raise ValueError(f'x must be bool,int,float,str,frozenset. {x=}')
    return bytes_written

def primitive_from_f(f:io.IOBase, slen:int=2, ilen:int=8) -> Union[bool,int,float,str,frozenset[str]]:
    return primitive_body_from_f(read_exact(f, 1), f, slen=slen, ilen=ilen)

def primitive_body_from_f(type_code:bytes, f:io.IOBase, slen:int=2, ilen:int=8) -> Union[bool,int,float,str,frozenset[str]]:
    """ reads a primitive value whose type code has already been read """
    if type_code == b'b':
        return bool_from_f(f)
    elif type_code == b'i':
        return int_from_f(f, blen=ilen, signed=True)
    elif type_code == b'f':
        return float_from_f(f)
    elif type_code == b's':
        return from_len_pre_f(f, blen=slen)
    elif type_code == b't':
        return frozenset(strs_from_f(f))
    else:
        raise FormatError(f'got unexpected type {type_code=}')
