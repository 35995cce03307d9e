# Copyright 2025 Dirk Pranke. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#    http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Typed conversions between `Llsd` values and native Python types.

`to_llsd()` always succeeds for the types it knows about. `from_llsd()` is
fallible and takes the target type, much like a typed deserializer would:

    >>> from_llsd(Llsd.string('42'), int)
    42
    >>> from_llsd(Llsd.from_python([1, 2]), tuple[U8, U8])
    (1, 2)

Numeric targets follow native cast rules. Integers wrap into the width of
the target. Reals truncate toward zero and saturate at the bounds of the
width, with NaN becoming 0. Booleans count as 0 or 1. Strings must be
plain decimal literals (or `inf` and `nan` for reals), without
underscores or surrounding whitespace.
"""

import datetime
import math
import re
import struct
import types
import typing
import uuid

from typing import Any

from pyllsd.errors import ConversionError
from pyllsd.value import Kind, Llsd, Uri


def to_llsd(obj: Any) -> Llsd:
    """Converts `obj` into an Llsd. Raises TypeError for unknown types."""
    return Llsd.from_python(obj)


class FixedInt(int):
    """Base class for integer targets of a fixed width."""

    bits = 64
    signed = True

    @classmethod
    def wrap(cls, n: int) -> 'FixedInt':
        n &= (1 << cls.bits) - 1
        if cls.signed and n >= 1 << (cls.bits - 1):
            n -= 1 << cls.bits
        return cls(n)

    @classmethod
    def bounds(cls) -> tuple[int, int]:
        if cls.signed:
            return -(1 << (cls.bits - 1)), (1 << (cls.bits - 1)) - 1
        return 0, (1 << cls.bits) - 1

    @classmethod
    def fits(cls, n: int) -> bool:
        lo, hi = cls.bounds()
        return lo <= n <= hi

    @classmethod
    def saturate(cls, x: float) -> 'FixedInt':
        """Truncates `x` toward zero and clamps it to the width.

        NaN becomes 0 and the infinities become the bounds.
        """
        if math.isnan(x):
            return cls(0)
        lo, hi = cls.bounds()
        if x <= lo:
            return cls(lo)
        if x >= hi:
            return cls(hi)
        return cls(math.trunc(x))


class I8(FixedInt):
    bits = 8


class I16(FixedInt):
    bits = 16


class I32(FixedInt):
    bits = 32


class I64(FixedInt):
    bits = 64


class U8(FixedInt):
    bits = 8
    signed = False


class U16(FixedInt):
    bits = 16
    signed = False


class U32(FixedInt):
    bits = 32
    signed = False


class U64(FixedInt):
    bits = 64
    signed = False


class F32(float):
    """A float target rounded to single precision."""

    @classmethod
    def narrow(cls, x: float) -> 'F32':
        try:
            return cls(struct.unpack('<f', struct.pack('<f', x))[0])
        except OverflowError:
            return cls(math.copysign(math.inf, x))


_int_re = re.compile(r'[+-]?[0-9]+')
_real_re = re.compile(
    r'[+-]?(inf|infinity|nan|([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?)',
    re.IGNORECASE,
)


def _to_int(value: Llsd, tp: type) -> int:
    kind = value.kind
    if kind is Kind.INTEGER:
        n = value.value
    elif kind is Kind.REAL:
        # A plain int target saturates like I64.
        if issubclass(tp, FixedInt):
            return tp.saturate(value.value)
        return int(I64.saturate(value.value))
    elif kind is Kind.BOOLEAN:
        n = int(value.value)
    elif kind is Kind.STRING:
        if not _int_re.fullmatch(value.value):
            raise ConversionError('invalid integer')
        n = int(value.value)
        if issubclass(tp, FixedInt) and not tp.fits(n):
            raise ConversionError('invalid integer')
    else:
        raise ConversionError('expected Integer')
    if issubclass(tp, FixedInt):
        return tp.wrap(n)
    return n


def _to_float(value: Llsd, tp: type) -> float:
    kind = value.kind
    if kind in (Kind.REAL, Kind.INTEGER, Kind.BOOLEAN):
        x = float(value.value)
    elif kind is Kind.STRING:
        if not _real_re.fullmatch(value.value):
            raise ConversionError('invalid real')
        x = float(value.value)
    else:
        raise ConversionError('expected Real')
    if issubclass(tp, F32):
        return F32.narrow(x)
    return x


def _to_uuid(value: Llsd) -> uuid.UUID:
    if value.kind is Kind.UUID:
        return value.value
    if value.kind is Kind.STRING:
        try:
            return uuid.UUID(value.value)
        except ValueError as exc:
            raise ConversionError('invalid uuid') from exc
    raise ConversionError('expected Uuid')


def _to_uri(value: Llsd) -> Uri:
    if value.kind is Kind.URI:
        return value.value
    if value.kind is Kind.STRING:
        return Uri.parse(value.value)
    raise ConversionError('expected Uri')


def _expect(value: Llsd, kind: Kind) -> Any:
    if value.kind is not kind:
        raise ConversionError(f'expected {kind.name.capitalize()}')
    return value.value


def _union_members(tp) -> tuple:
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        return typing.get_args(tp)
    return ()


def from_llsd(value: Llsd, tp: Any) -> Any:
    """Converts `value` into an instance of `tp`.

    Raises ConversionError if the value has the wrong shape or a string
    can't be parsed as the target type. Containers are converted element
    by element; any failure fails the whole conversion.
    """
    # pylint: disable=too-many-branches,too-many-return-statements
    if tp is Llsd:
        return value
    if tp is Any or tp is object:
        return value.to_python()

    members = _union_members(tp)
    if members:
        others = [m for m in members if m is not type(None)]
        if len(others) != len(members) and value.kind is Kind.UNDEFINED:
            return None
        if len(others) == 1:
            return from_llsd(value, others[0])
        raise TypeError(f'unsupported union target {tp!r}')

    origin = typing.get_origin(tp)
    if origin is tuple:
        args = typing.get_args(tp)
        items = _expect(value, Kind.ARRAY)
        if len(items) != len(args):
            raise ConversionError(f'expected array of length {len(args)}')
        return tuple(from_llsd(v, a) for v, a in zip(items, args))
    if origin is list:
        (arg,) = typing.get_args(tp)
        return [from_llsd(v, arg) for v in _expect(value, Kind.ARRAY)]
    if origin is dict:
        key_tp, arg = typing.get_args(tp)
        if key_tp is not str:
            raise TypeError('LLSD maps only have str keys')
        return {
            k: from_llsd(v, arg) for k, v in _expect(value, Kind.MAP).items()
        }

    if not isinstance(tp, type):
        raise TypeError(f'unsupported conversion target {tp!r}')
    hook = getattr(tp, '__from_llsd__', None)
    if hook is not None:
        return hook(value)
    if tp is bool:
        return _expect(value, Kind.BOOLEAN)
    if issubclass(tp, int):
        return _to_int(value, tp)
    if issubclass(tp, float):
        return _to_float(value, tp)
    if tp is str:
        return _expect(value, Kind.STRING)
    if tp is uuid.UUID:
        return _to_uuid(value)
    if tp is Uri:
        return _to_uri(value)
    if tp is datetime.datetime:
        return _expect(value, Kind.DATE)
    if tp is bytes:
        return _expect(value, Kind.BINARY)
    if tp is list:
        return [v.to_python() for v in _expect(value, Kind.ARRAY)]
    if tp is dict:
        return {
            k: v.to_python() for k, v in _expect(value, Kind.MAP).items()
        }
    raise TypeError(f'unsupported conversion target {tp!r}')
