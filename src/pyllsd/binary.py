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

"""The LLSD binary encoding.

Every value starts with a one-byte tag:

    !   undefined
    1 0 boolean true / false
    i   int32, big-endian
    r   float64, big-endian
    s   uint32 big-endian length + UTF-8 bytes
    l   uint32 length + URI text
    u   16 raw bytes
    d   float64 seconds since the epoch, *little*-endian
    b   uint32 length + raw bytes
    [   uint32 count + values + ]
    {   uint32 count + (k + uint32 length + key + value)* + }

Strings (and map keys) may also appear as quoted, backslash-escaped bodies
the way they do in the notation format. A document may start with a
`<? LLSD/Binary ?>` header, which is skipped.

The API follows the `json` module: `load`, `loads`, `dump`, `dumps`.
"""

import datetime
import math
import struct
import uuid

from typing import IO, Any, Optional

from pyllsd import errors
from pyllsd import logs
from pyllsd.cursor import ByteCursor, depth_limit, describe
from pyllsd.value import EPOCH, Kind, Llsd, Uri


DEFAULT_MAX_DEPTH = 256

HEADER = b'<? LLSD/Binary ?>\n'

MARKER = b'LLSD/Binary'

logger = logs.get_logger(__name__)

_i32 = struct.Struct('>i')
_u32 = struct.Struct('>I')
_f64 = struct.Struct('>d')
_date = struct.Struct('<d')


def load(
    fp: IO,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    filename: Optional[str] = None,
) -> Llsd:
    """Decodes one binary LLSD value read from the binary file `fp`.

    The file is read incrementally, so it may contain more data after
    the value; that data is left unread (modulo buffering).
    """
    filename = filename or getattr(fp, 'name', None)
    if not isinstance(filename, str):
        filename = None
    return Decoder().decode(
        ByteCursor(fp, filename, track_lines=False), max_depth
    )


def loads(
    data: bytes,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    filename: Optional[str] = None,
) -> Llsd:
    """Decodes one binary LLSD value from `data`.

    `max_depth` bounds nesting the same way `notation.loads()` does,
    including the cap derived from `sys.getrecursionlimit()`.

    Raises:
      ParseError (or one of its subclasses) if `data` is not a legal
        document. The exception's `offset` says where the problem was.
    """
    if isinstance(data, str):
        raise TypeError('binary LLSD must be decoded from bytes, not str')
    return Decoder().decode(
        ByteCursor(data, filename, track_lines=False), max_depth
    )


def dump(obj: Any, fp: IO, *, header: bool = False) -> None:
    """Writes `obj` in the binary encoding to the binary file `fp`."""
    fp.write(dumps(obj, header=header))


def dumps(obj: Any, *, header: bool = False) -> bytes:
    """Returns `obj` in the binary encoding.

    `obj` may be an Llsd or anything `Llsd.from_python()` accepts. If
    `header` is true, the result starts with `<? LLSD/Binary ?>`.
    """
    out = bytearray()
    if header:
        out += HEADER
    Encoder().encode(Llsd.from_python(obj), out)
    return bytes(out)


class Decoder:
    """Reads binary LLSD from a ByteCursor."""

    def decode(self, cur: ByteCursor, max_depth: int = DEFAULT_MAX_DEPTH):
        self._skip_header(cur)
        value = self._value(cur, depth_limit(max_depth))
        logger.debug('decoded %s from %d bytes', value.kind.value, cur.offset)
        return value

    def _skip_header(self, cur: ByteCursor) -> None:
        if cur.peek() != ord('<'):
            return
        start = cur.position
        span = cur.read_until(ord('>'))
        if MARKER not in span:
            raise cur.error(
                errors.ExpectedError,
                'Unexpected LLSD binary header',
                start,
            )
        cur.skip_ws()
        logger.debug('skipped %d byte header', cur.offset)

    def _value(self, cur: ByteCursor, budget: int) -> Llsd:
        # pylint: disable=too-many-return-statements
        if budget <= 0:
            logger.debug('maximum depth reached at byte %d', cur.offset)
            raise cur.error(errors.MaxDepthError, 'Maximum depth exceeded')
        start = cur.position
        tag = cur.next()
        if tag == ord('!'):
            return Llsd()
        if tag == ord('1'):
            return Llsd.boolean(True)
        if tag == ord('0'):
            return Llsd.boolean(False)
        if tag == ord('i'):
            return Llsd.integer(_i32.unpack(cur.read_exact(4))[0])
        if tag == ord('r'):
            return Llsd.real(_f64.unpack(cur.read_exact(8))[0])
        if tag == ord('s'):
            return Llsd.string(self._text(cur))
        if tag == ord('l'):
            return Llsd.uri(Uri.parse(self._text(cur)))
        if tag == ord('u'):
            return Llsd.uuid(uuid.UUID(bytes=cur.read_exact(16)))
        if tag == ord('d'):
            return Llsd.date(self._date(cur, start))
        if tag == ord('b'):
            return Llsd.binary(cur.read_exact(self._length(cur)))
        if tag == ord('['):
            return self._array(cur, budget)
        if tag == ord('{'):
            return self._map(cur, budget)
        if tag in (ord('"'), ord("'")):
            pos = cur.position
            return Llsd.string(cur.decode_utf8(cur.unescape(tag), pos))
        raise cur.error(
            errors.InvalidByteError,
            f'Unknown LLSD type {describe(tag)}',
            start,
        )

    def _length(self, cur: ByteCursor) -> int:
        return _u32.unpack(cur.read_exact(4))[0]

    def _text(self, cur: ByteCursor) -> str:
        n = self._length(cur)
        pos = cur.position
        return cur.decode_utf8(cur.read_exact(n), pos)

    def _date(self, cur: ByteCursor, start) -> datetime.datetime:
        seconds = _date.unpack(cur.read_exact(8))[0]
        if not math.isfinite(seconds):
            raise cur.error(
                errors.InvalidDateError, f'Invalid date {seconds!r}', start
            )
        try:
            return EPOCH + datetime.timedelta(seconds=seconds)
        except OverflowError as exc:
            raise cur.error(
                errors.InvalidDateError, f'Invalid date {seconds!r}', start
            ) from exc

    def _array(self, cur: ByteCursor, budget: int) -> Llsd:
        count = self._length(cur)
        items = []
        for _ in range(count):
            items.append(self._value(cur, budget - 1))
        self._close(cur, ord(']'))
        return Llsd.array(items)

    def _map(self, cur: ByteCursor, budget: int) -> Llsd:
        count = self._length(cur)
        result = Llsd.map()
        for _ in range(count):
            key = self._key(cur)
            result.insert(key, self._value(cur, budget - 1))
        self._close(cur, ord('}'))
        return result

    def _key(self, cur: ByteCursor) -> str:
        tag = cur.expect(b'k"\'')
        if tag == ord('k'):
            return self._text(cur)
        pos = cur.position
        return cur.decode_utf8(cur.unescape(tag), pos)

    def _close(self, cur: ByteCursor, closer: int) -> None:
        if cur.peek() is None:
            raise cur.error(
                errors.UnexpectedEndError,
                f'Unexpected end of input, expected {describe(closer)}',
            )
        cur.expect(bytes([closer]))


class Encoder:
    """Writes binary LLSD into a bytearray."""

    def encode(self, value: Llsd, out: bytearray) -> None:
        # pylint: disable=too-many-branches
        kind = value.kind
        payload = value.value
        if kind is Kind.UNDEFINED:
            out += b'!'
        elif kind is Kind.BOOLEAN:
            out += b'1' if payload else b'0'
        elif kind is Kind.INTEGER:
            out += b'i' + _i32.pack(payload)
        elif kind is Kind.REAL:
            out += b'r' + _f64.pack(payload)
        elif kind is Kind.STRING:
            self._sized(out, b's', payload.encode('utf-8'))
        elif kind is Kind.URI:
            self._sized(out, b'l', payload.as_str().encode('utf-8'))
        elif kind is Kind.UUID:
            out += b'u' + payload.bytes
        elif kind is Kind.DATE:
            seconds = (payload - EPOCH) / datetime.timedelta(seconds=1)
            out += b'd' + _date.pack(seconds)
        elif kind is Kind.BINARY:
            self._sized(out, b'b', payload)
        elif kind is Kind.ARRAY:
            out += b'[' + _u32.pack(len(payload))
            for item in payload:
                self.encode(item, out)
            out += b']'
        else:
            out += b'{' + _u32.pack(len(payload))
            for key, item in payload.items():
                self._sized(out, b'k', key.encode('utf-8'))
                self.encode(item, out)
            out += b'}'

    def _sized(self, out: bytearray, tag: bytes, data: bytes) -> None:
        out += tag + _u32.pack(len(data)) + data
