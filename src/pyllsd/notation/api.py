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

"""Reading and writing the LLSD notation format.

Notation is the textual LLSD encoding. Every value starts with a tag:
`!` (undefined), `0`/`1`/`true`/`false`, `i` (integer), `r` (real), `u`
(uuid), a quoted or `s(N)` sized string, `l` (uri), `d` (date), `b64`,
`b16` or `b(N)` binary, `[...]` arrays and `{...}` maps with quoted keys.

The API mirrors the `json` module: `load()`, `loads()`, `dump()` and
`dumps()`, plus `parse()`, which reports errors and positions instead of
raising.
"""

import dataclasses
import math
import re
import uuid

from typing import IO, Any, Optional, Tuple, Type, Union

from pyllsd import errors
from pyllsd import logs
from pyllsd.cursor import (
    HEX_DIGITS,
    ByteCursor,
    Position,
    depth_limit,
    describe,
)
from pyllsd.value import Kind, Llsd, Uri, format_date, parse_date


DEFAULT_MAX_DEPTH = 256

logger = logs.get_logger(__name__)

_float_re = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')

_special_reals = {
    'nan': math.nan,
    '+nan': math.nan,
    '-nan': math.nan,
    'inf': math.inf,
    '+inf': math.inf,
    '-inf': -math.inf,
}

_real_bytes = b'0123456789.+-eEnNaAiIfF'

_quotes = b'"\''


def load(
    fp: IO,
    *,
    cls: Optional[Type['Decoder']] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    allow_trailing: bool = False,
    filename: Optional[str] = None,
) -> Llsd:
    """Deserialize ``fp`` (a binary file-like object with a ``.read()``
    method, containing an LLSD notation document) to an Llsd value.

    Supports the same arguments as ``loads()``. Unlike ``loads()``, the
    file is read a chunk at a time rather than all at once.
    """
    if filename is None:
        name = getattr(fp, 'name', None)
        filename = name if isinstance(name, str) else None
    cls = cls or Decoder
    dec = cls(max_depth=max_depth, allow_trailing=allow_trailing)
    return dec.decode(ByteCursor(fp, filename))


def loads(
    s: Union[bytes, str],
    *,
    cls: Optional[Type['Decoder']] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    allow_trailing: bool = False,
    filename: Optional[str] = None,
) -> Llsd:
    """Deserialize ``s`` (bytes or a str containing an LLSD notation
    document) to an Llsd value.

    A document that is empty or only whitespace is Undefined.

    Args:
      s: the document. A str is encoded as UTF-8 first, so sized
        binary values in it only work for ASCII payloads.
      max_depth: how deeply values may nest. Every value counts, so a
        scalar inside N arrays needs a `max_depth` of N + 1. The limit is
        also capped to stay clear of `sys.getrecursionlimit()`, so very
        deep documents fail with MaxDepthError rather than RecursionError.
      allow_trailing: if false (the default), it is an error for anything
        other than whitespace to follow the value. If true, decoding stops
        quietly after the first value.
      filename: the name used in error messages.

    Raises:
      ParseError (one of its subclasses) if `s` is not a legal document.
        The error carries the offset, line and column of the problem.
    """
    if isinstance(s, str):
        s = s.encode('utf-8')
    cls = cls or Decoder
    dec = cls(max_depth=max_depth, allow_trailing=allow_trailing)
    return dec.decode(ByteCursor(s, filename))


def parse(
    s: Union[bytes, str],
    *,
    cls: Optional[Type['Decoder']] = None,
    max_depth: int = DEFAULT_MAX_DEPTH,
    allow_trailing: bool = False,
    start: Optional[int] = None,
    filename: Optional[str] = None,
) -> Tuple[Optional[Llsd], Optional[str], int]:
    """Parse ``s``, returning positional information along with a value.

    This works exactly like `loads()`, except that the return value is
    different (see below). `parse()` is useful if you have a string that
    might contain multiple values and you need to extract all of them;
    you can do so by repeatedly calling `parse`, setting `start` to the
    value returned in `position` from the previous call.

    Returns:
      A tuple of (value, error_string, position). If the string
      was a legal value, `value` will be the deserialized value,
      `error_string` will be `None`, and `position` will be the
      zero-based byte offset where the parser stopped reading (after any
      whitespace following the value). If the string was not a legal value,
      `value` will be `None`, `error_string` will be the string value
      of the exception that would've been raised, and `position` will
      be the zero-based offset where the error was detected.

    Note that this does *not* raise a `ParseError`.

        >>> from pyllsd import notation
        >>> s = b'i1 i2 i3'
        >>> values = []
        >>> start = 0
        >>> while start < len(s):
        ...     v, err, start = notation.parse(s, start=start,
        ...                                    allow_trailing=True)
        ...     if err:
        ...         raise ValueError(err)
        ...     values.append(v.as_integer())
        >>> values
        [1, 2, 3]

    """
    if isinstance(s, str):
        s = s.encode('utf-8')
    cls = cls or Decoder
    dec = cls(max_depth=max_depth, allow_trailing=allow_trailing)
    cur = ByteCursor(s, filename)
    try:
        if start:
            cur.read_exact(start)
        value = dec.decode(cur)
    except errors.ParseError as exc:
        return None, str(exc), exc.offset
    return value, None, cur.offset


class Decoder:
    """A recursive descent parser for the notation format.

    Each `parse_*` method handles one production. It is called with the
    production's tag byte already consumed, and may be overridden to
    customize decoding.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        allow_trailing: bool = False,
    ):
        self.max_depth = max_depth
        self.allow_trailing = allow_trailing

    def decode(self, cur: ByteCursor) -> Llsd:
        """Reads a single value from `cur`.

        Leading and trailing whitespace is skipped. An input with no
        value at all is Undefined.
        """
        byte = cur.next_non_ws()
        if byte is None:
            return Llsd()
        value = self.parse_value(cur, byte, depth_limit(self.max_depth))
        byte = cur.skip_ws()
        if byte is not None and not self.allow_trailing:
            raise cur.error(
                errors.InvalidByteError, f'Unexpected {describe(byte)}'
            )
        logger.debug(
            'decoded %s from %s (%d bytes)',
            value.kind.value,
            cur.filename,
            cur.offset,
        )
        return value

    def parse_value(self, cur: ByteCursor, byte: int, budget: int) -> Llsd:
        """Parses the value whose first byte, `byte`, was just consumed."""
        # pylint: disable=too-many-return-statements,too-many-branches
        start = cur.last_position
        if budget <= 0:
            logger.debug('maximum depth reached at offset %d', start.offset)
            raise cur.error(errors.MaxDepthError, 'Maximum depth exceeded', start)
        ch = chr(byte).lower() if byte < 0x80 else ''
        if ch == '!':
            return Llsd()
        if ch == '0':
            return Llsd.boolean(False)
        if ch == '1':
            return Llsd.boolean(True)
        if ch == 't':
            return self.parse_word(cur, 'rue', True)
        if ch == 'f':
            return self.parse_word(cur, 'alse', False)
        if ch == 'i':
            return self.parse_integer(cur, start)
        if ch == 'r':
            return self.parse_real(cur, start)
        if ch == 'u':
            return self.parse_uuid(cur, start)
        if ch in ('"', "'"):
            return Llsd.string(self.parse_string(cur, byte))
        if ch == 's':
            return Llsd.string(self.parse_sized_string(cur))
        if ch == 'l':
            return self.parse_uri(cur)
        if ch == 'd':
            return self.parse_date(cur, start)
        if ch == 'b':
            return self.parse_binary(cur)
        if ch == '[':
            return self.parse_array(cur, budget)
        if ch == '{':
            return self.parse_map(cur, budget)
        raise cur.error(
            errors.InvalidByteError, f'Unexpected {describe(byte)}', start
        )

    def parse_word(self, cur: ByteCursor, rest: str, value: bool) -> Llsd:
        """Parses the rest of `true`/`false`. A bare `t` or `f` also works."""
        if cur.peek() is None or chr(cur.peek()).lower() != rest[0]:
            return Llsd.boolean(value)
        for ch in rest:
            cur.expect(ch.encode() + ch.upper().encode())
        return Llsd.boolean(value)

    def parse_integer(self, cur: ByteCursor, start: Position) -> Llsd:
        sign = b''
        if cur.peek() in (ord('+'), ord('-')):
            sign = bytes([cur.next()])
        digits = cur.take_while(_is_digit)
        if not digits:
            raise cur.error(
                errors.InvalidIntegerError,
                f'Invalid integer: expected a digit, found '
                f'{describe(cur.peek())}',
            )
        n = int(sign + digits)
        if not -0x80000000 <= n <= 0x7FFFFFFF:
            raise cur.error(
                errors.InvalidIntegerError,
                f'Integer {n} is out of range',
                start,
            )
        return Llsd.integer(n)

    def parse_real(self, cur: ByteCursor, start: Position) -> Llsd:
        text = cur.take_while(lambda b: b in _real_bytes).decode('ascii')
        special = _special_reals.get(text.lower())
        if special is not None:
            return Llsd.real(special)
        if not _float_re.fullmatch(text):
            raise cur.error(
                errors.InvalidRealError, f'Invalid real {text!r}', start
            )
        return Llsd.real(float(text))

    def parse_uuid(self, cur: ByteCursor, start: Position) -> Llsd:
        text = cur.take_while(lambda b: b in HEX_DIGITS or b == 0x2D)
        try:
            return Llsd.uuid(uuid.UUID(text.decode('ascii')))
        except ValueError as exc:
            raise cur.error(
                errors.InvalidUuidError,
                f'Invalid UUID {text.decode("ascii")!r}',
                start,
            ) from exc

    def parse_string(self, cur: ByteCursor, quote: int) -> str:
        """Parses a quoted string; the opening `quote` was just consumed."""
        pos = cur.position
        return cur.decode_utf8(cur.unescape(quote), pos)

    def parse_sized_string(self, cur: ByteCursor) -> str:
        pos = cur.position
        return cur.decode_utf8(cur.read_sized(), pos)

    def parse_uri(self, cur: ByteCursor) -> Llsd:
        quote = cur.expect(_quotes)
        return Llsd.uri(Uri.parse(self.parse_string(cur, quote)))

    def parse_date(self, cur: ByteCursor, start: Position) -> Llsd:
        quote = cur.expect(_quotes)
        text = self.parse_string(cur, quote)
        try:
            return Llsd.date(parse_date(text))
        except ValueError as exc:
            raise cur.error(
                errors.InvalidDateError, f'Invalid date {text!r}', start
            ) from exc

    def parse_binary(self, cur: ByteCursor) -> Llsd:
        if cur.peek() == ord('('):
            return Llsd.binary(cur.read_sized())
        cur.expect(b'1')
        cur.expect(b'6')
        quote = cur.expect(_quotes)
        data = bytearray()
        while True:
            byte = cur.next()
            if byte == quote:
                return Llsd.binary(data)
            if byte not in HEX_DIGITS:
                raise cur.error(
                    errors.InvalidByteError,
                    f'Invalid hex digit {describe(byte)}',
                    cur.last_position,
                )
            data.append((int(chr(byte), 16) << 4) | cur.hex_digit())

    def parse_array(self, cur: ByteCursor, budget: int) -> Llsd:
        items = []
        while True:
            byte = cur.next_non_ws()
            if byte is None:
                raise cur.error(
                    errors.UnexpectedEndError,
                    "Unexpected end of input, expected ']'",
                )
            if byte == ord(','):
                continue
            if byte == ord(']'):
                return Llsd.array(items)
            items.append(self.parse_value(cur, byte, budget - 1))

    def parse_map(self, cur: ByteCursor, budget: int) -> Llsd:
        result = Llsd.map()
        while True:
            byte = cur.next_non_ws()
            if byte is None:
                raise cur.error(
                    errors.UnexpectedEndError,
                    "Unexpected end of input, expected '}'",
                )
            if byte == ord(','):
                continue
            if byte == ord('}'):
                return result
            key = self.parse_key(cur, byte)
            byte = cur.next_non_ws()
            if byte != ord(':'):
                raise cur.error(
                    errors.UnexpectedEndError
                    if byte is None
                    else errors.ExpectedError,
                    f"Expected ':', found {describe(byte)}",
                    cur.position if byte is None else cur.last_position,
                )
            byte = cur.next_non_ws()
            if byte is None:
                raise cur.error(
                    errors.UnexpectedEndError,
                    "Unexpected end of input after ':'",
                )
            result.insert(key, self.parse_value(cur, byte, budget - 1))

    def parse_key(self, cur: ByteCursor, byte: int) -> str:
        if byte in _quotes:
            return self.parse_string(cur, byte)
        if byte in b'sS':
            return self.parse_sized_string(cur)
        raise cur.error(
            errors.ExpectedError,
            f'Expected a map key, found {describe(byte)}',
            cur.last_position,
        )


def _is_digit(byte: int) -> bool:
    return 0x30 <= byte <= 0x39


def _escape_for(byte: int) -> bytes:
    mnemonic = _MNEMONICS.get(byte)
    if mnemonic is not None:
        return mnemonic
    if 0x20 <= byte < 0x7F:
        return bytes([byte])
    return b'\\x%02x' % byte


_MNEMONICS = {
    0x07: b'\\a',
    0x08: b'\\b',
    0x09: b'\\t',
    0x0A: b'\\n',
    0x0B: b'\\v',
    0x0C: b'\\f',
    0x0D: b'\\r',
    0x27: b"\\'",
    0x5C: b'\\\\',
}

# What each byte of a string's UTF-8 encoding is written as, inside
# single quotes.
STRING_ESCAPES = tuple(_escape_for(b) for b in range(256))

# The same, for the double-quoted bodies of URIs.
URI_ESCAPES = STRING_ESCAPES[:0x22] + (b'\\"',) + STRING_ESCAPES[0x23:]


def escape(data: bytes, table: Tuple[bytes, ...] = STRING_ESCAPES) -> bytes:
    return b''.join(table[b] for b in data)


@dataclasses.dataclass
class FormatterOptions:
    """How `Encoder` lays out its output.

    `indent` is the per-level indentation used when `pretty` is true.
    `boolean` writes Booleans as `1`/`0` instead of `true`/`false`, and
    `hex` writes Binary as `b16"..."` instead of `b(N)"..."`.
    """

    indent: str = '  '
    pretty: bool = False
    boolean: bool = False
    hex: bool = False


def dump(
    obj: Any,
    fp: IO,
    *,
    cls: Optional[Type['Encoder']] = None,
    options: Optional[FormatterOptions] = None,
    **kw,
):
    """Serialize ``obj`` as LLSD notation to ``fp``, a binary
    ``.write()``-supporting file-like object.

    Supports the same arguments as ``dumps()``, below.
    """

    fp.write(dumps(obj, cls=cls, options=options, **kw))


def dumps(
    obj: Any,
    *,
    cls: Optional[Type['Encoder']] = None,
    options: Optional[FormatterOptions] = None,
    **kw,
) -> bytes:
    """Serialize ``obj`` as LLSD notation.

    `obj` may be an Llsd or anything `Llsd.from_python()` accepts. The
    layout comes from `options`; alternatively the `FormatterOptions`
    fields (`indent`, `pretty`, `boolean`, `hex`) may be passed as
    keyword arguments:

        >>> from pyllsd import notation
        >>> notation.dumps({'a': [1, 2.5]})
        b"{'a':[i1,r2.5]}"
        >>> print(notation.dumps([1, 'x'], pretty=True).decode())
        [
          i1,
          'x'
        ]

    The result is bytes, since sized binary values are written raw.
    """

    options = options or FormatterOptions(**kw)
    cls = cls or Encoder
    enc = cls(options)
    return b''.join(enc.encode(Llsd.from_python(obj), level=0))


class Encoder:
    """A class that can customize the behavior of `dumps`.

    `encode()` yields the output as a sequence of byte strings.
    """

    def __init__(self, options: Optional[FormatterOptions] = None):
        self.options = options or FormatterOptions()

    def encode(self, value: Llsd, level: int):
        # pylint: disable=too-many-branches
        kind = value.kind
        payload = value.value
        if kind is Kind.ARRAY:
            yield from self._encode_array(payload, level)
        elif kind is Kind.MAP:
            yield from self._encode_map(payload, level)
        elif kind is Kind.UNDEFINED:
            yield b'!'
        elif kind is Kind.BOOLEAN:
            yield self._encode_boolean(payload)
        elif kind is Kind.INTEGER:
            yield b'i%d' % payload
        elif kind is Kind.REAL:
            yield b'r' + self._encode_real(payload)
        elif kind is Kind.UUID:
            yield b'u' + str(payload).encode('ascii')
        elif kind is Kind.STRING:
            yield b"'" + escape(payload.encode('utf-8')) + b"'"
        elif kind is Kind.URI:
            text = payload.as_str().encode('utf-8')
            yield b'l"' + escape(text, URI_ESCAPES) + b'"'
        elif kind is Kind.DATE:
            yield b'd"' + format_date(payload).encode('ascii') + b'"'
        else:
            yield self._encode_binary(payload)

    def _encode_boolean(self, payload: bool) -> bytes:
        if self.options.boolean:
            return b'1' if payload else b'0'
        return b'true' if payload else b'false'

    def _encode_real(self, payload: float) -> bytes:
        # repr() gives the shortest round-tripping form, and nan, inf, -inf.
        return repr(payload).encode('ascii')

    def _encode_binary(self, payload: bytes) -> bytes:
        if self.options.hex:
            return b'b16"' + payload.hex().upper().encode('ascii') + b'"'
        return b'b(%d)"' % len(payload) + payload + b'"'

    def _encode_array(self, items: list, level: int):
        if not items:
            yield b'[]'
            return
        indent_str, end_str = self._spacers(level)
        yield b'[' + indent_str
        for i, item in enumerate(items):
            if i:
                yield b',' + indent_str
            yield from self.encode(item, level + 1)
        yield end_str + b']'

    def _encode_map(self, items: dict, level: int):
        if not items:
            yield b'{}'
            return
        indent_str, end_str = self._spacers(level)
        yield b'{' + indent_str
        for i, (key, item) in enumerate(items.items()):
            if i:
                yield b',' + indent_str
            yield b"'" + escape(key.encode('utf-8')) + b"':"
            yield from self.encode(item, level + 1)
        yield end_str + b'}'

    def _spacers(self, level: int) -> Tuple[bytes, bytes]:
        if not self.options.pretty:
            return b'', b''
        indent = self.options.indent.encode('utf-8')
        return b'\n' + indent * (level + 1), b'\n' + indent * level
