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

"""A streaming byte cursor shared by the binary and notation decoders.

The cursor reads from a bytes-like object or from anything with a
`read(n)` method (a binary file, a socket file, ...) a chunk at a time, and
keeps track of the absolute offset, line, and column of the next byte so
that errors can say where they happened.
"""

import sys

from typing import Callable, NamedTuple, Optional, Type

from pyllsd import errors


WHITESPACE = b' \t\r\n'

HEX_DIGITS = b'0123456789abcdefABCDEF'

CHUNK_SIZE = 8192

RESERVED_FRAMES = 250

# What a byte following a backslash turns into. Anything not listed
# (other than 'x', which starts a two-digit hex escape) stands for itself.
_UNESCAPES = {
    ord('a'): 0x07,
    ord('b'): 0x08,
    ord('f'): 0x0C,
    ord('n'): 0x0A,
    ord('r'): 0x0D,
    ord('t'): 0x09,
    ord('v'): 0x0B,
    ord('\\'): ord('\\'),
    ord("'"): ord("'"),
    ord('"'): ord('"'),
}


class Position(NamedTuple):
    offset: int
    line: int
    column: int


def describe(byte: Optional[int]) -> str:
    if byte is None:
        return 'end of input'
    if 0x20 < byte < 0x7F:
        return repr(chr(byte))
    return f'byte 0x{byte:02x}'


def depth_limit(max_depth: int) -> int:
    """Returns `max_depth`, capped so nesting can't hit the recursion limit.

    The decoders use two Python frames per level of nesting, and some
    frames are left over for the caller.
    """
    usable = sys.getrecursionlimit() - RESERVED_FRAMES
    return min(max_depth, usable // 2)


class ByteCursor:
    """Reads bytes one at a time, remembering where it is."""

    def __init__(
        self, source, filename: Optional[str] = None, track_lines: bool = True
    ):
        if isinstance(source, (bytes, bytearray, memoryview)):
            self._buf = bytes(source)
            self._fp = None
        else:
            self._buf = b''
            self._fp = source
        self._i = 0
        self.filename = filename or '<string>'
        self.offset = 0
        self.line = 1
        self.column = 1
        self._last = Position(0, 1, 1)
        self._track_lines = track_lines

    @property
    def position(self) -> Position:
        """Where the next byte will be read from."""
        return Position(self.offset, self.line, self.column)

    @property
    def last_position(self) -> Position:
        """Where the most recently consumed byte was."""
        return self._last

    def _fill(self, n: int) -> bool:
        """Makes sure `n` unread bytes are buffered, if the source has them."""
        while len(self._buf) - self._i < n:
            if self._fp is None:
                return False
            chunk = self._fp.read(max(CHUNK_SIZE, n))
            if not chunk:
                self._fp = None
                return False
            self._buf = self._buf[self._i :] + bytes(chunk)
            self._i = 0
        return True

    def _advance(self, byte: int) -> None:
        self._last = Position(self.offset, self.line, self.column)
        self._i += 1
        self.offset += 1
        if byte == 0x0A:
            self.line += 1
            self.column = 1
        else:
            self.column += 1

    def error(
        self,
        cls: Type[errors.ParseError],
        msg: str,
        pos: Optional[Position] = None,
    ) -> errors.ParseError:
        """Returns (doesn't raise) an exception located at `pos`.

        `pos` defaults to the current position.
        """
        pos = pos or self.position
        return cls(
            msg,
            offset=pos.offset,
            line=pos.line if self._track_lines else None,
            column=pos.column if self._track_lines else None,
            filename=self.filename,
        )

    def at_end(self) -> bool:
        return not self._fill(1)

    def peek(self) -> Optional[int]:
        """Returns the next byte without consuming it, or None at the end."""
        if not self._fill(1):
            return None
        return self._buf[self._i]

    def next(self) -> int:
        """Consumes and returns the next byte."""
        if not self._fill(1):
            raise self.error(errors.UnexpectedEndError, 'Unexpected end of input')
        byte = self._buf[self._i]
        self._advance(byte)
        return byte

    def skip_ws(self) -> Optional[int]:
        """Skips whitespace and returns (without consuming) the next byte."""
        while True:
            byte = self.peek()
            if byte is None or byte not in WHITESPACE:
                return byte
            self._advance(byte)

    def next_non_ws(self) -> Optional[int]:
        """Skips whitespace, then consumes and returns the next byte.

        Returns None if the input ends first.
        """
        byte = self.skip_ws()
        if byte is not None:
            self._advance(byte)
        return byte

    def expect(self, allowed: bytes) -> int:
        """Consumes the next byte, which must be one of `allowed`."""
        if self.peek() is None:
            raise self.error(
                errors.UnexpectedEndError,
                f'Unexpected end of input, expected {_one_of(allowed)}',
            )
        byte = self.next()
        if byte not in allowed:
            raise self.error(
                errors.ExpectedError,
                f'Expected {_one_of(allowed)}, found {describe(byte)}',
                self._last,
            )
        return byte

    def take_while(self, pred: Callable[[int], bool]) -> bytes:
        """Consumes bytes up to (not including) the first one failing `pred`."""
        out = bytearray()
        while True:
            byte = self.peek()
            if byte is None or not pred(byte):
                return bytes(out)
            self._advance(byte)
            out.append(byte)

    def read_exact(self, n: int) -> bytes:
        if not self._fill(n):
            raise self.error(
                errors.UnexpectedEndError,
                f'Unexpected end of input reading {n} bytes',
            )
        data = self._buf[self._i : self._i + n]
        for byte in data:
            self._advance(byte)
        return data

    def read_until(self, delim: int) -> bytes:
        """Consumes bytes through `delim` (inclusive) and returns them."""
        out = bytearray()
        while True:
            byte = self.next()
            out.append(byte)
            if byte == delim:
                return bytes(out)

    def hex_digit(self) -> int:
        byte = self.next()
        if byte not in HEX_DIGITS:
            raise self.error(
                errors.InvalidByteError,
                f'Invalid hex digit {describe(byte)}',
                self._last,
            )
        return int(chr(byte), 16)

    def unescape(self, delim: int) -> bytes:
        """Reads an escaped body up to the closing `delim`.

        The opening delimiter must already have been consumed. Returns the
        raw (unescaped) bytes; use `decode_utf8()` to get text.
        """
        out = bytearray()
        while True:
            byte = self.next()
            if byte == delim:
                return bytes(out)
            if byte != 0x5C:  # backslash
                out.append(byte)
                continue
            byte = self.next()
            if byte == ord('x'):
                out.append((self.hex_digit() << 4) | self.hex_digit())
            else:
                out.append(_UNESCAPES.get(byte, byte))

    def read_sized(self) -> bytes:
        """Reads a `(N)"<N raw bytes>"` block (the leading tag already read).

        Either quote character may delimit the block, but both ends must
        match.
        """
        self.expect(b'(')
        start = self.position
        digits = self.take_while(lambda b: 0x30 <= b <= 0x39)
        if not digits:
            raise self.error(
                errors.ExpectedError,
                f'Expected a length, found {describe(self.peek())}',
                start,
            )
        self.expect(b')')
        quote = self.expect(b'"\'')
        data = self.read_exact(int(digits))
        self.expect(bytes([quote]))
        return data

    def decode_utf8(self, data: bytes, pos: Position) -> str:
        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise self.error(
                errors.InvalidUtf8Error, f'Invalid UTF-8: {exc.reason}', pos
            ) from exc


def _one_of(allowed: bytes) -> str:
    choices = [describe(b) for b in allowed]
    if len(choices) == 1:
        return choices[0]
    return 'one of ' + ', '.join(choices)
