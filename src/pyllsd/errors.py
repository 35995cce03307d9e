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

"""Exceptions raised by the value model and the codecs.

Every exception derives from `LlsdError`, which is itself a `ValueError`,
so code that already catches `ValueError` around `json.loads()`-style
calls keeps working.
"""

from typing import Optional


class LlsdError(ValueError):
    """Base class for all errors raised by pyllsd."""


class ConversionError(LlsdError):
    """Raised when a value can't be converted to or from a native type.

    This covers kind mismatches ("expected Integer"), unparseable string
    literals ("invalid integer"), and record mapping failures ("missing
    field", "unknown field").
    """


class ParseError(LlsdError):
    """Raised when a document can't be decoded.

    `offset` is the zero-based byte offset where the problem was detected,
    if known.
    `line` and `column` are one-based and are only set by decoders that
    track them (the notation decoder does; the binary decoder doesn't).
    """

    # pylint: disable=too-many-arguments
    def __init__(
        self,
        msg: str,
        *,
        offset: Optional[int] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        filename: Optional[str] = None,
    ):
        super().__init__(msg)
        self.msg = msg
        self.offset = offset
        self.line = line
        self.column = column
        self.filename = filename or '<string>'

    def __str__(self):
        if self.line is None and self.offset is None:
            return f'{self.filename}: {self.msg}'
        if self.line is None:
            return f'{self.filename}: {self.msg} at byte {self.offset}'
        return f'{self.filename}:{self.line} {self.msg} at column {self.column}'

    def __reduce__(self):
        return (
            _rebuild_parse_error,
            (
                self.__class__,
                self.msg,
                self.offset,
                self.line,
                self.column,
                self.filename,
            ),
        )


def _rebuild_parse_error(cls, msg, offset, line, column, filename):
    return cls(
        msg, offset=offset, line=line, column=column, filename=filename
    )


class MaxDepthError(ParseError):
    """The document nests containers deeper than the decoder allows."""


class UnexpectedEndError(ParseError):
    """The input ended in the middle of a value."""


class InvalidByteError(ParseError):
    """A byte that can't start or continue the current production."""


class ExpectedError(ParseError):
    """A specific token was required but something else was found."""


class InvalidUtf8Error(ParseError):
    """A string, key or URI body was not legal UTF-8."""


class InvalidUuidError(ParseError):
    """A UUID literal could not be parsed."""


class InvalidDateError(ParseError):
    """A date literal (or binary timestamp) could not be parsed."""


class InvalidIntegerError(ParseError):
    """An integer literal was malformed or out of the 32-bit range."""


class InvalidRealError(ParseError):
    """A real literal was malformed."""


class XmlError(ParseError):
    """An XML or XML-RPC document did not have the expected structure."""
