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

"""The LLSD value model.

An `Llsd` is a tagged union over eleven kinds (see `Kind`). Containers own
their children, so a tree is built bottom-up and never refers back to a
parent. Scalars are stored as ordinary Python objects:

    Kind        payload
    ---------   ----------------------------------------------
    UNDEFINED   None
    BOOLEAN     bool
    INTEGER     int, always within the signed 32-bit range
    REAL        float (NaN and the infinities are allowed)
    STRING      str
    URI         Uri
    UUID        uuid.UUID
    DATE        datetime.datetime, timezone-aware, in UTC
    BINARY      bytes
    ARRAY       list[Llsd]
    MAP         dict[str, Llsd]

Values can be navigated with `get()`, `value[...]` and JSON-pointer-style
paths via `pointer()`.
"""

import abc
import collections.abc
import datetime
import enum
import re
import types
import urllib.parse
import uuid

from typing import Any, Iterator, Optional, Union

from pyllsd.errors import ConversionError


UTC = datetime.timezone.utc

EPOCH = datetime.datetime(1970, 1, 1, tzinfo=UTC)

_SPECIAL_SCHEMES = ('ftp', 'http', 'https', 'ws', 'wss')

_digits_re = re.compile(r'[0-9]+')

_rfc3339_re = re.compile(
    r'\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}(\.\d+)?([Zz]|[+-]\d{2}:\d{2})'
)


class Kind(enum.Enum):
    UNDEFINED = 'undefined'
    BOOLEAN = 'boolean'
    INTEGER = 'integer'
    REAL = 'real'
    STRING = 'string'
    URI = 'uri'
    UUID = 'uuid'
    DATE = 'date'
    BINARY = 'binary'
    ARRAY = 'array'
    MAP = 'map'


def wrap_i32(n: int) -> int:
    """Truncates an arbitrary int to a signed 32-bit int (two's complement)."""
    n &= 0xFFFFFFFF
    if n & 0x80000000:
        return n - 0x100000000
    return n


def to_utc(dt: Union[datetime.date, datetime.datetime]) -> datetime.datetime:
    """Returns `dt` as an aware UTC datetime.

    Naive datetimes are taken to already be in UTC, and plain dates
    mean midnight UTC.
    """
    if isinstance(dt, datetime.datetime):
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)
    return datetime.datetime.combine(dt, datetime.time(0), tzinfo=UTC)


def parse_date(text: str) -> datetime.datetime:
    """Parses an RFC 3339 timestamp, returning it in UTC.

    Raises ValueError if `text` isn't one.
    """
    if not _rfc3339_re.fullmatch(text):
        raise ValueError(f'{text!r} is not an RFC 3339 date')
    return to_utc(datetime.datetime.fromisoformat(text.upper()))


def format_date(dt: datetime.datetime) -> str:
    """Returns `dt` as an RFC 3339 timestamp (with a +00:00 offset)."""
    return to_utc(dt).isoformat()


class Uri:
    """A URI that is either empty, a parsed URL, or unparseable text.

    Parse failures don't lose the original text: `as_str()` still returns
    it and `error` says why it wasn't a URL.
    """

    __slots__ = ('_text', '_parts', '_error')

    def __init__(self, text: str = '', parts=None, error: Optional[str] = None):
        self._text = text
        self._parts = parts
        self._error = error

    @classmethod
    def parse(cls, text: str) -> 'Uri':
        text = text.strip()
        if not text:
            return cls()
        try:
            parts = urllib.parse.urlsplit(text)
        except ValueError as exc:
            return cls(text, error=str(exc))
        if not parts.scheme:
            return cls(text, error='relative URL without a base')
        if parts.scheme.lower() in _SPECIAL_SCHEMES and not parts.hostname:
            return cls(text, error='empty host')
        return cls(text, parts=parts)

    @property
    def parts(self) -> Optional[urllib.parse.SplitResult]:
        return self._parts

    @property
    def error(self) -> Optional[str]:
        return self._error

    def as_str(self) -> str:
        return self._text

    def is_empty(self) -> bool:
        return not self._text

    def is_url(self) -> bool:
        return self._parts is not None

    def __str__(self):
        return self._text

    def __repr__(self):
        if self.is_empty():
            return 'Uri()'
        if self.is_url():
            return f'Uri.parse({self._text!r})'
        return f'Uri({self._text!r}, error={self._error!r})'

    def __eq__(self, other):
        if not isinstance(other, Uri):
            return NotImplemented
        return (self._text, self._error) == (other._text, other._error)

    def __hash__(self):
        return hash((self._text, self._error))


class Index(abc.ABC):
    """A way of indexing into a container value.

    There are exactly two implementations: `ArrayIndex` (a position in an
    Array) and `MapKey` (a key in a Map). Plain `int` and `str` values are
    turned into these by `as_index()`.
    """

    __slots__ = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls.__module__ != __name__:
            raise TypeError('Index only has ArrayIndex and MapKey subclasses')

    @abc.abstractmethod
    def index_into(self, value: 'Llsd') -> Optional['Llsd']:
        """Returns the child, or None if the shape or key doesn't match."""

    @abc.abstractmethod
    def index_or_insert(self, value: 'Llsd') -> 'Llsd':
        """Returns the child for writing, creating it where allowed."""

    @abc.abstractmethod
    def assign(self, value: 'Llsd', item: 'Llsd') -> None:
        """Stores `item` at this index of `value`."""


class ArrayIndex(Index):
    __slots__ = ('position',)

    def __init__(self, position: int):
        self.position = position

    def __repr__(self):
        return f'ArrayIndex({self.position})'

    def index_into(self, value):
        if value.kind is not Kind.ARRAY:
            return None
        if 0 <= self.position < len(value.value):
            return value.value[self.position]
        return None

    def _check(self, value):
        if value.kind is not Kind.ARRAY:
            raise TypeError(f'cannot access index {self.position}')
        length = len(value.value)
        if not 0 <= self.position < length:
            raise IndexError(
                f'cannot access index {self.position} of array '
                f'of length {length}'
            )

    def index_or_insert(self, value):
        self._check(value)
        return value.value[self.position]

    def assign(self, value, item):
        self._check(value)
        value.value[self.position] = item


class MapKey(Index):
    __slots__ = ('key',)

    def __init__(self, key: str):
        self.key = key

    def __repr__(self):
        return f'MapKey({self.key!r})'

    def index_into(self, value):
        if value.kind is not Kind.MAP:
            return None
        return value.value.get(self.key)

    def _vivify(self, value):
        if value.kind is Kind.UNDEFINED:
            value.set(Llsd.map())
        if value.kind is not Kind.MAP:
            raise TypeError(f'cannot access key {self.key!r}')
        return value.value

    def index_or_insert(self, value):
        return self._vivify(value).setdefault(self.key, Llsd())

    def assign(self, value, item):
        self._vivify(value)[self.key] = item


def as_index(index: Union[int, str, Index]) -> Index:
    if isinstance(index, Index):
        return index
    if isinstance(index, bool):
        raise TypeError(f'{index!r} is not a valid LLSD index')
    if isinstance(index, int):
        return ArrayIndex(index)
    if isinstance(index, str):
        return MapKey(index)
    raise TypeError(f'{index!r} is not a valid LLSD index')


class Llsd:
    """A single LLSD value. See the module docstring for the payloads."""

    __slots__ = ('_kind', '_value')

    __hash__ = None  # type: ignore[assignment]

    def __init__(self):
        self._kind = Kind.UNDEFINED
        self._value: Any = None

    @classmethod
    def _make(cls, kind: Kind, value: Any) -> 'Llsd':
        obj = cls()
        obj._kind = kind
        obj._value = value
        return obj

    @classmethod
    def boolean(cls, value: bool) -> 'Llsd':
        return cls._make(Kind.BOOLEAN, bool(value))

    @classmethod
    def integer(cls, value: int) -> 'Llsd':
        return cls._make(Kind.INTEGER, wrap_i32(int(value)))

    @classmethod
    def real(cls, value: float) -> 'Llsd':
        return cls._make(Kind.REAL, float(value))

    @classmethod
    def string(cls, value: str) -> 'Llsd':
        if not isinstance(value, str):
            raise TypeError(f'{value!r} is not a str')
        return cls._make(Kind.STRING, value)

    @classmethod
    def uri(cls, value: Union[Uri, str]) -> 'Llsd':
        if not isinstance(value, Uri):
            value = Uri.parse(value)
        return cls._make(Kind.URI, value)

    @classmethod
    def uuid(cls, value: Union[uuid.UUID, str]) -> 'Llsd':
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(value)
        return cls._make(Kind.UUID, value)

    @classmethod
    def date(cls, value: Union[datetime.date, datetime.datetime]) -> 'Llsd':
        return cls._make(Kind.DATE, to_utc(value))

    @classmethod
    def binary(cls, value: Union[bytes, bytearray, memoryview]) -> 'Llsd':
        return cls._make(Kind.BINARY, bytes(value))

    @classmethod
    def array(cls, items=None) -> 'Llsd':
        return cls._make(
            Kind.ARRAY, [cls.from_python(item) for item in items or ()]
        )

    @classmethod
    def map(cls, items=None) -> 'Llsd':
        obj = cls._make(Kind.MAP, {})
        if items:
            if isinstance(items, collections.abc.Mapping):
                items = items.items()
            for key, item in items:
                obj.insert(key, item)
        return obj

    @classmethod
    def from_python(cls, obj: Any) -> 'Llsd':
        """Converts a plain Python object (recursively) into an Llsd.

        Llsd instances are returned unchanged. Objects that define a
        `__to_llsd__()` method (e.g. `@llsd_record` classes) are converted
        by calling it. Raises TypeError for anything else it doesn't
        recognize.
        """
        # pylint: disable=too-many-return-statements
        if isinstance(obj, Llsd):
            return obj
        to_llsd = getattr(obj, '__to_llsd__', None)
        if to_llsd is not None and not isinstance(obj, type):
            return to_llsd()
        if obj is None:
            return cls()

        # Check for bools before ints, since bools are also ints.
        if isinstance(obj, bool):
            return cls.boolean(obj)
        if isinstance(obj, int):
            return cls.integer(obj)
        if isinstance(obj, float):
            return cls.real(obj)
        if isinstance(obj, str):
            return cls.string(obj)
        if isinstance(obj, Uri):
            return cls.uri(obj)
        if isinstance(obj, uuid.UUID):
            return cls.uuid(obj)
        if isinstance(obj, datetime.date):
            return cls.date(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return cls.binary(obj)
        if isinstance(obj, collections.abc.Mapping):
            return cls.map(obj)
        if isinstance(obj, (collections.abc.Sequence, types.GeneratorType)):
            return cls.array(obj)
        raise TypeError(f'{obj!r} is not convertible to LLSD')

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def value(self) -> Any:
        """The raw payload (see the module docstring)."""
        return self._value

    def set(self, other: Any) -> None:
        """Replaces this value in place with (a conversion of) `other`."""
        other = Llsd.from_python(other)
        self._kind, self._value = other._kind, other._value

    def clear(self) -> None:
        self._kind = Kind.UNDEFINED
        self._value = None

    def take(self) -> 'Llsd':
        """Returns the current value and leaves Undefined in its place."""
        old = Llsd._make(self._kind, self._value)
        self.clear()
        return old

    def copy(self) -> 'Llsd':
        """Returns a deep copy."""
        if self._kind is Kind.ARRAY:
            return Llsd._make(Kind.ARRAY, [v.copy() for v in self._value])
        if self._kind is Kind.MAP:
            return Llsd._make(
                Kind.MAP, {k: v.copy() for k, v in self._value.items()}
            )
        return Llsd._make(self._kind, self._value)

    def push(self, item: Any) -> 'Llsd':
        """Appends to an Array, turning Undefined into a new Array first."""
        if self._kind is Kind.UNDEFINED:
            self._kind, self._value = Kind.ARRAY, []
        elif self._kind is not Kind.ARRAY:
            raise ConversionError('not an array')
        self._value.append(Llsd.from_python(item))
        return self

    def insert(self, key: str, item: Any) -> 'Llsd':
        """Sets a key in a Map, turning Undefined into a new Map first."""
        if not isinstance(key, str):
            raise TypeError(f'LLSD map keys must be strings, not {key!r}')
        if self._kind is Kind.UNDEFINED:
            self._kind, self._value = Kind.MAP, {}
        elif self._kind is not Kind.MAP:
            raise ConversionError('not a map')
        self._value[key] = Llsd.from_python(item)
        return self

    def get(self, index: Union[int, str, Index]) -> Optional['Llsd']:
        return as_index(index).index_into(self)

    def get_mut(self, index: Union[int, str, Index]) -> Optional['Llsd']:
        """Same lookup as `get()`; the result may be modified in place."""
        return as_index(index).index_into(self)

    def contains(self, index: Union[int, str, Index]) -> bool:
        return self.get(index) is not None

    def index_mut(self, index: Union[int, str, Index]) -> 'Llsd':
        """Returns the child at `index` for writing.

        A string index turns an Undefined value into a Map, and a missing
        key into a new Undefined entry. An integer index must name an
        existing Array element. Misuse raises TypeError or IndexError.
        """
        return as_index(index).index_or_insert(self)

    def pointer(self, path: str) -> Optional['Llsd']:
        """Resolves a '/'-separated path like '/a/2/b'.

        Segments use '~1' for a literal '/' and '~0' for a literal '~'.
        Returns None if any step doesn't resolve.
        """
        if not path:
            return self
        if not path.startswith('/'):
            return None
        target = self
        for token in path.split('/')[1:]:
            token = token.replace('~1', '/').replace('~0', '~')
            if target.kind is Kind.ARRAY:
                if not _digits_re.fullmatch(token):
                    return None
                target = ArrayIndex(int(token)).index_into(target)
            elif target.kind is Kind.MAP:
                target = target.value.get(token)
            else:
                return None
            if target is None:
                return None
        return target

    def pointer_mut(self, path: str) -> Optional['Llsd']:
        """Same lookup as `pointer()`; the result may be modified in place."""
        return self.pointer(path)

    def is_empty(self) -> bool:
        return len(self) == 0

    def is_undefined(self) -> bool:
        return self._kind is Kind.UNDEFINED

    def is_boolean(self) -> bool:
        return self._kind is Kind.BOOLEAN

    def is_integer(self) -> bool:
        return self._kind is Kind.INTEGER

    def is_real(self) -> bool:
        return self._kind is Kind.REAL

    def is_string(self) -> bool:
        return self._kind is Kind.STRING

    def is_uri(self) -> bool:
        return self._kind is Kind.URI

    def is_uuid(self) -> bool:
        return self._kind is Kind.UUID

    def is_date(self) -> bool:
        return self._kind is Kind.DATE

    def is_binary(self) -> bool:
        return self._kind is Kind.BINARY

    def is_array(self) -> bool:
        return self._kind is Kind.ARRAY

    def is_map(self) -> bool:
        return self._kind is Kind.MAP

    def _as(self, kind: Kind) -> Any:
        return self._value if self._kind is kind else None

    def as_boolean(self) -> Optional[bool]:
        return self._as(Kind.BOOLEAN)

    def as_integer(self) -> Optional[int]:
        return self._as(Kind.INTEGER)

    def as_real(self) -> Optional[float]:
        return self._as(Kind.REAL)

    def as_string(self) -> Optional[str]:
        return self._as(Kind.STRING)

    def as_uri(self) -> Optional[Uri]:
        return self._as(Kind.URI)

    def as_uuid(self) -> Optional['uuid.UUID']:
        return self._as(Kind.UUID)

    def as_date(self) -> Optional[datetime.datetime]:
        return self._as(Kind.DATE)

    def as_binary(self) -> Optional[bytes]:
        return self._as(Kind.BINARY)

    def as_array(self) -> Optional[list['Llsd']]:
        return self._as(Kind.ARRAY)

    def as_map(self) -> Optional[dict[str, 'Llsd']]:
        return self._as(Kind.MAP)

    def to_python(self) -> Any:
        """Returns the tree as plain Python objects (None for Undefined)."""
        if self._kind is Kind.ARRAY:
            return [v.to_python() for v in self._value]
        if self._kind is Kind.MAP:
            return {k: v.to_python() for k, v in self._value.items()}
        return self._value

    def __len__(self):
        if self._kind in (Kind.ARRAY, Kind.MAP):
            return len(self._value)
        return 0

    def __bool__(self):
        return self._kind is not Kind.UNDEFINED

    def __iter__(self) -> Iterator[Any]:
        if self._kind in (Kind.ARRAY, Kind.MAP):
            return iter(self._value)
        return iter(())

    def __contains__(self, index):
        return self.contains(index)

    def __getitem__(self, index: Union[int, str, Index]) -> 'Llsd':
        child = as_index(index).index_into(self)
        if child is None:
            return Llsd()
        return child

    def __setitem__(self, index: Union[int, str, Index], item: Any) -> None:
        as_index(index).assign(self, Llsd.from_python(item))

    def __eq__(self, other):
        if not isinstance(other, Llsd):
            return NotImplemented
        return self._kind is other._kind and self._value == other._value

    def __repr__(self):
        if self._kind is Kind.UNDEFINED:
            return 'Llsd()'
        return f'Llsd.{self._kind.value}({self._value!r})'
