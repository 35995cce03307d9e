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

"""Mapping dataclasses to and from LLSD Maps.

    @llsd_record(rename_all='camelCase')
    @dataclasses.dataclass
    class Agent:
        agent_id: uuid.UUID
        display_name: Optional[str] = None
        session: Session = llsd_field(flatten=True, default_factory=Session)

`Llsd.from_python(agent)` (or `record_to_llsd(agent)`) produces
`{'agentId': ..., 'displayName': ..., <session's keys>}`, and
`from_llsd(value, Agent)` (or `Agent.__from_llsd__(value)`) goes the other
way. Per-field behavior is controlled with `llsd_field()`.
"""

import dataclasses
import typing

from typing import Any, Callable, Optional

from pyllsd.convert import from_llsd
from pyllsd.errors import ConversionError
from pyllsd.value import Kind, Llsd


RENAME_RULES = (
    'snake_case',
    'kebab-case',
    'camelCase',
    'PascalCase',
    'SCREAMING_SNAKE_CASE',
    'lowercase',
    'UPPERCASE',
)

_METADATA_KEY = 'pyllsd'


def rename(name: str, rule: Optional[str]) -> str:
    """Returns the (snake_case) field `name` rewritten per `rule`."""
    # pylint: disable=too-many-return-statements
    if rule is None:
        return name
    words = [w for w in name.split('_') if w]
    if rule == 'snake_case':
        return '_'.join(w.lower() for w in words)
    if rule == 'kebab-case':
        return '-'.join(w.lower() for w in words)
    if rule == 'camelCase':
        return words[0].lower() + ''.join(w.capitalize() for w in words[1:])
    if rule == 'PascalCase':
        return ''.join(w.capitalize() for w in words)
    if rule == 'SCREAMING_SNAKE_CASE':
        return '_'.join(w.upper() for w in words)
    if rule == 'lowercase':
        return name.lower()
    if rule == 'UPPERCASE':
        return name.upper()
    raise ValueError(f'unknown rename rule {rule!r}')


@dataclasses.dataclass(frozen=True)
class FieldOptions:
    rename: Optional[str] = None
    skip: bool = False
    skip_serializing: bool = False
    skip_deserializing: bool = False
    flatten: bool = False
    serialize: Optional[Callable[[Any], Any]] = None
    deserialize: Optional[Callable[[Llsd], Any]] = None


@dataclasses.dataclass(frozen=True)
class RecordOptions:
    rename_all: Optional[str] = None
    deny_unknown_fields: bool = False


def llsd_field(
    *,
    rename: Optional[str] = None,
    skip: bool = False,
    skip_serializing: bool = False,
    skip_deserializing: bool = False,
    flatten: bool = False,
    serialize: Optional[Callable[[Any], Any]] = None,
    deserialize: Optional[Callable[[Llsd], Any]] = None,
    **kwargs,
):
    """A `dataclasses.field()` that also carries LLSD mapping options.

    Args:
      rename: the Map key to use, overriding the record's `rename_all`.
      skip: leave the field out of the Map and use its default when
        reading.
      skip_serializing: only leave it out of the Map.
      skip_deserializing: ignore the Map and always use the default.
      flatten: merge the field's own Map (it must convert to one) into the
        record's Map, and build it from the record's whole Map.
      serialize: called with the field's value; the result is converted
        instead.
      deserialize: called with the field's Llsd value; the result is used
        instead of the default conversion.
      **kwargs: passed on to `dataclasses.field()` (`default`,
        `default_factory`, ...).
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[_METADATA_KEY] = FieldOptions(
        rename=rename,
        skip=skip,
        skip_serializing=skip_serializing,
        skip_deserializing=skip_deserializing,
        flatten=flatten,
        serialize=serialize,
        deserialize=deserialize,
    )
    return dataclasses.field(metadata=metadata, **kwargs)


def _options(field: dataclasses.Field) -> FieldOptions:
    return field.metadata.get(_METADATA_KEY) or FieldOptions()


def _has_default(field: dataclasses.Field) -> bool:
    return (
        field.default is not dataclasses.MISSING
        or field.default_factory is not dataclasses.MISSING
    )


def _is_optional(tp: Any) -> bool:
    return type(None) in typing.get_args(tp)


class _RecordField(typing.NamedTuple):
    name: str
    key: str
    tp: Any
    options: FieldOptions
    has_default: bool


def llsd_record(
    cls=None,
    *,
    rename_all: Optional[str] = None,
    deny_unknown_fields: bool = False,
):
    """Class decorator that makes a dataclass convertible to/from a Map.

    Classes that aren't dataclasses yet are turned into one. May be used
    with or without arguments.
    """
    if rename_all is not None and rename_all not in RENAME_RULES:
        raise ValueError(f'unknown rename rule {rename_all!r}')

    def wrap(cls):
        if not dataclasses.is_dataclass(cls):
            cls = dataclasses.dataclass(cls)
        cls.__llsd_options__ = RecordOptions(rename_all, deny_unknown_fields)
        cls.__llsd_fields__ = None
        cls.__to_llsd__ = record_to_llsd
        cls.__from_llsd__ = classmethod(record_from_llsd)
        return cls

    if cls is None:
        return wrap
    return wrap(cls)


def _fields(cls) -> list[_RecordField]:
    # Computed lazily so that forward references in annotations resolve.
    if cls.__dict__.get('__llsd_fields__') is not None:
        return cls.__llsd_fields__
    opts = cls.__llsd_options__
    hints = typing.get_type_hints(cls)
    fields = []
    for field in dataclasses.fields(cls):
        options = _options(field)
        tp = hints.get(field.name, Any)
        if (
            (options.skip or options.skip_deserializing)
            and field.init
            and not _has_default(field)
            and not _is_optional(tp)
        ):
            raise TypeError(
                f'{cls.__name__}.{field.name} is skipped when reading, '
                'so it needs a default'
            )
        key = options.rename or rename(field.name, opts.rename_all)
        fields.append(
            _RecordField(field.name, key, tp, options, _has_default(field))
        )
    cls.__llsd_fields__ = fields
    return fields


def _claimed_keys(tp: Any) -> Optional[set[str]]:
    """Returns the Map keys a flattened field of type `tp` reads.

    None means it reads all of them.
    """
    if not hasattr(tp, '__llsd_options__'):
        return None
    keys: set[str] = set()
    for field in _fields(tp):
        if field.options.flatten:
            inner = _claimed_keys(field.tp)
            if inner is None:
                return None
            keys |= inner
        else:
            keys.add(field.key)
    return keys


def record_to_llsd(obj: Any) -> Llsd:
    """Converts an `@llsd_record` instance into a Map."""
    result = Llsd.map()
    for field in _fields(type(obj)):
        options = field.options
        if options.skip or options.skip_serializing:
            continue
        value = getattr(obj, field.name)
        if options.serialize is not None:
            item = Llsd.from_python(options.serialize(value))
        elif value is None and _is_optional(field.tp):
            continue
        else:
            item = Llsd.from_python(value)
        if options.flatten:
            if item.kind is not Kind.MAP:
                raise ConversionError(
                    f'cannot flatten field {field.name!r}: expected Map'
                )
            for key, child in item.value.items():
                result.insert(key, child)
        else:
            result.insert(field.key, item)
    return result


def record_from_llsd(cls, value: Llsd) -> Any:
    """Builds an instance of the `@llsd_record` class `cls` from a Map.

    Raises ConversionError if `value` isn't a Map, a required field is
    missing, a field doesn't convert, or (with `deny_unknown_fields`)
    the Map has keys no field reads.
    """
    if value.kind is not Kind.MAP:
        raise ConversionError('expected Map')
    items = value.value
    claimed: Optional[set[str]] = set()
    kwargs = {}
    for field in _fields(cls):
        options = field.options
        if options.skip or options.skip_deserializing:
            if not field.has_default:
                kwargs[field.name] = None
            continue
        if options.flatten:
            inner = _claimed_keys(field.tp)
            if inner is None or claimed is None:
                claimed = None
            else:
                claimed |= inner
            kwargs[field.name] = _convert(field, value)
            continue
        if claimed is not None:
            claimed.add(field.key)
        item = items.get(field.key)
        if item is None:
            if field.has_default:
                continue
            if _is_optional(field.tp):
                kwargs[field.name] = None
                continue
            raise ConversionError(f'missing field {field.key!r}')
        kwargs[field.name] = _convert(field, item)

    if cls.__llsd_options__.deny_unknown_fields and claimed is not None:
        unknown = [key for key in items if key not in claimed]
        if unknown:
            raise ConversionError(f'unknown field {unknown[0]!r}')
    return cls(**kwargs)


def _convert(field: _RecordField, item: Llsd) -> Any:
    try:
        if field.options.deserialize is not None:
            return field.options.deserialize(item)
        return from_llsd(item, field.tp)
    except ConversionError as exc:
        raise ConversionError(f'field {field.key!r}: {exc}') from exc
