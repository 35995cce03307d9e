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

"""The LLSD XML encoding.

    <?xml version="1.0" encoding="UTF-8"?>
    <llsd><map><key>a</key><integer>1</integer></map></llsd>

Tokenizing is left to `xml.etree.ElementTree.XMLPullParser`; this module
only runs the small state machine that turns its start and end events into
an `Llsd` tree, and builds an element tree to write one out.
"""

import base64
import math
import re
import uuid
import xml.etree.ElementTree as ET

from typing import IO, Any, Callable, Optional, Union

from pyllsd import errors
from pyllsd import logs
from pyllsd.value import EPOCH, Kind, Llsd, Uri, format_date, parse_date


DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

CHUNK_SIZE = 8192

_illegal_xml_re = re.compile(
    r'[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]'
)

logger = logs.get_logger(__name__)


def parse_boolean(text: str) -> bool:
    text = text.strip()
    if text in ('', '0', 'false'):
        return False
    if text in ('1', 'true'):
        return True
    raise ValueError(f'expected boolean, got {text!r}')


def parse_integer(text: str) -> int:
    text = text.strip()
    if not text:
        return 0
    n = int(text, 10)
    if not -0x80000000 <= n <= 0x7FFFFFFF:
        raise ValueError(f'integer {n} is out of range')
    return n


def parse_real(text: str) -> float:
    text = text.strip()
    if not text:
        return 0.0
    return float(text)


def format_real(x: float) -> str:
    if math.isnan(x):
        return 'nan'
    return repr(x)


def parse_base64(text: str) -> bytes:
    return base64.b64decode(''.join(text.split()), validate=True)


_SCALARS: dict[str, Callable[[str], Llsd]] = {
    'undef': lambda text: Llsd(),
    'boolean': lambda text: Llsd.boolean(parse_boolean(text)),
    'integer': lambda text: Llsd.integer(parse_integer(text)),
    'real': lambda text: Llsd.real(parse_real(text)),
    'string': Llsd.string,
    'uuid': lambda text: Llsd.uuid(
        uuid.UUID(text.strip()) if text.strip() else uuid.UUID(int=0)
    ),
    'uri': lambda text: Llsd.uri(Uri.parse(text)),
    'date': lambda text: Llsd.date(
        parse_date(text.strip()) if text.strip() else EPOCH
    ),
    'binary': lambda text: Llsd.binary(parse_base64(text)),
}


class Frame:
    """A container being filled in, and the key its next value goes under."""

    __slots__ = ('value', 'key')

    def __init__(self, value: Llsd):
        self.value = value
        self.key: Optional[str] = None


class Decoder:
    """Turns XMLPullParser events for an <llsd> document into an Llsd.

    Feed it data with `feed()` and call `close()` at the end to get the
    value.
    """

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename or '<string>'
        self._parser = ET.XMLPullParser(events=('start', 'end'))
        self._started = False
        self._done = False
        self._stack: list[Frame] = []
        self._open_scalar: Optional[str] = None
        self._result: Optional[Llsd] = None

    def error(self, msg: str, cause: Optional[Exception] = None):
        line = column = None
        if isinstance(cause, ET.ParseError):
            line, column = cause.position
            column += 1
        return errors.XmlError(
            msg, line=line, column=column, filename=self.filename
        )

    def feed(self, data: Union[bytes, str]) -> None:
        try:
            self._parser.feed(data)
            events = list(self._parser.read_events())
        except ET.ParseError as exc:
            raise self.error(str(exc), exc) from exc
        for event, elem in events:
            if event == 'start':
                self._start(elem)
            else:
                self._end(elem)

    def close(self) -> Llsd:
        try:
            self._parser.close()
        except ET.ParseError as exc:
            raise self.error(str(exc), exc) from exc
        if not self._done:
            raise self.error('unexpected end of input')
        if self._result is None:
            return Llsd()
        return self._result

    def _start(self, elem: ET.Element) -> None:
        tag = elem.tag
        if not self._started:
            if tag != 'llsd':
                raise self.error(f'expected <llsd> root element, got <{tag}>')
            self._started = True
            return
        if self._done:
            raise self.error(f'unexpected element <{tag}> after </llsd>')
        if tag == 'llsd':
            raise self.error('unexpected <llsd> element')
        if self._open_scalar is not None:
            raise self.error(
                f'unexpected element <{tag}> inside <{self._open_scalar}>'
            )
        parent = self._stack[-1] if self._stack else None
        if tag == 'key':
            if parent is None or parent.value.kind is not Kind.MAP:
                raise self.error('unexpected <key> outside of a map')
            if parent.key is not None:
                raise self.error(f'missing value for key {parent.key!r}')
            self._open_scalar = tag
            return
        if parent is not None and parent.value.kind is Kind.MAP:
            if parent.key is None:
                raise self.error(f'missing key before <{tag}>')
        if tag == 'array':
            self._stack.append(Frame(Llsd.array()))
        elif tag == 'map':
            self._stack.append(Frame(Llsd.map()))
        elif tag in _SCALARS:
            self._open_scalar = tag
        else:
            raise self.error(f'unexpected element <{tag}>')

    def _end(self, elem: ET.Element) -> None:
        tag = elem.tag
        if tag == 'llsd':
            self._done = True
            return
        self._open_scalar = None
        if tag == 'key':
            self._stack[-1].key = elem.text or ''
        elif tag in ('array', 'map'):
            frame = self._stack.pop()
            if frame.key is not None:
                raise self.error(f'missing value for key {frame.key!r}')
            self._add(frame.value)
        else:
            self._add(self._scalar(elem))
        elem.clear()

    def _scalar(self, elem: ET.Element) -> Llsd:
        tag = elem.tag
        text = elem.text or ''
        if tag == 'binary':
            encoding = elem.get('encoding', 'base64')
            if encoding != 'base64':
                raise self.error(f'unsupported binary encoding {encoding!r}')
        try:
            return _SCALARS[tag](text)
        except ValueError as exc:
            raise self.error(f'invalid {tag} {text!r}: {exc}') from exc

    def _add(self, value: Llsd) -> None:
        if not self._stack:
            if self._result is not None:
                raise self.error('expected 1 value, got more')
            self._result = value
            return
        frame = self._stack[-1]
        if frame.value.kind is Kind.ARRAY:
            frame.value.push(value)
        else:
            frame.value.insert(frame.key, value)
            frame.key = None


def load(fp: IO, *, filename: Optional[str] = None) -> Llsd:
    """Decodes an LLSD XML document read (a chunk at a time) from `fp`."""
    if filename is None:
        name = getattr(fp, 'name', None)
        filename = name if isinstance(name, str) else None
    dec = Decoder(filename)
    while True:
        chunk = fp.read(CHUNK_SIZE)
        if not chunk:
            break
        dec.feed(chunk)
    return dec.close()


def loads(data: Union[bytes, str], *, filename: Optional[str] = None) -> Llsd:
    """Decodes an LLSD XML document.

    Raises XmlError if the document isn't well-formed XML or doesn't have
    the structure of an LLSD document.
    """
    dec = Decoder(filename)
    dec.feed(data)
    value = dec.close()
    logger.debug('decoded %s from XML', value.kind.value)
    return value


def text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    """Appends `<tag>text</tag>` to `parent`.

    Raises ConversionError if `text` holds characters XML 1.0 can't
    represent, even as character references.
    """
    if _illegal_xml_re.search(text):
        raise errors.ConversionError(f'cannot write {text!r} as XML')
    elem = ET.SubElement(parent, tag)
    if text:
        elem.text = text
    return elem


def build(value: Llsd, parent: ET.Element) -> None:
    """Appends the element(s) for `value` to `parent`."""
    kind = value.kind
    payload = value.value
    if kind is Kind.UNDEFINED:
        ET.SubElement(parent, 'undef')
    elif kind is Kind.BOOLEAN:
        text_element(parent, 'boolean', '1' if payload else '0')
    elif kind is Kind.INTEGER:
        text_element(parent, 'integer', str(payload))
    elif kind is Kind.REAL:
        text_element(parent, 'real', format_real(payload))
    elif kind is Kind.STRING:
        text_element(parent, 'string', payload)
    elif kind is Kind.URI:
        text_element(parent, 'uri', payload.as_str())
    elif kind is Kind.UUID:
        text_element(parent, 'uuid', str(payload))
    elif kind is Kind.DATE:
        text_element(parent, 'date', format_date(payload))
    elif kind is Kind.BINARY:
        elem = text_element(
            parent, 'binary', base64.b64encode(payload).decode('ascii')
        )
        if payload:
            elem.set('encoding', 'base64')
    elif kind is Kind.ARRAY:
        elem = ET.SubElement(parent, 'array')
        for item in payload:
            build(item, elem)
    else:
        elem = ET.SubElement(parent, 'map')
        for key, item in payload.items():
            text_element(elem, 'key', key)
            build(item, elem)


def serialize(
    root: ET.Element,
    *,
    pretty: bool = False,
    indent: str = '  ',
    declaration: bool = True,
) -> bytes:
    """Returns `root` as UTF-8 encoded XML."""
    if pretty:
        ET.indent(root, space=indent)
    text = ET.tostring(root, encoding='unicode')
    if declaration:
        text = DECLARATION + ('\n' if pretty else '') + text
    return text.encode('utf-8')


def dumps(
    obj: Any,
    *,
    pretty: bool = False,
    indent: str = '  ',
    declaration: bool = True,
) -> bytes:
    """Returns `obj` as an LLSD XML document.

    `declaration=False` leaves off the `<?xml ...?>` line, as request
    bodies usually do.
    """
    root = ET.Element('llsd')
    build(Llsd.from_python(obj), root)
    return serialize(
        root, pretty=pretty, indent=indent, declaration=declaration
    )


def dump(obj: Any, fp: IO, **kwargs) -> None:
    """Writes `obj` as an LLSD XML document to the binary file `fp`."""
    fp.write(dumps(obj, **kwargs))
