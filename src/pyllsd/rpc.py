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

"""XML-RPC method calls and responses carrying a single LLSD value.

    <methodCall>
      <methodName>login_to_simulator</methodName>
      <params><param><value><struct>...</struct></value></param></params>
    </methodCall>

Like `pyllsd.xml`, this leaves tokenizing to XMLPullParser and only tracks
which element may come next (see `Expected`).
"""

import base64
import datetime
import enum
import xml.etree.ElementTree as ET

from typing import IO, Any, Optional, Union

from pyllsd import errors
from pyllsd import logs
from pyllsd import xml as llsd_xml
from pyllsd.value import Kind, Llsd, format_date, parse_date, to_utc


CHUNK_SIZE = 8192

logger = logs.get_logger(__name__)


class XmlRpc:
    """A method call (with a method name) or a method response."""

    __slots__ = ('method', 'params')

    def __init__(self, params: Any = None, method: Optional[str] = None):
        self.method = method
        self.params = Llsd.from_python(params)

    @classmethod
    def method_call(cls, method: str, params: Any = None) -> 'XmlRpc':
        return cls(params, method)

    @classmethod
    def method_response(cls, params: Any = None) -> 'XmlRpc':
        return cls(params)

    def is_method_call(self) -> bool:
        return self.method is not None

    def __eq__(self, other):
        if not isinstance(other, XmlRpc):
            return NotImplemented
        return (self.method, self.params) == (other.method, other.params)

    def __repr__(self):
        if self.method is None:
            return f'XmlRpc.method_response({self.params!r})'
        return f'XmlRpc.method_call({self.method!r}, {self.params!r})'


class Expected(enum.Enum):
    """The element the decoder is waiting to see start next."""

    HEADER = 'methodCall or methodResponse'
    METHOD_NAME = 'methodName'
    PARAMS = 'params'
    PARAM = 'param'
    VALUE = 'value'
    DATA = 'data'
    MEMBER = 'member'
    NAME = 'name'
    NONE = 'a value type'


_SCALARS = {
    'nil': lambda text: Llsd(),
    'boolean': lambda text: Llsd.boolean(llsd_xml.parse_boolean(text)),
    'string': Llsd.string,
    'int': lambda text: Llsd.integer(llsd_xml.parse_integer(text)),
    'i4': lambda text: Llsd.integer(llsd_xml.parse_integer(text)),
    'double': lambda text: Llsd.real(llsd_xml.parse_real(text)),
    'dateTime.iso8601': lambda text: Llsd.date(parse_iso8601(text)),
    'base64': lambda text: Llsd.binary(llsd_xml.parse_base64(text)),
}


def parse_iso8601(text: str) -> datetime.datetime:
    """Parses RFC 3339 or the classic XML-RPC `19980717T14:08:55` form."""
    text = text.strip()
    try:
        return parse_date(text)
    except ValueError:
        return to_utc(datetime.datetime.strptime(text, '%Y%m%dT%H:%M:%S'))


class Decoder:
    """Turns XMLPullParser events for an XML-RPC document into an XmlRpc."""

    # pylint: disable=too-many-instance-attributes

    def __init__(self, filename: Optional[str] = None):
        self.filename = filename or '<string>'
        self._parser = ET.XMLPullParser(events=('start', 'end'))
        self._expected = Expected.HEADER
        self._method: Optional[str] = None
        self._params: list[Llsd] = []
        self._frames: list[llsd_xml.Frame] = []
        self._values: list[Optional[Llsd]] = []
        self._open_scalar: Optional[str] = None
        self._done = False

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
                self._start(elem.tag)
            else:
                self._end(elem)

    def close(self) -> XmlRpc:
        try:
            self._parser.close()
        except ET.ParseError as exc:
            raise self.error(str(exc), exc) from exc
        if not self._done:
            raise self.error('unexpected end of input')
        if len(self._params) > 1:
            raise self.error(f'expected 1 value, got {len(self._params)}')
        params = self._params[0] if self._params else Llsd()
        return XmlRpc(params, self._method)

    def _transition(self, tag: str) -> Optional[Expected]:
        """Returns the next state if `tag` may start now, else None."""
        # pylint: disable=too-many-return-statements
        state = self._expected
        if state is Expected.HEADER:
            if tag == 'methodCall':
                return Expected.METHOD_NAME
            if tag == 'methodResponse':
                return Expected.PARAMS
            return None
        if state is Expected.METHOD_NAME and tag == 'methodName':
            return Expected.PARAMS
        if state is Expected.PARAMS and tag == 'params':
            return Expected.PARAM
        if state is Expected.PARAM and tag == 'param':
            return Expected.VALUE
        if state is Expected.VALUE and tag == 'value':
            return Expected.NONE
        if state is Expected.DATA and tag == 'data':
            return Expected.VALUE
        if state is Expected.MEMBER and tag == 'member':
            return Expected.NAME
        if state is Expected.NAME and tag == 'name':
            return Expected.VALUE
        if state is Expected.NONE and self._values[-1] is None:
            if tag == 'array':
                return Expected.DATA
            if tag == 'struct':
                return Expected.MEMBER
            if tag in _SCALARS:
                return Expected.NONE
        return None

    def _start(self, tag: str) -> None:
        if self._open_scalar is not None:
            raise self.error(
                f'unexpected element <{tag}> inside <{self._open_scalar}>'
            )
        state = self._transition(tag)
        if state is None:
            raise self.error(
                f'unexpected element <{tag}>, expected {self._expected.value}'
            )
        if tag == 'value':
            self._values.append(None)
        elif tag == 'array':
            self._frames.append(llsd_xml.Frame(Llsd.array()))
        elif tag == 'struct':
            self._frames.append(llsd_xml.Frame(Llsd.map()))
        elif tag in _SCALARS or tag in ('methodName', 'name'):
            self._open_scalar = tag
        self._expected = state

    def _end(self, elem: ET.Element) -> None:
        # pylint: disable=too-many-branches
        tag = elem.tag
        text = elem.text or ''
        self._open_scalar = None
        if tag == 'methodName':
            self._method = text.strip()
        elif tag == 'name':
            self._frames[-1].key = text
        elif tag in _SCALARS:
            try:
                self._values[-1] = _SCALARS[tag](text)
            except ValueError as exc:
                raise self.error(f'invalid {tag} {text!r}: {exc}') from exc
        elif tag in ('array', 'struct'):
            self._values[-1] = self._frames.pop().value
            self._expected = Expected.NONE
        elif tag == 'value':
            self._end_value(text)
        elif tag == 'member':
            frame = self._frames[-1]
            if frame.key is not None:
                raise self.error(f'missing value for member {frame.key!r}')
            self._expected = Expected.MEMBER
        elif tag in ('methodCall', 'methodResponse'):
            self._done = True
        elem.clear()

    def _end_value(self, text: str) -> None:
        value = self._values.pop()
        if value is None:
            value = Llsd.string(text)
        if not self._frames:
            self._params.append(value)
            self._expected = Expected.PARAM
            return
        frame = self._frames[-1]
        if frame.value.kind is Kind.ARRAY:
            frame.value.push(value)
            self._expected = Expected.VALUE
        else:
            frame.value.insert(frame.key, value)
            frame.key = None
            self._expected = Expected.MEMBER


def load(fp: IO, *, filename: Optional[str] = None) -> XmlRpc:
    """Decodes an XML-RPC document read (a chunk at a time) from `fp`."""
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


def loads(
    data: Union[bytes, str], *, filename: Optional[str] = None
) -> XmlRpc:
    """Decodes an XML-RPC method call or method response.

    Raises XmlError if the document is malformed or has more than one
    parameter.
    """
    dec = Decoder(filename)
    dec.feed(data)
    rpc = dec.close()
    logger.debug('decoded XML-RPC %s', rpc.method or 'response')
    return rpc


def build(value: Llsd, parent: ET.Element) -> None:
    """Appends the XML-RPC type element for `value` to `parent`."""
    kind = value.kind
    payload = value.value
    if kind is Kind.UNDEFINED:
        ET.SubElement(parent, 'nil')
    elif kind is Kind.BOOLEAN:
        llsd_xml.text_element(parent, 'boolean', '1' if payload else '0')
    elif kind is Kind.INTEGER:
        llsd_xml.text_element(parent, 'int', str(payload))
    elif kind is Kind.REAL:
        llsd_xml.text_element(parent, 'double', llsd_xml.format_real(payload))
    elif kind in (Kind.STRING, Kind.URI, Kind.UUID):
        llsd_xml.text_element(parent, 'string', str(payload))
    elif kind is Kind.DATE:
        llsd_xml.text_element(parent, 'dateTime.iso8601', format_date(payload))
    elif kind is Kind.BINARY:
        llsd_xml.text_element(
            parent, 'base64', base64.b64encode(payload).decode('ascii')
        )
    elif kind is Kind.ARRAY:
        data = ET.SubElement(ET.SubElement(parent, 'array'), 'data')
        for item in payload:
            build(item, ET.SubElement(data, 'value'))
    else:
        struct = ET.SubElement(parent, 'struct')
        for key, item in payload.items():
            member = ET.SubElement(struct, 'member')
            llsd_xml.text_element(member, 'name', key)
            build(item, ET.SubElement(member, 'value'))


def dumps(
    rpc: XmlRpc,
    *,
    pretty: bool = False,
    indent: str = '  ',
    declaration: bool = True,
) -> bytes:
    """Returns `rpc` as an XML-RPC document."""
    if rpc.is_method_call():
        root = ET.Element('methodCall')
        llsd_xml.text_element(root, 'methodName', rpc.method)
    else:
        root = ET.Element('methodResponse')
    value = ET.SubElement(
        ET.SubElement(ET.SubElement(root, 'params'), 'param'), 'value'
    )
    build(rpc.params, value)
    return llsd_xml.serialize(
        root, pretty=pretty, indent=indent, declaration=declaration
    )


def dump(rpc: XmlRpc, fp: IO, **kwargs) -> None:
    """Writes `rpc` as an XML-RPC document to the binary file `fp`."""
    fp.write(dumps(rpc, **kwargs))
