# Copyright 2014 Google Inc. All rights reserved.
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

"""A tool to parse, pretty-print and convert LLSD documents.

Usage:

    $ echo "{'foo':'bar'}" | python -m pyllsd.notation --pretty
    {
      'foo':'bar'
    }
    $ echo "{'foo':i1}" | llsd --to json
    {"foo": 1}
    $ llsd --to binary doc.xml > doc.llsd

The input format is detected from the first bytes of the document unless
`--from` is given.
"""

import argparse
import base64
import datetime
import importlib.util
import json
import logging
import pathlib
import sys
import uuid

# If necessary, add ../.. to sys.path so that we can run pyllsd even when
# it's not installed.
if 'pyllsd' not in sys.modules and importlib.util.find_spec('pyllsd') is None:
    sys.path.insert(
        0, str(pathlib.Path(__file__).parent.parent.parent)
    )  # pragma: no cover

# pylint: disable=wrong-import-position
import pyllsd
from pyllsd import binary, errors, logs, notation, support
from pyllsd import xml as llsd_xml
from pyllsd.value import Uri, format_date


logger = logs.get_logger(__name__)

FORMATS = ('binary', 'notation', 'xml')


def main(argv=None, host=None):
    host = host or support.Host()

    args = _parse_args(host, argv)

    if args.version:
        host.print(pyllsd.__version__)
        return 0

    logs.setup_logging(_log_level(args.verbose), stream=host.stderr)

    if args.cmd is not None:
        data, filename = args.cmd.encode('utf-8'), '<string>'
    elif args.file == '-':
        data, filename = host.read_stdin_bytes(), '-'
    else:
        data, filename = host.read_binary_file(args.file), args.file

    fmt = args.input_format
    if fmt == 'auto':
        fmt = detect_format(data)
        logger.info('detected %s input', fmt)

    try:
        value = _decode(fmt, data, filename, args.max_depth)
    except errors.ParseError as exc:
        host.print(str(exc), file=host.stderr)
        return 1

    if args.output_format == 'json':
        indent = args.indent if args.pretty else None
        host.print(json.dumps(value.to_python(), indent=indent, default=_json))
    elif args.output_format == 'binary':
        host.write_stdout_bytes(binary.dumps(value, header=args.header))
    elif args.output_format == 'xml':
        out = llsd_xml.dumps(value, pretty=args.pretty, indent=args.indent)
        host.write_stdout_bytes(out + b'\n')
    else:
        options = notation.FormatterOptions(
            indent=args.indent,
            pretty=args.pretty,
            boolean=args.boolean,
            hex=args.hex,
        )
        host.write_stdout_bytes(notation.dumps(value, options=options) + b'\n')
    return 0


def detect_format(data: bytes) -> str:
    """Guesses which of FORMATS `data` is in."""
    head = data.lstrip()[:64]
    if head.startswith(b'<'):
        if binary.MARKER in head:
            return 'binary'
        return 'xml'
    return 'notation'


def _decode(fmt, data, filename, max_depth):
    if fmt == 'binary':
        return binary.loads(data, max_depth=max_depth, filename=filename)
    if fmt == 'xml':
        return llsd_xml.loads(data, filename=filename)
    return notation.loads(data, max_depth=max_depth, filename=filename)


def _json(obj):
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(obj).decode('ascii')
    if isinstance(obj, datetime.datetime):
        return format_date(obj)
    if isinstance(obj, (uuid.UUID, Uri)):
        return str(obj)
    raise TypeError(f'{obj!r} is not JSON serializable')


def _log_level(verbose: int):
    if verbose >= 2:
        return logging.DEBUG
    if verbose == 1:
        return logging.INFO
    return None


class _HostedArgumentParser(argparse.ArgumentParser):
    """An argument parser that plays nicely w/ host objects."""

    def __init__(self, host, **kwargs):
        self.host = host
        super().__init__(**kwargs)

    def exit(self, status=0, message=None):
        if message:
            self._print_message(message, self.host.stderr)
        sys.exit(status)

    def error(self, message):
        self.host.print(f'usage: {self.usage}', end='', file=self.host.stderr)
        self.host.print('    -h/--help for help\n', file=self.host.stderr)
        self.exit(2, f'error: {message}\n')

    def print_help(self, file=None):
        self.host.print(self.format_help(), file=file)


def _parse_args(host, argv):
    usage = 'llsd [options] [FILE]\n'

    parser = _HostedArgumentParser(
        host,
        prog='llsd',
        usage=usage,
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        '-V',
        '--version',
        action='store_true',
        help=f'show version ({pyllsd.__version__})',
    )
    parser.add_argument(
        '-v',
        '--verbose',
        action='count',
        default=0,
        help='log more (-v for info, -vv for debug)',
    )
    parser.add_argument(
        '-c',
        metavar='STR',
        dest='cmd',
        help='inline string to read instead of reading from a file',
    )
    parser.add_argument(
        '--from',
        dest='input_format',
        choices=('auto',) + FORMATS,
        default='auto',
        help='format of the input (default is to detect it)',
    )
    parser.add_argument(
        '--to',
        dest='output_format',
        choices=('notation', 'binary', 'xml', 'json'),
        default='notation',
        help='format of the output (default is notation)',
    )
    parser.add_argument(
        '--pretty',
        action='store_true',
        help='put each container element on its own line',
    )
    parser.add_argument(
        '--indent',
        default='  ',
        help='string to indent each level with (default is two spaces)',
    )
    parser.add_argument(
        '--hex',
        action='store_true',
        help='write notation binary values as b16"..."',
    )
    parser.add_argument(
        '--boolean',
        action='store_true',
        help='write notation booleans as 1 and 0',
    )
    parser.add_argument(
        '--header',
        action='store_true',
        help='start binary output with the <? LLSD/Binary ?> header',
    )
    parser.add_argument(
        '--max-depth',
        type=int,
        default=notation.DEFAULT_MAX_DEPTH,
        help='how deeply values may nest (default is %(default)s)',
    )
    parser.add_argument(
        'file',
        metavar='FILE',
        nargs='?',
        default='-',
        help='optional file to read document from; if '
        'not specified or "-", will read from stdin '
        'instead',
    )
    return parser.parse_args(argv)


if __name__ == '__main__':  # pragma: no cover
    sys.exit(main())
