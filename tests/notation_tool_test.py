# Copyright 2017 Google Inc. All rights reserved.
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

import logging
import sys

from pyllsd import binary, logs, support, __version__
from pyllsd.notation import tool


class _Tests:
    # pylint: disable=no-member

    def test_help(self):
        self.check(['--help'])

        # Run again and ignore the error code just to get coverage of
        # the test code branches in check().
        self.check(['--help'], returncode=None)

    def test_inline_expression(self):
        self.check(['-c', "{'foo':i1}"], out="{'foo':i1}\n")

    def test_pretty(self):
        self.check(
            ['--pretty', '-c', "{'foo':[i1]}"],
            out="{\n  'foo':[\n    i1\n  ]\n}\n",
        )
        self.check(
            ['--pretty', '--indent=    ', '-c', '[i1]'],
            out='[\n    i1\n]\n',
        )

    def test_notation_options(self):
        self.check(['--boolean', '-c', '[true,false]'], out='[1,0]\n')
        self.check(['--hex', '-c', 'b(2)"ab"'], out='b16"6162"\n')

    def test_as_json(self):
        self.check(
            ['--to', 'json', '-c', "{'a':[i1,r2.5,'x',b(1)\"a\",!]}"],
            out='{"a": [1, 2.5, "x", "YQ==", null]}\n',
        )

    def test_as_xml(self):
        self.check(
            ['--to', 'xml', '-c', 'i1'],
            out=(
                '<?xml version="1.0" encoding="UTF-8"?>'
                '<llsd><integer>1</integer></llsd>\n'
            ),
        )

    def test_as_binary(self):
        self.check(['--to', 'binary', '-c', 'i1'], out='i\x00\x00\x00\x01')
        self.check(
            ['--to', 'binary', '--header', '-c', '!'],
            out='<? LLSD/Binary ?>\n!',
        )

    def test_error(self):
        self.check(
            ['-c', '[i1'],
            returncode=1,
            err="<string>:1 Unexpected end of input, expected ']' at column 4\n",
        )

    def test_max_depth(self):
        self.check(
            ['--max-depth', '2', '-c', '[[[]]]'],
            returncode=1,
            err='<string>:1 Maximum depth exceeded at column 3\n',
        )

    def test_read_from_stdin(self):
        self.check([], stdin="'foo'\n", out="'foo'\n")

    def test_stdin_errors_name_stdin(self):
        self.check(
            [],
            stdin='i',
            returncode=1,
            err=(
                '-:1 Invalid integer: expected a digit, found end of input '
                'at column 2\n'
            ),
        )

    def test_read_from_a_file(self):
        files = {
            'foo.txt': "'foo'\n",
        }
        self.check(['foo.txt'], files=files, out="'foo'\n")

    def test_detects_binary(self):
        files = {
            'doc.llsd': binary.dumps({'a': 1}, header=True),
        }
        self.check(['doc.llsd'], files=files, out="{'a':i1}\n")

    def test_binary_errors(self):
        files = {
            'doc.llsd': b'<? LLSD/Binary ?>\ni\x00',
        }
        self.check(
            ['doc.llsd'],
            files=files,
            returncode=1,
            err='doc.llsd: Unexpected end of input reading 4 bytes at byte 19\n',
        )

    def test_detects_xml(self):
        self.check(
            ['-c', '<llsd><array><integer>1</integer></array></llsd>'],
            out='[i1]\n',
        )

    def test_explicit_format(self):
        self.check(['--from', 'notation', '-c', '<'], returncode=1)
        self.check(
            ['--from', 'xml', '-c', '<llsd><undef/></llsd>'], out='!\n'
        )

    def test_verbose(self):
        self.addCleanup(
            logs.setup_logging, logging.WARNING, stream=sys.stderr
        )
        self.check(
            ['-v', '-c', 'i1'],
            out='i1\n',
            err='[INFO] detected notation input\n',
        )

    def test_unknown_switch(self):
        _, _, err = self.check(['--unknown-switch'], returncode=2)
        self.assertTrue(err.startswith('usage: llsd [options] [FILE]\n'))
        self.assertTrue(
            err.endswith('error: unrecognized arguments: --unknown-switch\n')
        )

    def test_version(self):
        self.check(['--version'], out=str(__version__) + '\n')


class Inline(support.InlineTestCase, _Tests):
    main = tool.main


class Module(support.ModuleTestCase, _Tests):
    module = 'pyllsd.notation'
