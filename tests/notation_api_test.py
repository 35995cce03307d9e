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

import doctest
import unittest

from pyllsd import notation
from pyllsd.notation import api
from pyllsd.value import Llsd


class Parse(unittest.TestCase):
    def test_success(self):
        value, err, pos = notation.parse(b'[i1] ')
        self.assertEqual(value, Llsd.from_python([1]))
        self.assertIsNone(err)
        self.assertEqual(pos, 5)

    def test_error(self):
        value, err, pos = notation.parse(b'[i1')
        self.assertIsNone(value)
        self.assertEqual(
            err, "<string>:1 Unexpected end of input, expected ']' at column 4"
        )
        self.assertEqual(pos, 3)

    def test_start_past_the_end(self):
        value, err, pos = notation.parse(b'i1', start=5)
        self.assertIsNone(value)
        self.assertEqual(
            err,
            '<string>:1 Unexpected end of input reading 5 bytes at column 1',
        )
        self.assertEqual(pos, 0)

    def test_start_at_the_end(self):
        value, err, pos = notation.parse(b'i1', start=2)
        self.assertEqual(value, Llsd())
        self.assertIsNone(err)
        self.assertEqual(pos, 2)

    def test_multiple_values(self):
        s = b"i1 'two' [i3]"
        values = []
        start = 0
        while start < len(s):
            v, err, start = notation.parse(s, start=start, allow_trailing=True)
            self.assertIsNone(err)
            values.append(v.to_python())
        self.assertEqual(values, [1, 'two', [3]])

    def test_str_input(self):
        value, err, _ = notation.parse("'x'")
        self.assertIsNone(err)
        self.assertEqual(value, Llsd.string('x'))


class Doctests(unittest.TestCase):
    def test_examples(self):
        failures, _ = doctest.testmod(api)
        self.assertEqual(failures, 0)


if __name__ == '__main__':
    unittest.main()
