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

import datetime
import io
import math
import sys
import unittest
import uuid

from pyllsd import errors, notation
from pyllsd.cursor import depth_limit
from pyllsd.value import Llsd, Uri


class Tests(unittest.TestCase):
    def check(self, s, obj, **kwargs):
        self.assertEqual(Llsd.from_python(obj), notation.loads(s, **kwargs))

    def check_error(self, s, cls, msg, **kwargs):
        with self.assertRaises(cls) as cm:
            notation.loads(s, **kwargs)
        self.assertEqual(msg, str(cm.exception))

    def test_empty(self):
        self.check(b'', None)
        self.check(b'  \n', None)

    def test_undefined(self):
        self.check(b'!', None)

    def test_booleans(self):
        self.check(b'true', True)
        self.check(b'TRUE', True)
        self.check(b't', True)
        self.check(b'1', True)
        self.check(b'false', False)
        self.check(b'F', False)
        self.check(b'0', False)

    def test_integers(self):
        self.check(b'i42', 42)
        self.check(b'i-5', -5)
        self.check(b'i+5', 5)
        self.check(b'I7', 7)
        self.check(b'i2147483647', 2147483647)
        self.check(b'i-2147483648', -2147483648)

    def test_bad_integers(self):
        self.check_error(
            b'i',
            errors.InvalidIntegerError,
            '<string>:1 Invalid integer: expected a digit, found end of '
            'input at column 2',
        )
        self.check_error(
            b'i2147483648',
            errors.InvalidIntegerError,
            '<string>:1 Integer 2147483648 is out of range at column 1',
        )

    def test_reals(self):
        self.check(b'r1.5', 1.5)
        self.check(b'r-2e3', -2000.0)
        self.check(b'r.5', 0.5)
        self.check(b'r7', 7.0)
        self.check(b'rinf', math.inf)
        self.check(b'r-inf', -math.inf)
        self.assertTrue(math.isnan(notation.loads(b'rnan').as_real()))
        self.assertTrue(math.isnan(notation.loads(b'rNaN').as_real()))

    def test_bad_reals(self):
        self.check_error(
            b'r1..2',
            errors.InvalidRealError,
            "<string>:1 Invalid real '1..2' at column 1",
        )

    def test_uuid(self):
        u = uuid.UUID('6bad258e-06f0-4bd6-9aa5-14b20e6c5d4e')
        self.check(b'u6bad258e-06f0-4bd6-9aa5-14b20e6c5d4e', u)
        self.check_error(
            b'u1234',
            errors.InvalidUuidError,
            "<string>:1 Invalid UUID '1234' at column 1",
        )

    def test_strings(self):
        self.check(b"'foo'", 'foo')
        self.check(b'"foo"', 'foo')
        self.check(b"'it\\'s'", "it's")
        self.check(b"'a\\tb\\x41\\\\'", 'a\tbA\\')
        self.check(b"'h\\xc3\\xa9'", 'hé')
        self.check("'héllo'", 'héllo')

    def test_sized_strings(self):
        self.check(b's(3)"a\'c"', "a'c")
        self.check(b"s(0)''", '')

    def test_bad_utf8(self):
        with self.assertRaises(errors.InvalidUtf8Error) as cm:
            notation.loads(b"'\xff'")
        self.assertEqual(cm.exception.offset, 1)

    def test_unterminated_string(self):
        self.check_error(
            b"'abc",
            errors.UnexpectedEndError,
            '<string>:1 Unexpected end of input at column 5',
        )

    def test_uri(self):
        self.check(b'l"http://example.com/"', Uri.parse('http://example.com/'))
        self.check(b'l""', Uri())
        self.check(b'l"a \\"b\\""', Uri.parse('a "b"'))

    def test_date(self):
        self.check(
            b'd"2006-02-01T14:29:53Z"',
            datetime.datetime(
                2006, 2, 1, 14, 29, 53, tzinfo=datetime.timezone.utc
            ),
        )
        self.check_error(
            b'd"2006-02-01"',
            errors.InvalidDateError,
            "<string>:1 Invalid date '2006-02-01' at column 1",
        )

    def test_binary(self):
        self.check(b'b(3)"a\x00c"', b'a\x00c')
        self.check(b'b16"0aFF"', b'\x0a\xff')
        self.check(b'b16""', b'')
        self.check_error(
            b'b16"0g"',
            errors.InvalidByteError,
            "<string>:1 Invalid hex digit 'g' at column 6",
        )

    def test_arrays(self):
        self.check(b'[]', [])
        self.check(b'[ ]', [])
        self.check(b'[i1,i2]', [1, 2])
        self.check(b'[ i1 , [ ] , { } ]', [1, [], {}])

    def test_maps(self):
        self.check(b'{}', {})
        self.check(b"{'a':i1}", {'a': 1})
        self.check(b'{ "a" : i1 , \'b\':[] }', {'a': 1, 'b': []})
        self.check(b's(1)"k"', 'k')
        self.check(b'{s(1)"k":!}', {'k': None})

    def test_map_errors(self):
        self.check_error(
            b"{'a' i1}",
            errors.ExpectedError,
            "<string>:1 Expected ':', found 'i' at column 6",
        )
        self.check_error(
            b'{i1:i2}',
            errors.ExpectedError,
            "<string>:1 Expected a map key, found 'i' at column 2",
        )
        self.check_error(
            b"{'a':",
            errors.UnexpectedEndError,
            "<string>:1 Unexpected end of input after ':' at column 6",
        )

    def test_unterminated_containers(self):
        self.check_error(
            b'[i1',
            errors.UnexpectedEndError,
            "<string>:1 Unexpected end of input, expected ']' at column 4",
        )
        self.check_error(
            b"{'a':i1",
            errors.UnexpectedEndError,
            "<string>:1 Unexpected end of input, expected '}' at column 8",
        )

    def test_error_positions_span_lines(self):
        with self.assertRaises(errors.InvalidByteError) as cm:
            notation.loads(b"{\n'a':x}", filename='doc.txt')
        exc = cm.exception
        self.assertEqual(exc.offset, 6)
        self.assertEqual(exc.line, 2)
        self.assertEqual(exc.column, 5)
        self.assertEqual(str(exc), "doc.txt:2 Unexpected 'x' at column 5")

    def test_trailing_content(self):
        self.check_error(
            b'i1 i2',
            errors.InvalidByteError,
            "<string>:1 Unexpected 'i' at column 4",
        )
        self.check(b'i1 i2', 1, allow_trailing=True)
        self.check(b'i1 \n', 1)

    def test_max_depth(self):
        depth = notation.DEFAULT_MAX_DEPTH
        ok = b'[' * depth + b']' * depth
        self.assertEqual(len(notation.loads(ok)), 1)

        too_deep = b'[' * (depth + 1) + b']' * (depth + 1)
        with self.assertRaises(errors.MaxDepthError) as cm:
            notation.loads(too_deep)
        self.assertEqual(cm.exception.offset, depth)

    def test_max_depth_is_capped_by_the_recursion_limit(self):
        limit = depth_limit(100000)
        self.assertLess(limit, sys.getrecursionlimit())
        nested = b'[' * 5000 + b']' * 5000
        with self.assertRaises(errors.MaxDepthError) as cm:
            notation.loads(nested, max_depth=100000)
        self.assertEqual(cm.exception.offset, limit)
        _, err, pos = notation.parse(nested, max_depth=100000)
        self.assertIn('Maximum depth exceeded', err)
        self.assertEqual(pos, limit)

    def test_scalars_count_toward_depth(self):
        self.check(b'[[i1]]', [[1]], max_depth=3)
        self.check_error(
            b'[[i1]]',
            errors.MaxDepthError,
            '<string>:1 Maximum depth exceeded at column 3',
            max_depth=2,
        )

    def test_very_deep_input_does_not_overflow(self):
        depth = 100000
        with self.assertRaises(errors.MaxDepthError):
            notation.loads(b'[' * depth + b']' * depth)

    def test_load(self):
        fp = io.BytesIO(b"{'a':[i1,r2.5]}")
        self.assertEqual(
            notation.load(fp), Llsd.from_python({'a': [1, 2.5]})
        )

    def test_custom_decoder(self):
        class Decoder(notation.Decoder):
            def parse_integer(self, cur, start):
                value = super().parse_integer(cur, start)
                return Llsd.integer(value.as_integer() * 2)

        self.check(b'[i1,i2]', [2, 4], cls=Decoder)


if __name__ == '__main__':
    unittest.main()
