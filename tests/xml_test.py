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
import unittest
import uuid

from pyllsd import errors, notation
from pyllsd import xml as llsd_xml
from pyllsd.value import EPOCH, Llsd, Uri


class Encode(unittest.TestCase):
    def check(self, obj, s, **kwargs):
        kwargs.setdefault('declaration', False)
        self.assertEqual(s.encode('utf-8'), llsd_xml.dumps(obj, **kwargs))

    def test_declaration(self):
        self.assertEqual(
            llsd_xml.dumps(1),
            b'<?xml version="1.0" encoding="UTF-8"?>'
            b'<llsd><integer>1</integer></llsd>',
        )

    def test_scalars(self):
        self.check(None, '<llsd><undef /></llsd>')
        self.check(True, '<llsd><boolean>1</boolean></llsd>')
        self.check(False, '<llsd><boolean>0</boolean></llsd>')
        self.check(-3, '<llsd><integer>-3</integer></llsd>')
        self.check(2.5, '<llsd><real>2.5</real></llsd>')
        self.check(math.nan, '<llsd><real>nan</real></llsd>')
        self.check('a<b', '<llsd><string>a&lt;b</string></llsd>')
        self.check('', '<llsd><string /></llsd>')
        self.check(
            Uri.parse('http://a/'), '<llsd><uri>http://a/</uri></llsd>'
        )
        self.check(
            uuid.UUID(int=1),
            '<llsd><uuid>00000000-0000-0000-0000-000000000001</uuid></llsd>',
        )
        self.check(
            EPOCH, '<llsd><date>1970-01-01T00:00:00+00:00</date></llsd>'
        )
        self.check(
            b'ab', '<llsd><binary encoding="base64">YWI=</binary></llsd>'
        )

    def test_containers(self):
        self.check(
            {'a': [True, None]},
            '<llsd><map><key>a</key><array><boolean>1</boolean>'
            '<undef /></array></map></llsd>',
        )
        self.check([], '<llsd><array /></llsd>')

    def test_pretty(self):
        self.check(
            [1],
            '<llsd>\n  <array>\n    <integer>1</integer>\n  </array>\n</llsd>',
            pretty=True,
        )

    def test_dump(self):
        fp = io.BytesIO()
        llsd_xml.dump('x', fp, declaration=False)
        self.assertEqual(fp.getvalue(), b'<llsd><string>x</string></llsd>')

    def test_unrepresentable_characters(self):
        for obj in ('a\x01b', {'k\x00': 1}, ['\ud800'], '\uffff'):
            with self.assertRaises(errors.ConversionError):
                llsd_xml.dumps(obj)
        self.check('a\tb\n', '<llsd><string>a\tb\n</string></llsd>')


class Decode(unittest.TestCase):
    def check(self, s, obj):
        self.assertEqual(Llsd.from_python(obj), llsd_xml.loads(s))

    def check_error(self, s, msg):
        with self.assertRaises(errors.XmlError) as cm:
            llsd_xml.loads(s)
        self.assertEqual(msg, str(cm.exception))

    def test_scalars(self):
        self.check('<llsd><undef/></llsd>', None)
        self.check('<llsd><boolean>true</boolean></llsd>', True)
        self.check('<llsd><integer> 42 </integer></llsd>', 42)
        self.check('<llsd><real>1e3</real></llsd>', 1000.0)
        self.check('<llsd><string> x </string></llsd>', ' x ')
        self.check('<llsd><uri>http://a/</uri></llsd>', Uri.parse('http://a/'))
        self.check(
            '<llsd><date>2006-02-01T14:29:53Z</date></llsd>',
            datetime.datetime(
                2006, 2, 1, 14, 29, 53, tzinfo=datetime.timezone.utc
            ),
        )
        self.check(
            '<llsd><binary encoding="base64">YW\n I=</binary></llsd>', b'ab'
        )

    def test_empty_scalars_have_defaults(self):
        self.check('<llsd><boolean/></llsd>', False)
        self.check('<llsd><integer/></llsd>', 0)
        self.check('<llsd><real/></llsd>', 0.0)
        self.check('<llsd><string/></llsd>', '')
        self.check('<llsd><uuid/></llsd>', uuid.UUID(int=0))
        self.check('<llsd><date/></llsd>', EPOCH)
        self.check('<llsd><binary/></llsd>', b'')

    def test_empty_document(self):
        self.check('<llsd/>', None)
        self.check('<?xml version="1.0"?>\n<llsd>\n</llsd>\n', None)

    def test_containers(self):
        self.check(
            b'<llsd>\n  <map>\n    <key>a</key>\n    <array>\n'
            b'      <integer>1</integer>\n      <map/>\n    </array>\n'
            b'  </map>\n</llsd>',
            {'a': [1, {}]},
        )

    def test_structure_errors(self):
        self.check_error(
            '<foo/>', '<string>: expected <llsd> root element, got <foo>'
        )
        self.check_error(
            '<llsd><foo/></llsd>', '<string>: unexpected element <foo>'
        )
        self.check_error(
            '<llsd><llsd/></llsd>', '<string>: unexpected <llsd> element'
        )
        self.check_error(
            '<llsd><key>a</key></llsd>',
            '<string>: unexpected <key> outside of a map',
        )
        self.check_error(
            '<llsd><map><integer>1</integer></map></llsd>',
            '<string>: missing key before <integer>',
        )
        self.check_error(
            '<llsd><map><key>a</key></map></llsd>',
            "<string>: missing value for key 'a'",
        )
        self.check_error(
            '<llsd><string><b/></string></llsd>',
            '<string>: unexpected element <b> inside <string>',
        )
        self.check_error(
            '<llsd><undef/><undef/></llsd>',
            '<string>: expected 1 value, got more',
        )

    def test_value_errors(self):
        with self.assertRaises(errors.XmlError) as cm:
            llsd_xml.loads('<llsd><integer>x</integer></llsd>')
        self.assertTrue(cm.exception.msg.startswith("invalid integer 'x'"))
        with self.assertRaises(errors.XmlError):
            llsd_xml.loads('<llsd><integer>4294967296</integer></llsd>')
        with self.assertRaises(errors.XmlError):
            llsd_xml.loads('<llsd><boolean>yes</boolean></llsd>')
        self.check_error(
            '<llsd><binary encoding="base16">00</binary></llsd>',
            "<string>: unsupported binary encoding 'base16'",
        )

    def test_malformed_xml(self):
        with self.assertRaises(errors.XmlError) as cm:
            llsd_xml.loads('<llsd>\n<integer>', filename='doc.xml')
        self.assertEqual(cm.exception.filename, 'doc.xml')
        self.assertIsNotNone(cm.exception.line)

    def test_load(self):
        fp = io.BytesIO(b'<llsd><array><integer>1</integer></array></llsd>')
        self.assertEqual(llsd_xml.load(fp), Llsd.from_python([1]))

    def test_round_trip(self):
        v = notation.loads(
            b"{'a':[i1,r-2.5,'x',true,!],'b':{'c':b(2)\"\x00\xff\"},"
            b"'d':d\"2020-02-02T02:02:02Z\",'e':l\"http://e/\","
            b"'f':u6bad258e-06f0-4bd6-9aa5-14b20e6c5d4e}"
        )
        self.assertEqual(llsd_xml.loads(llsd_xml.dumps(v)), v)
        self.assertEqual(llsd_xml.loads(llsd_xml.dumps(v, pretty=True)), v)


if __name__ == '__main__':
    unittest.main()
