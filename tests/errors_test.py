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

import io
import logging
import os
import pickle
import unittest
from unittest import mock

from pyllsd import errors, logs, notation


class Errors(unittest.TestCase):
    def test_hierarchy(self):
        self.assertTrue(issubclass(errors.LlsdError, ValueError))
        self.assertTrue(issubclass(errors.ConversionError, errors.LlsdError))
        self.assertTrue(issubclass(errors.MaxDepthError, errors.ParseError))
        self.assertTrue(issubclass(errors.XmlError, errors.ParseError))

    def test_str(self):
        self.assertEqual(str(errors.ParseError('bad')), '<string>: bad')
        self.assertEqual(
            str(errors.ParseError('bad', offset=3, filename='f')),
            'f: bad at byte 3',
        )
        self.assertEqual(
            str(errors.ParseError('bad', offset=3, line=2, column=1)),
            '<string>:2 bad at column 1',
        )

    def test_pickle(self):
        with self.assertRaises(errors.UnexpectedEndError) as cm:
            notation.loads(b'[', filename='doc')
        exc = pickle.loads(pickle.dumps(cm.exception))
        self.assertIsInstance(exc, errors.UnexpectedEndError)
        self.assertEqual(str(exc), str(cm.exception))
        self.assertEqual(exc.offset, 1)


class Logging(unittest.TestCase):
    def tearDown(self):
        logs.setup_logging(logging.WARNING)

    def test_env_level(self):
        with mock.patch.dict(os.environ, {logs.ENV_VAR: 'debug'}):
            self.assertEqual(logs.resolve_env_log_level(), logging.DEBUG)
        with mock.patch.dict(os.environ, {logs.ENV_VAR: '20'}):
            self.assertEqual(logs.resolve_env_log_level(), 20)
        with mock.patch.dict(os.environ, {logs.ENV_VAR: 'nonsense'}):
            self.assertIsNone(logs.resolve_env_log_level())
        with mock.patch.dict(os.environ, {logs.ENV_VAR: ''}):
            self.assertIsNone(logs.resolve_env_log_level())

    def test_debug_logging(self):
        stream = io.StringIO()
        logs.setup_logging(logging.DEBUG, stream=stream)
        notation.loads(b'i1')
        self.assertIn('[DEBUG] [pyllsd.notation.api:', stream.getvalue())
        self.assertIn('decoded integer from <string>', stream.getvalue())

    def test_quiet_by_default(self):
        stream = io.StringIO()
        with mock.patch.dict(os.environ, {logs.ENV_VAR: ''}):
            logs.setup_logging(stream=stream)
        notation.loads(b'i1')
        self.assertEqual(stream.getvalue(), '')


if __name__ == '__main__':
    unittest.main()
