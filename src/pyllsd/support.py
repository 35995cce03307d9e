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

import io
import os
import shutil
import subprocess
import sys
import tempfile
from typing import Callable, Optional
import unittest


class Host:
    def __init__(self):
        self.stdin = sys.stdin
        self.stdout = sys.stdout
        self.stderr = sys.stderr

    def chdir(self, *comps):
        return os.chdir(self.join(*comps))

    def getcwd(self):
        return os.getcwd()

    def join(self, *comps):
        return os.path.join(*comps)

    def mkdtemp(self):
        return tempfile.mkdtemp()

    def print(self, *args, end='\n', file=None, flush=True):
        file = file or self.stdout
        print(*args, end=end, file=file, flush=flush)

    def rmtree(self, path):
        shutil.rmtree(path)

    def read_binary_file(self, path):
        with open(path, 'rb') as f:
            return f.read()

    def read_stdin_bytes(self):
        return self.stdin.buffer.read()

    def write_stdout_bytes(self, data):
        self.stdout.flush()
        self.stdout.buffer.write(data)
        self.stdout.buffer.flush()

    def write_text_file(self, path, contents):
        with open(path, 'w', encoding='utf-8') as f:
            f.write(contents)

    def write_binary_file(self, path, contents):
        with open(path, 'wb') as f:
            f.write(contents)


class FakeStream(io.TextIOWrapper):
    """A text stream with a `.buffer`, like sys.stdin and sys.stdout."""

    def __init__(self):
        super().__init__(
            io.BytesIO(), encoding='utf-8', newline='\n', write_through=True
        )

    def getvalue(self):
        return self.buffer.getvalue().decode('utf-8', 'backslashreplace')


class FakeHost:
    def __init__(self):
        self.stderr = FakeStream()
        self.stdin = FakeStream()
        self.stdout = FakeStream()
        self.files = {}
        self.written_files = {}
        self.sep = '/'
        self.dirs = set([])
        self.last_tmpdir = None
        self.current_tmpno = 0
        self.cwd = '/tmp'

    def abspath(self, *comps):
        relpath = self.join(*comps)
        if relpath.startswith('/'):
            return relpath
        return self.join(self.cwd, relpath)

    def chdir(self, *comps):  # pragma: no cover
        path = self.join(*comps)
        if not path.startswith('/'):
            path = self.join(self.cwd, path)
        self.cwd = path

    def dirname(self, path):
        return '/'.join(path.split('/')[:-1])

    def getcwd(self):
        return self.cwd

    def join(self, *comps):  # pragma: no cover
        p = ''
        for c in comps:
            if c in ('', '.'):
                continue
            if c.startswith('/'):
                p = c
            elif p:
                p += '/' + c
            else:
                p = c

        # Handle ./
        p = p.replace('/./', '/')

        # Handle ../
        while '/..' in p:
            comps = p.split('/')
            idx = comps.index('..')
            comps = comps[: idx - 1] + comps[idx + 1 :]
            p = '/'.join(comps)
        return p

    def maybe_mkdir(self, *comps):  # pragma: no cover
        path = self.abspath(self.join(*comps))
        if path not in self.dirs:
            self.dirs.add(path)

    # We use `dir` as an argument name to mirror tempfile.mkdtemp.
    # pylint: disable=redefined-builtin
    def mkdtemp(self, suffix='', prefix='tmp', dir=None, **_kwargs):
        if dir is None:
            dir = self.sep + '__im_tmp'
        else:  # pragma: no cover
            pass
        curno = self.current_tmpno
        self.current_tmpno += 1
        self.last_tmpdir = self.join(dir, f'{prefix}_{curno}_{suffix}')
        self.dirs.add(self.last_tmpdir)
        return self.last_tmpdir

    # pylint: enable=redefined-builtin

    def print(self, *args, end='\n', file=None):
        file = file or self.stdout
        print(*args, end=end, file=file, flush=True)

    def read_binary_file(self, *comps):
        contents = self.files[self.abspath(*comps)]
        if isinstance(contents, str):
            return contents.encode('utf-8')
        return contents

    def read_stdin_bytes(self):
        return self.stdin.buffer.read()

    def write_stdout_bytes(self, data):
        self.stdout.buffer.write(data)

    def remove(self, *comps):
        path = self.abspath(*comps)
        self.files[path] = None
        self.written_files[path] = None

    def rmtree(self, *comps):
        path = self.abspath(*comps)
        for f in self.files:
            if f.startswith(path):
                self.remove(f)
            else:  # pragma: no cover
                pass
        self.dirs.remove(path)

    def write_text_file(self, path, contents):
        self._write(path, contents)

    def write_binary_file(self, path, contents):
        self._write(path, contents)

    def _write(self, path, contents):
        full_path = self.abspath(path)
        self.maybe_mkdir(self.dirname(full_path))
        self.files[full_path] = contents
        self.written_files[full_path] = contents


class _BaseTestCase(unittest.TestCase):
    maxDiff: Optional[int] = None
    host_fn: Optional[Callable[[], Optional[Host | FakeHost]]] = None

    def call(self, host, args, stdin):
        raise NotImplementedError

    # pylint: disable=too-many-positional-arguments
    def check(
        self, args, stdin=None, files=None, returncode=0, out=None, err=None
    ):
        self.assertIsNotNone(self.host_fn, 'self.host_fn is not defined')
        h = self.host_fn()  # pylint: disable=not-callable
        orig_wd = h.getcwd()
        tmpdir = None

        try:
            tmpdir = h.mkdtemp()
            h.chdir(tmpdir)
            if files and files.items():
                for path, contents in files.items():
                    if isinstance(contents, bytes):
                        h.write_binary_file(path, contents)
                    else:
                        h.write_text_file(path, contents)

            actual_ret, actual_out, actual_err = self.call(h, args, stdin)
            if returncode is not None:
                self.assertEqual(returncode, actual_ret)
            if out is not None:
                self.assertMultiLineEqual(out, actual_out)
            if err is not None:
                self.assertMultiLineEqual(err, actual_err)
            return actual_ret, actual_out, actual_err
        finally:
            if tmpdir:
                h.rmtree(tmpdir)
                h.chdir(orig_wd)

    # pylint: enable=too-many-positional-arguments


class InlineTestCase(_BaseTestCase):
    host_fn: Optional[Callable[[], Optional[Host | FakeHost]]] = FakeHost
    main: Optional[
        Callable[[Optional[list[str]], Optional[Host | FakeHost]], int]
    ] = None

    def call(self, host, args, stdin):
        self.assertIsNotNone(self.__class__.main, '__class__.main is not set')
        if stdin:
            host.stdin.write(stdin)
            host.stdin.seek(0)

        try:
            # pylint: disable=not-callable
            actual_ret = self.__class__.main(args, host)
        except SystemExit as e:
            actual_ret = e.code

        return actual_ret, host.stdout.getvalue(), host.stderr.getvalue()


class HostTestCase(_BaseTestCase):
    host_fn = Host

    def exe_args(self):
        raise NotImplementedError

    def call(self, host, args, stdin):
        del host
        if 'integration' in os.environ.get('PYLLSD_SKIP', ''):
            self.skipTest('skipping integration test by request')

        cmd = self.exe_args() + args
        with subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding='utf-8',
        ) as proc:
            actual_out, actual_err = proc.communicate(input=stdin)
            actual_ret = proc.returncode
        return actual_ret, actual_out, actual_err


class ModuleTestCase(HostTestCase):
    module: Optional[str] = None

    def exe_args(self):
        self.assertIsNotNone(self.module, 'self.module is not set')
        return [sys.executable, '-m', self.module]


if __name__ == '__main__':  # pragma: no cover
    unittest.main()
