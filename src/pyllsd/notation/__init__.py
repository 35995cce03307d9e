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

"""A pure Python implementation of the LLSD notation format.

This module follows the API of the standard `json` module where possible.
As such, it provides the following functions:

- load   - Load a value from a binary file
- loads  - Load a value from bytes (or a str)
- dump   - Dump a value to a binary file
- dumps  - Dump a value to bytes

It also provides a number of other utility functions and constants:

- parse           - Parse a value from bytes, returning positional
                    and error information (does not raise exceptions).
- escape          - Returns bytes escaped through one of the escape tables.
- STRING_ESCAPES  - The 256-entry table used for string bodies.
- URI_ESCAPES     - The table used for URI bodies.

Decoding is implemented in terms of a `Decoder` class and encoding in
terms of an `Encoder` class (configured by `FormatterOptions`); both can be
subclassed to provide fine-grained customization of behavior.
"""

import types

from .api import (  # noqa: F401 (unused-import)
    DEFAULT_MAX_DEPTH,
    STRING_ESCAPES,
    URI_ESCAPES,
    Decoder,
    Encoder,
    FormatterOptions,
    dump,
    dumps,
    escape,
    load,
    loads,
    parse,
)


__all__ = []
for _k in list(globals()):
    if not isinstance(globals()[_k], types.ModuleType) and not _k.startswith(
        '_'
    ):
        __all__.append(_k)
