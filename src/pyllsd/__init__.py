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

"""LLSD (Linden Lab Structured Data) values and codecs.

The value model lives in `pyllsd.value` (`Llsd`, `Kind`, `Uri`). Each wire
format is a module with a `json`-like API:

- pyllsd.binary    - the binary encoding
- pyllsd.notation  - the textual notation encoding
- pyllsd.xml       - the <llsd> XML encoding
- pyllsd.rpc       - XML-RPC method calls and responses

`to_llsd` and `from_llsd` convert between Llsd values and native Python
types (including `@llsd_record` dataclasses).
"""

import types

from pyllsd import binary, notation, rpc, xml  # noqa: F401 (unused-import)
from pyllsd.convert import (  # noqa: F401 (unused-import)
    F32,
    I8,
    I16,
    I32,
    I64,
    U8,
    U16,
    U32,
    U64,
    from_llsd,
    to_llsd,
)
from pyllsd.errors import (  # noqa: F401 (unused-import)
    ConversionError,
    ExpectedError,
    InvalidByteError,
    InvalidDateError,
    InvalidIntegerError,
    InvalidRealError,
    InvalidUtf8Error,
    InvalidUuidError,
    LlsdError,
    MaxDepthError,
    ParseError,
    UnexpectedEndError,
    XmlError,
)
from pyllsd.record import llsd_field, llsd_record  # noqa: F401
from pyllsd.rpc import XmlRpc  # noqa: F401 (unused-import)
from pyllsd.value import ArrayIndex, Kind, Llsd, MapKey, Uri  # noqa: F401


__version__ = '0.1.0.dev0'


__all__ = []
for _k in list(globals()):
    if not _k.startswith('_') and not isinstance(
        globals()[_k], types.ModuleType
    ):
        __all__.append(_k)
