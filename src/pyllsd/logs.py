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

"""Logging helpers.

The library only ever creates loggers; it never configures handlers unless
`setup_logging()` is called (the `llsd` tool does this).
"""

import logging
import os
import sys

from typing import Optional


LOG_FORMAT = '[%(levelname)s] %(message)s'
DEBUG_LOG_FORMAT = '[%(levelname)s] [%(name)s:%(lineno)d] %(message)s'

ENV_VAR = 'PYLLSD_LOG_LEVEL'


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def resolve_env_log_level() -> Optional[int]:
    """Returns the level named by $PYLLSD_LOG_LEVEL, or None if unset.

    Accepts level names ("DEBUG", "info", ...) or numbers ("10").
    """
    val = os.environ.get(ENV_VAR, '').strip().upper()
    if not val:
        return None
    if val.isdigit():
        return int(val)
    level = logging.getLevelName(val)
    if isinstance(level, int):
        return level
    return None


def setup_logging(level: Optional[int] = None, stream=None) -> None:
    """Sends pyllsd's log records to `stream` (stderr by default)."""
    if level is None:
        level = resolve_env_log_level() or logging.WARNING

    logger = logging.getLogger('pyllsd')
    logger.setLevel(level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            LOG_FORMAT if level >= logging.INFO else DEBUG_LOG_FORMAT
        )
    )
    logger.addHandler(handler)
    logger.propagate = False
