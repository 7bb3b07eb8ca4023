#!/usr/bin/env python
# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0
#
# FixMSZip - Make Windows-made Zip64 archives readable everywhere
# Copyright (C) 2026 FixMSZip contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import errno
import os
import sys

import bitmath

from bases.Kernel import getLogger
from bases.Errors import NotWritableError

ONE_KB = bitmath.KiB(1).bytes
ONE_MB = bitmath.MiB(1).bytes
ONE_GB = bitmath.GiB(1).bytes
ONE_TB = bitmath.TiB(1).bytes

logger = getLogger(__name__)


# flush is required when stdout and stderr interleave on the same terminal.
def flushPrint(text, end='\n', file=None):
    file = file or sys.stdout
    try:
        print(text, end=end, file=file, flush=True)
    except UnicodeEncodeError as e:
        # Terminals with a narrow encoding (e.g. cp950) choke on some file names
        logger.debug(f"UnicodeEncodeError during print, using fallback encoding: {e}, {file.encoding=}")

        encoding = file.encoding or 'ascii'
        print(text.encode(encoding, errors='replace').decode(encoding), end=end, file=file, flush=True)


def formatSize(size, decimal=None, plural=None):
    if decimal is None:
        if size < ONE_GB: # Less than 1GB
            decimal = 0
        elif size < ONE_TB: # Between 1GB and 1TB
            decimal = 1
        else: # Greater than 1TB
            decimal = 2

    if plural is None:
        plural = False if size > ONE_KB else True

    best = bitmath.Byte(size).best_prefix(system=bitmath.SI)

    # bitmath releases name the plain byte unit differently, so it is spelled out here
    if type(best) is bitmath.Byte:
        return f"{size:.0f} {'Bytes' if plural else 'Byte'}"

    return best.format("{value:.%df}{unit}" % decimal).replace('B', '').upper()


def getEnv(envVar, default):
    """Safely get value from environment variable with automatic type detection based on default"""
    try:
        value = os.getenv(envVar)
        if value is not None:
            if default is None:
                return value

            if isinstance(default, bool):
                return value == "True"
            elif isinstance(default, int):
                return int(value)
            elif isinstance(default, float):
                return float(value)
            else:
                return type(default)(value)
        return default
    except (ValueError, TypeError):
        return default


def checkWritable(path):
    """
    Raise NotWritableError unless the current user may write to path.

    os.access follows the real uid/gid, which is what matters for a tool run from a shell.
    """
    if os.access(path, os.W_OK):
        return

    code = errno.EACCES if os.path.exists(path) else errno.ENOENT
    raise NotWritableError(path, OSError(code, os.strerror(code), path))
