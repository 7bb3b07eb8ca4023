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
"""
Little-endian integer access for zip structures.

Every multi-byte zip field is little-endian. The readers decode in the host's byte order,
which is resolved once (ByteOrder.host()) and passed in explicitly, then swap when the host
is big-endian. Passing ByteOrder.BIG on a little-endian machine simulates a big-endian host,
so both paths can be tested anywhere.
"""

import struct
import sys

from enum import Enum


class ByteOrder(Enum):
    LITTLE = '<'
    BIG = '>'

    @classmethod
    def host(cls):
        return cls.LITTLE if sys.byteorder == 'little' else cls.BIG


_FORMATS = {2: 'H', 4: 'I'}


def _swap(value, width):
    return int.from_bytes(value.to_bytes(width, 'big'), 'little')


def _readUInt(buffer, offset, width, byteOrder):
    value, = struct.unpack_from(byteOrder.value + _FORMATS[width], buffer, offset)
    if byteOrder is ByteOrder.BIG:
        value = _swap(value, width)
    return value


def readUInt16(buffer, offset, byteOrder):
    """Return the 2 bytes at offset as a little-endian unsigned short."""
    return _readUInt(buffer, offset, 2, byteOrder)


def readUInt32(buffer, offset, byteOrder):
    """Return the 4 bytes at offset as a little-endian unsigned int."""
    return _readUInt(buffer, offset, 4, byteOrder)


def packUInt32(value):
    return struct.pack('<I', value)
