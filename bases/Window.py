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

import contextlib
import mmap
import os

from bases.Kernel import getLogger
from bases.Bytes import ByteOrder, readUInt16, readUInt32, packUInt32
from bases.Errors import StatFailure, OpenFailure, MapFailure, NotAZipError, WindowBoundsError
from bases.Settings import EOCDR_BASE_SIZE, TAIL_WINDOW_SIZE
from bases.Utils import formatSize

logger = getLogger(__name__)


class TailWindow:
    """
    The trailing bytes of a file, mapped shared and writable.

    Offsets taken by the accessors are file-relative. Only [windowStart, fileSize) is
    accessible; the page pad mapped in front of windowStart is not.
    """

    def __init__(self, path, buffer, fileSize, windowStart, pageOffset, byteOrder: ByteOrder):
        self.path = path
        self.buffer = buffer
        self.fileSize = fileSize
        self.windowStart = windowStart
        self.pageOffset = pageOffset
        self.byteOrder = byteOrder

    @property
    def length(self):
        return self.fileSize - self.windowStart

    def _index(self, offset, width):
        if offset < self.windowStart or offset + width > self.fileSize:
            raise WindowBoundsError(
                f'{width} byte(s) at {offset} outside window [{self.windowStart}, {self.fileSize}) of {self.path}'
            )
        return offset - self.windowStart + self.pageOffset

    def byteAt(self, offset):
        return self.buffer[self._index(offset, 1)]

    def readUInt16(self, offset):
        return readUInt16(self.buffer, self._index(offset, 2), self.byteOrder)

    def readUInt32(self, offset):
        return readUInt32(self.buffer, self._index(offset, 4), self.byteOrder)

    def writeUInt32(self, offset, value):
        index = self._index(offset, 4)
        self.buffer[index:index + 4] = packUInt32(value)


def _openReadWrite(path):
    return os.open(path, os.O_RDWR | getattr(os, 'O_BINARY', 0))


@contextlib.contextmanager
def mapTailWindow(path, pageSize, byteOrder: ByteOrder):
    """
    Map the last min(fileSize, TAIL_WINDOW_SIZE) bytes of path for reading and writing.

    The mapping starts at the page boundary at or below the window, since mapping offsets
    must be aligned. Writes go straight to the file. The mapping and the descriptor are
    released on every exit path.

    Raises:
        StatFailure, OpenFailure, MapFailure: The OS call failed.
        NotAZipError: The file is too small to hold an End of Central Directory record.
    """
    try:
        fileSize = os.stat(path).st_size
    except OSError as e:
        raise StatFailure(path, e) from e

    if fileSize < EOCDR_BASE_SIZE:
        raise NotAZipError(path)

    windowSize = min(fileSize, TAIL_WINDOW_SIZE)
    windowStart = fileSize - windowSize
    pageOffset = windowStart % pageSize
    alignedOffset = windowStart - pageOffset

    try:
        fd = _openReadWrite(path)
    except OSError as e:
        raise OpenFailure(path, e) from e

    try:
        try:
            buffer = mmap.mmap(fd, pageOffset + windowSize, access=mmap.ACCESS_WRITE, offset=alignedOffset)
        except (OSError, ValueError) as e:
            raise MapFailure(path, e) from e

        logger.debug(
            f'Mapped {formatSize(windowSize)} tail of {path} '
            f'(size={fileSize}, windowStart={windowStart}, pageOffset={pageOffset})'
        )

        try:
            yield TailWindow(path, buffer, fileSize, windowStart, pageOffset, byteOrder)
        finally:
            buffer.close()
    finally:
        os.close(fd)
