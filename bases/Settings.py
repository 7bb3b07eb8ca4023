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

import mmap
import struct
import zipfile

from bases.Kernel import Singleton, getLogger
from bases.Bytes import ByteOrder

# ZIP format constants (from PKZIP APPNOTE.TXT specification)
EOCDR_BASE_SIZE = zipfile.sizeEndCentDir # 22, End of Central Directory record without comment
ZIP64_EOCDL_SIZE = zipfile.sizeEndCentDir64Locator # 20, Zip64 End of Central Directory Locator
MAX_COMMENT_LENGTH = 0xFFFF

# Largest tail that can hold both the EOCDR (with the longest comment) and the Zip64 EOCDL
TAIL_WINDOW_SIZE = ZIP64_EOCDL_SIZE + EOCDR_BASE_SIZE + MAX_COMMENT_LENGTH # 65577

END_OF_CENTRAL_DIR_SIGNATURE = zipfile.stringEndArchive # b'PK\x05\x06'
ZIP64_END_OF_CENTRAL_DIR_LOCATOR_SIGNATURE = struct.unpack('<I', zipfile.stringEndArchive64Locator)[0] # 0x07064b50

# A 32-bit central directory offset of all ones means "see the Zip64 record"
ZIP64_MARKER = 0xFFFFFFFF

# EOCDR field offsets, relative to the record's signature
EOCDR_THIS_DISK_OFFSET = 4
EOCDR_START_DISK_OFFSET = 6
EOCDR_CD_OFFSET_OFFSET = 16
EOCDR_COMMENT_LENGTH_OFFSET = 20

# Zip64 EOCDL field offsets, relative to the EOCDR's signature
EOCDL_SIGNATURE_OFFSET = -ZIP64_EOCDL_SIZE
EOCDL_TOTAL_DISKS_OFFSET = -4

logger = getLogger(__name__)


class SettingsGetter(Singleton):
    """
    Process-wide settings, resolved once at startup and read-only afterwards.

    byteOrder is the host byte order handed to every field read, and pageSize the
    granularity a mapping offset must be aligned to.
    """

    def initialize(self, platform=None, byteOrder=None, pageSize=None):
        self._platform = platform
        self._byteOrder = byteOrder or ByteOrder.host()
        self._pageSize = pageSize or mmap.ALLOCATIONGRANULARITY

        logger.debug(f'Settings: platform={self._platform} byteOrder={self._byteOrder.name} pageSize={self._pageSize}')

    @property
    def platform(self):
        return self._platform

    @property
    def byteOrder(self) -> ByteOrder:
        return self._byteOrder

    @property
    def pageSize(self) -> int:
        return self._pageSize
