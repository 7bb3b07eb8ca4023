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

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from bases.Kernel import getLogger
from bases.Settings import (
    END_OF_CENTRAL_DIR_SIGNATURE, ZIP64_END_OF_CENTRAL_DIR_LOCATOR_SIGNATURE, ZIP64_MARKER, EOCDR_BASE_SIZE,
    ZIP64_EOCDL_SIZE, EOCDR_THIS_DISK_OFFSET, EOCDR_START_DISK_OFFSET, EOCDR_CD_OFFSET_OFFSET,
    EOCDR_COMMENT_LENGTH_OFFSET, EOCDL_SIGNATURE_OFFSET, EOCDL_TOTAL_DISKS_OFFSET
)

logger = getLogger(__name__)


class SignatureScanner:
    """
    Matches a signature while reading bytes from the end of a buffer towards its start.

    The state is the index of the signature byte expected next, counting down from the last
    byte. A mismatch returns to expecting the last byte, and the rejected byte is tested again
    from there since it can be the tail of a new candidate.
    """

    def __init__(self, signature=END_OF_CENTRAL_DIR_SIGNATURE):
        self.signature = bytes(signature)
        self.reset()

    def reset(self):
        self.expected = len(self.signature) - 1

    def feed(self, byte):
        """Consume the next byte (moving backwards). Returns True when the whole signature has matched."""
        if byte != self.signature[self.expected]:
            self.reset()
            if byte != self.signature[self.expected]:
                return False

        if self.expected == 0:
            self.reset()
            return True

        self.expected -= 1
        return False


class LocateOutcome(Enum):
    PATCHABLE = auto() # Zip64 locator found with total disks 0
    ALREADY_SET = auto() # Zip64 locator found with a nonzero total disks
    NOT_ZIP64 = auto()
    NOT_START_DISK = auto()
    NOT_A_ZIP = auto()


@dataclass
class LocateResult:
    outcome: LocateOutcome
    eocdOffset: Optional[int] = None
    commentLength: Optional[int] = None
    thisDisk: Optional[int] = None
    startDisk: Optional[int] = None
    totalDisksOffset: Optional[int] = None
    totalDisks: Optional[int] = None


class EOCDLocator:
    """
    Finds the End of Central Directory record and the Zip64 locator in front of it.

    The record is followed by a comment of unknown length, so it is searched for backwards
    from the position it would have with an empty comment. Comment bytes that look like a
    signature are rejected by requiring the record plus its declared comment to end exactly
    at the end of the file. The first candidate passing that test decides the outcome, except
    that a missing Zip64 locator signature is treated as another false match.
    """

    def scan(self, window) -> LocateResult:
        fileSize = window.fileSize
        if fileSize < EOCDR_BASE_SIZE:
            return LocateResult(LocateOutcome.NOT_A_ZIP)

        scanner = SignatureScanner()
        signatureLength = len(scanner.signature)

        highest = fileSize - EOCDR_BASE_SIZE + signatureLength - 1
        lowest = window.windowStart + ZIP64_EOCDL_SIZE

        for position in range(highest, lowest - 1, -1):
            if not scanner.feed(window.byteAt(position)):
                continue

            result = self._examine(window, position)
            if result is not None:
                return result

        logger.debug(f'No End of Central Directory record in the last {window.length} bytes of {window.path}')
        return LocateResult(LocateOutcome.NOT_A_ZIP)

    def _examine(self, window, candidate):
        """Validate a signature match at candidate. Returns None to continue scanning."""
        commentLength = window.readUInt16(candidate + EOCDR_COMMENT_LENGTH_OFFSET)
        if candidate + EOCDR_BASE_SIZE + commentLength != window.fileSize:
            logger.debug(f'Signature at {candidate} of {window.path} has comment length {commentLength}, skipped')
            return None

        thisDisk = window.readUInt16(candidate + EOCDR_THIS_DISK_OFFSET)
        startDisk = window.readUInt16(candidate + EOCDR_START_DISK_OFFSET)
        if thisDisk != startDisk:
            return LocateResult(
                LocateOutcome.NOT_START_DISK,
                eocdOffset=candidate,
                commentLength=commentLength,
                thisDisk=thisDisk,
                startDisk=startDisk
            )

        cdOffset = window.readUInt32(candidate + EOCDR_CD_OFFSET_OFFSET)
        if cdOffset != ZIP64_MARKER:
            return LocateResult(
                LocateOutcome.NOT_ZIP64,
                eocdOffset=candidate,
                commentLength=commentLength,
                thisDisk=thisDisk,
                startDisk=startDisk
            )

        locatorSignature = window.readUInt32(candidate + EOCDL_SIGNATURE_OFFSET)
        if locatorSignature != ZIP64_END_OF_CENTRAL_DIR_LOCATOR_SIGNATURE:
            logger.debug(f'No Zip64 locator in front of {candidate} of {window.path}, skipped')
            return None

        totalDisksOffset = candidate + EOCDL_TOTAL_DISKS_OFFSET
        totalDisks = window.readUInt32(totalDisksOffset)

        return LocateResult(
            LocateOutcome.PATCHABLE if totalDisks == 0 else LocateOutcome.ALREADY_SET,
            eocdOffset=candidate,
            commentLength=commentLength,
            thisDisk=thisDisk,
            startDisk=startDisk,
            totalDisksOffset=totalDisksOffset,
            totalDisks=totalDisks
        )
