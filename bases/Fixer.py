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
from enum import Enum
from typing import Optional

from bases.Kernel import getLogger, FixEvent
from bases.Bytes import ByteOrder
from bases.Errors import FailureReason, FixupError, NotAZipError, NotStartDiskError
from bases.Locator import EOCDLocator, LocateOutcome
from bases.Utils import checkWritable
from bases.Window import mapTailWindow

# Value written over a zero "total number of disks": the archive is a single volume
SINGLE_VOLUME = 1

logger = getLogger(__name__)


class FixupStatus(Enum):
    UPDATED = 'updated'
    NO_ACTION_NEEDED = 'no_action_needed'
    FAILED = 'failed'


@dataclass
class FixupResult:
    path: str
    status: FixupStatus
    reason: Optional[FailureReason] = None
    message: str = ''
    dryRun: bool = False

    @property
    def failed(self):
        return self.status == FixupStatus.FAILED

    @classmethod
    def fromError(cls, error: FixupError, dryRun=False):
        return cls(error.path, FixupStatus.FAILED, reason=error.reason, message=error.message, dryRun=dryRun)


class PatchApplier:

    def apply(self, window, fieldOffset, dryRun=False):
        """
        Set the Zip64 locator's total number of disks at fieldOffset to 1.

        The field was just read as zero, so writing the whole 32-bit value only changes its
        low byte. The write lands in the shared mapping and reaches the file when the window
        is released. Returns True if the file was modified.
        """
        if dryRun:
            logger.info(f'Dry run, not patching total disks at {fieldOffset} of {window.path}')
            return False

        window.writeUInt32(fieldOffset, SINGLE_VOLUME)
        logger.info(f'Patched total disks at {fieldOffset} of {window.path} to {SINGLE_VOLUME}')
        return True


class FileProcessor:
    """
    Runs one fixup per file: writability check, map the tail, locate, patch, release.

    Per-file failures are returned as FAILED results rather than raised, so one bad file
    never stops a batch.
    """

    def __init__(self, byteOrder: ByteOrder, pageSize: int, dryRun=False):
        self.byteOrder = byteOrder
        self.pageSize = pageSize
        self.dryRun = dryRun

        self.locator = EOCDLocator()
        self.patchApplier = PatchApplier()

    def process(self, path) -> FixupResult:
        FixEvent.fixupStart.trigger(path=path)

        try:
            result = self._fixup(path)
        except FixupError as e:
            logger.warning(e.message)
            result = FixupResult.fromError(e, dryRun=self.dryRun)

        logger.debug(f'{path}: {result.status.value}')
        FixEvent.fixupResultCreate.trigger(result=result)
        return result

    def _fixup(self, path):
        checkWritable(path)

        with mapTailWindow(path, self.pageSize, self.byteOrder) as window:
            located = self.locator.scan(window)

            if located.outcome == LocateOutcome.NOT_A_ZIP:
                raise NotAZipError(path)

            if located.outcome == LocateOutcome.NOT_START_DISK:
                raise NotStartDiskError(path, located.thisDisk, located.startDisk)

            if located.outcome == LocateOutcome.PATCHABLE:
                self.patchApplier.apply(window, located.totalDisksOffset, dryRun=self.dryRun)
                return FixupResult(path, FixupStatus.UPDATED, dryRun=self.dryRun)

            if located.outcome == LocateOutcome.ALREADY_SET:
                message = f'{path}: total disks already {located.totalDisks}'
            else:
                message = f'{path}: not a Zip64 archive'

            return FixupResult(path, FixupStatus.NO_ACTION_NEEDED, message=message, dryRun=self.dryRun)
