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

from enum import Enum


class FailureReason(Enum):
    STAT_FAILURE = 'stat'
    OPEN_FAILURE = 'open'
    MAP_FAILURE = 'mmap'
    NOT_WRITABLE = 'writable'
    NOT_A_ZIP = 'not_a_zip'
    NOT_START_DISK = 'not_start_disk'


class FixupError(Exception):
    """Base of every per-file failure; carries the path and the reason it failed."""

    reason = None

    def __init__(self, path, message):
        super().__init__(message)
        self.path = path
        self.message = message


class SystemFixupError(FixupError):
    """A failed OS call, reported with the system's error text."""

    action = None

    def __init__(self, path, cause: Exception):
        errorText = getattr(cause, 'strerror', None) or str(cause)
        super().__init__(path, f'Failed to {self.action} {path}: {errorText}')
        self.cause = cause


class StatFailure(SystemFixupError):
    reason = FailureReason.STAT_FAILURE
    action = 'stat'


class OpenFailure(SystemFixupError):
    reason = FailureReason.OPEN_FAILURE
    action = 'open'


class MapFailure(SystemFixupError):
    reason = FailureReason.MAP_FAILURE
    action = 'mmap'


class NotWritableError(SystemFixupError):
    reason = FailureReason.NOT_WRITABLE
    action = 'fix'


class NotAZipError(FixupError):
    reason = FailureReason.NOT_A_ZIP

    def __init__(self, path):
        super().__init__(path, f'{path} is not a zip file')


class NotStartDiskError(FixupError):
    reason = FailureReason.NOT_START_DISK

    def __init__(self, path, thisDisk, startDisk):
        super().__init__(path, f'{path}: not start disk (this disk {thisDisk}, start disk {startDisk})')
        self.thisDisk = thisDisk
        self.startDisk = startDisk


class WindowBoundsError(IndexError):
    """A field access fell outside the mapped tail window."""
