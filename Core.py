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
import os
import platform
import sys

from bases.Kernel import getLogger
from bases.Bytes import ByteOrder
from bases.Settings import SettingsGetter
from bases.CLI import configureCLIParser, configureLogging, processZipFiles, showVersion, loadEnvFile
from bases.Utils import flushPrint

logger = getLogger(__name__)


def setupSettings():
    # Resolved once; everything downstream receives these values explicitly
    return SettingsGetter(
        platform=platform.system(),
        byteOrder=ByteOrder.host(),
        pageSize=mmap.ALLOCATIONGRANULARITY,
    )


def runCLIMain(argv=None):
    # Load .env file early, before logging is configured
    loadEnvFile()

    parser = configureCLIParser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)

    configureLogging(args.logLevel)

    if args.version:
        showVersion()
        return 0

    if not args.files:
        parser.error('at least one zipfile is required')

    settingsGetter = setupSettings()
    return processZipFiles(args, settingsGetter)


def main(argv=None):
    try:
        return runCLIMain(argv)
    except KeyboardInterrupt:
        flushPrint('\nExiting on user request (Ctrl+C)...')
        return 1
    except Exception as e:
        if os.getenv('RAISE_EXCEPTION', 'False') == 'True':
            raise

        logger.exception(e)
        flushPrint(f'Oops, something went wrong: {e}', file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main() or 0)
