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

import argparse
import json
import os
import logging
import logging.config
import platform
import sys

from bases.Kernel import (
    PUBLIC_VERSION, LOG_LEVEL_MAPPING, getLogger, FixEvent, configureGlobalLogLevel, StorageLocator
)
from bases.Fixer import FileProcessor, FixupStatus
from bases.Utils import flushPrint, getEnv

PROGRAM_NAME = 'fixmszip'

OUTCOME_WORDS = {
    FixupStatus.UPDATED: 'Succeeded',
    FixupStatus.NO_ACTION_NEEDED: 'Unnecessary',
    FixupStatus.FAILED: 'Failed',
}

logger = getLogger(__name__)


def loadEnvFile():
    """
    Load environment variables from .env file using StorageLocator.
    Only sets variables that are not already defined in os.environ.
    """
    envFilePath = StorageLocator.getInstance().findConfig('.env')

    if not os.path.exists(envFilePath):
        return

    try:
        loadedCount = 0

        with open(envFilePath, 'r', encoding='utf-8') as f:
            for lineNum, line in enumerate(f, 1):
                line = line.strip()

                if not line or line.startswith('#'):
                    continue

                if '=' not in line:
                    logger.warning(f'.env line {lineNum}: Invalid format (missing =): {line}')
                    continue

                key, _, value = line.partition('=')
                key = key.strip()
                value = value.strip()

                if not key:
                    logger.warning(f'.env line {lineNum}: Empty key')
                    continue

                if (value.startswith('"') and value.endswith('"')) or \
                   (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                # Environment takes precedence
                if key not in os.environ:
                    os.environ[key] = value
                    loadedCount += 1
                else:
                    logger.debug(f'.env: Skipped {key} (already set in environment)')

        logger.debug(f'Loaded {loadedCount} environment variables from {envFilePath}')

    except (OSError, UnicodeDecodeError) as e:
        logger.error(f'Unable to load .env file {envFilePath}: {e}')


def configureLogging(logLevel):
    """Configure logging from --log-level or FIXMSZIP_LOGGING_LEVEL

    Both can be a logging level name (DEBUG, INFO, WARNING, ERROR) or a path to a logging
    configuration JSON file for logging.config.dictConfig.
    """

    def suppressNoisyLogger():
        logging.getLogger('sentry_sdk').setLevel(logging.INFO)

    if logLevel is None:
        logLevel = getEnv('FIXMSZIP_LOGGING_LEVEL', None)

    if logLevel is None:
        suppressNoisyLogger()
        return None

    if os.path.isfile(logLevel):
        try:
            with open(logLevel, 'r') as configFile:
                configDict = json.load(configFile)

            logging.config.dictConfig(configDict)
            logger.info(f"Logging configured from file: {logLevel}")
            suppressNoisyLogger()
            return logLevel

        except (json.JSONDecodeError, OSError, KeyError, ValueError) as e:
            flushPrint(f"Failed to load logging config from {logLevel}: {e}", file=sys.stderr)
            flushPrint("Falling back to default logging level configuration", file=sys.stderr)

    if logLevel.upper() in LOG_LEVEL_MAPPING:
        configureGlobalLogLevel(LOG_LEVEL_MAPPING[logLevel.upper()])
        logger.info(f"Logging level set to {logLevel}")
    else:
        logger.warning(f"Invalid logging level '{logLevel}', using WARNING as default")
        configureGlobalLogLevel(logging.WARNING)

    suppressNoisyLogger()

    return logLevel


def showVersion():
    flushPrint(f"{PROGRAM_NAME} v{PUBLIC_VERSION}")
    uname = platform.uname()
    flushPrint(f"Architecture: {uname.system} {uname.release} {uname.machine} ({sys.byteorder}-endian)")


class FixArgumentParser(argparse.ArgumentParser):
    """Usage errors print the usage to stderr and exit with status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f'{self.prog}: error: {message}\n')


def configureCLIParser():

    def validateLogLevel(logLevel):
        if os.path.isfile(logLevel):
            return logLevel

        validLevels = list(LOG_LEVEL_MAPPING)
        if logLevel.upper() not in validLevels:
            raise argparse.ArgumentTypeError(
                f"Invalid log level '{logLevel}'. Valid levels are: {', '.join(validLevels)}"
            )
        return logLevel.upper()

    parser = FixArgumentParser(
        prog=PROGRAM_NAME,
        description=(
            "Set the 'total number of disks' of the Zip64 end of central directory locator from 0 to 1, "
            "so zip files made by Windows open with other zip tools."
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Report the outcome for every file")
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Only detect files needing the fix, never write (also FIXMSZIP_DRY_RUN=True)",
        dest="dryRun"
    )
    parser.add_argument("--version", action="store_true", help="Show version information")
    parser.add_argument(
        "--log-level",
        type=validateLogLevel,
        help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL) or path to logging config JSON file (default: WARNING)",
        metavar="LEVEL_OR_FILE",
        dest="logLevel"
    )
    parser.add_argument("files", nargs="*", metavar="zipfile", help="Zip file to fix in place")
    return parser


class ConsoleReporter:
    """
    Prints per-file progress and errors as FixEvent notifications arrive.

    Errors go to stderr with the file name and cause; with verbose, stdout gets
    'Fixing <file>...' followed by Succeeded, Unnecessary or Failed.
    """

    def __init__(self, verbose=False):
        self.verbose = verbose
        self.problems = 0

    def onStart(self, path, **kwargs):
        if self.verbose:
            flushPrint(f'Fixing {path}...', end='')

    def onResult(self, result, **kwargs):
        if result.failed:
            self.problems += 1
            flushPrint(result.message, file=sys.stderr)

        if self.verbose:
            flushPrint(OUTCOME_WORDS[result.status])

    def __enter__(self):
        FixEvent.fixupStart.subscribe(self.onStart)
        FixEvent.fixupResultCreate.subscribe(self.onResult)
        return self

    def __exit__(self, excType, excValue, traceback):
        FixEvent.fixupStart.unsubscribe(self.onStart)
        FixEvent.fixupResultCreate.unsubscribe(self.onResult)
        return False


def processZipFiles(args, settingsGetter):
    """
    Fix every file named in args, one after another.

    Returns:
        int: 0 if every file was fixed or needed nothing, 1 otherwise
    """
    dryRun = args.dryRun or getEnv('FIXMSZIP_DRY_RUN', False)
    processor = FileProcessor(settingsGetter.byteOrder, settingsGetter.pageSize, dryRun=dryRun)

    with ConsoleReporter(verbose=args.verbose) as reporter:
        for path in args.files:
            processor.process(path)

    if reporter.problems:
        flushPrint("Errors were encountered during fixup", file=sys.stderr)
        return 1

    return 0
