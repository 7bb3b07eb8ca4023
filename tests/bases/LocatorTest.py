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

import struct
import unittest
import zipfile

from bases.Bytes import ByteOrder
from bases.Locator import SignatureScanner, EOCDLocator, LocateOutcome
from bases.Settings import MAX_COMMENT_LENGTH

from ..CoreTestBase import buildPlainZip, buildTail, buildZip64Archive, memoryWindow


def scanBackwards(data, signature=zipfile.stringEndArchive):
    """Positions where the scanner reports a full match, in scan order."""
    scanner = SignatureScanner(signature)
    return [position for position in range(len(data) - 1, -1, -1) if scanner.feed(data[position])]


def fakeEocdr(commentLength, thisDisk=0, startDisk=0):
    return struct.pack(
        zipfile.structEndArchive, zipfile.stringEndArchive, thisDisk, startDisk, 0xFFFF, 0xFFFF, 0xFFFFFFFF,
        0xFFFFFFFF, commentLength
    )


class SignatureScannerTest(unittest.TestCase):

    def testSingleSignature(self):
        self.assertEqual(scanBackwards(b'xxPK\x05\x06yy'), [2])

    def testNoSignature(self):
        self.assertEqual(scanBackwards(b''), [])
        self.assertEqual(scanBackwards(b'PK\x05\x05\x06'), [])
        self.assertEqual(scanBackwards(b'PK\x06\x05'), [])
        self.assertEqual(scanBackwards(b'K\x05\x06'), [])

    def testRejectedByteStartsNewCandidate(self):
        # The extra 0x06 breaks the first partial match but is itself the last signature byte
        self.assertEqual(scanBackwards(b'PK\x05\x06\x06'), [0])
        self.assertEqual(scanBackwards(b'PK\x05\x06\x05\x06'), [0])
        self.assertEqual(scanBackwards(b'PK\x05\x06K\x05\x06'), [0])

    def testSeveralSignatures(self):
        self.assertEqual(scanBackwards(b'PK\x05\x06PK\x05\x06'), [4, 0])
        self.assertEqual(scanBackwards(b'PK\x05\x06--PK\x05\x06'), [6, 0])

    def testResetAfterMatch(self):
        scanner = SignatureScanner()
        for byte in b'\x06\x05KP':
            matched = scanner.feed(byte)
        self.assertTrue(matched)
        self.assertEqual(scanner.expected, 3)

    def testOtherSignature(self):
        self.assertEqual(scanBackwards(b'..PK\x06\x07..', zipfile.stringEndArchive64Locator), [2])


class EOCDLocatorTest(unittest.TestCase):

    def setUp(self):
        self.locator = EOCDLocator()

    def scan(self, data, byteOrder=None):
        return self.locator.scan(memoryWindow(data, byteOrder))

    def testPatchable(self):
        data = buildZip64Archive(totalDisks=0)
        result = self.scan(data)

        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)
        self.assertEqual(result.eocdOffset, len(data) - 22)
        self.assertEqual(result.commentLength, 0)
        self.assertEqual(result.totalDisksOffset, len(data) - 22 - 4)
        self.assertEqual(result.totalDisks, 0)

    def testAlreadySet(self):
        for totalDisks in (1, 2, 0x100, 0xFFFFFFFF):
            with self.subTest(totalDisks=totalDisks):
                result = self.scan(buildZip64Archive(totalDisks=totalDisks))
                self.assertEqual(result.outcome, LocateOutcome.ALREADY_SET)
                self.assertEqual(result.totalDisks, totalDisks)

    def testHighByteOnlyIsNotZero(self):
        data = buildTail(200, 150, 28, totalDisks=0x01000000)
        self.assertEqual(self.scan(data).outcome, LocateOutcome.ALREADY_SET)

    def testPlainZipIsNotZip64(self):
        result = self.scan(buildPlainZip(comment=b'plain archive'))
        self.assertEqual(result.outcome, LocateOutcome.NOT_ZIP64)
        self.assertIsNone(result.totalDisksOffset)

    def testLocatorIgnoredWithoutZip64Marker(self):
        data = buildTail(300, 250, 28, cdOffset=1234)
        self.assertEqual(self.scan(data).outcome, LocateOutcome.NOT_ZIP64)

    def testMultiDisk(self):
        result = self.scan(buildZip64Archive(thisDisk=1, startDisk=0))
        self.assertEqual(result.outcome, LocateOutcome.NOT_START_DISK)
        self.assertEqual((result.thisDisk, result.startDisk), (1, 0))

    def testSameNonzeroDisksArePatchable(self):
        result = self.scan(buildZip64Archive(thisDisk=3, startDisk=3))
        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)

    def testNoSignatureIsNotAZip(self):
        self.assertEqual(self.scan(b'A' * 5000).outcome, LocateOutcome.NOT_A_ZIP)

    def testTooSmallIsNotAZip(self):
        self.assertEqual(self.scan(b'PK\x05\x06' + b'\x00' * 16).outcome, LocateOutcome.NOT_A_ZIP)

    def testEmptyArchiveLeavesNoRoomForLocator(self):
        # zipfile writes a bare 22-byte record for an empty archive
        data = buildPlainZip(members=[])
        self.assertEqual(len(data), 22)
        self.assertEqual(self.scan(data).outcome, LocateOutcome.NOT_A_ZIP)

    def testWrongLocatorSignatureKeepsScanning(self):
        data = buildTail(400, 300, 78, locatorSignature=b'PK\x06\x06')
        self.assertEqual(self.scan(data).outcome, LocateOutcome.NOT_A_ZIP)

    def testConcreteScenario(self):
        data = buildTail(100000, 99900, 78)
        result = self.scan(data)

        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)
        self.assertEqual(result.eocdOffset, 99900)
        self.assertEqual(result.totalDisksOffset, 99896)

    def testSignatureInCommentWithWrongLength(self):
        comment = b'note ' + b'PK\x05\x06' + b'\x00' * 16 + struct.pack('<H', 3) + b' end'
        data = buildZip64Archive(comment=comment)
        result = self.scan(data)

        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)
        self.assertEqual(result.eocdOffset, len(data) - 22 - len(comment))
        self.assertEqual(result.commentLength, len(comment))

    def testRecordInCommentWithoutLocator(self):
        # Length check passes for the fake record, but nothing precedes it like a locator
        comment = fakeEocdr(10) + b'z' * 10
        data = buildZip64Archive(comment=comment)
        result = self.scan(data)

        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)
        self.assertEqual(result.eocdOffset, len(data) - 22 - len(comment))

    def testFirstValidatedRecordDecides(self):
        comment = fakeEocdr(10, thisDisk=2, startDisk=0) + b'z' * 10
        result = self.scan(buildZip64Archive(comment=comment))
        self.assertEqual(result.outcome, LocateOutcome.NOT_START_DISK)

    def testLongestComment(self):
        comment = b'c' * MAX_COMMENT_LENGTH
        data = buildZip64Archive(comment=comment)
        result = self.scan(data)

        self.assertEqual(result.outcome, LocateOutcome.PATCHABLE)
        self.assertEqual(result.commentLength, MAX_COMMENT_LENGTH)
        self.assertEqual(result.totalDisksOffset, len(data) - len(comment) - 22 - 4)

    def testRecordBeyondWindow(self):
        data = buildZip64Archive() + b'\x00' * (MAX_COMMENT_LENGTH + 100)
        self.assertEqual(self.scan(data).outcome, LocateOutcome.NOT_A_ZIP)

    def testSameResultForEitherByteOrder(self):
        data = buildZip64Archive(comment=b'made on Windows')
        results = [self.scan(data, byteOrder) for byteOrder in ByteOrder]
        self.assertEqual(results[0], results[1])
        self.assertEqual(results[0].outcome, LocateOutcome.PATCHABLE)


if __name__ == '__main__':
    unittest.main()
