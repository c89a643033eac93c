#!/usr/bin/env python3
# Copyright 2026 The Pigweed Authors
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.
"""Tests for length prefix backpatching and its Solidity helper."""

import unittest

from pw_protobuf_sol import length_prefix
from pw_protobuf_sol.output_file import OutputFile


def _encode(payload: bytes, room: int = 4) -> bytes:
    """Encodes payload behind a single reserved length byte."""
    buf = bytearray(1 + len(payload) + room)
    buf[1 : 1 + len(payload)] = payload
    end = length_prefix.backpatch_length(0, 1 + len(payload), buf)
    return bytes(buf[:end])


class VarintSizeTest(unittest.TestCase):
    """Tests for length_prefix.varint_size."""

    def test_sizes(self) -> None:
        self.assertEqual(length_prefix.varint_size(0), 1)
        self.assertEqual(length_prefix.varint_size(127), 1)
        self.assertEqual(length_prefix.varint_size(128), 2)
        self.assertEqual(length_prefix.varint_size(16383), 2)
        self.assertEqual(length_prefix.varint_size(16384), 3)


class BackpatchLengthTest(unittest.TestCase):
    """Tests for the Python model of the backpatch."""

    def test_short_payload_stays_in_place(self) -> None:
        self.assertEqual(_encode(b'\x08\x01'), b'\x02\x08\x01')

    def test_empty_payload(self) -> None:
        self.assertEqual(_encode(b''), b'\x00')

    def test_two_byte_length_moves_payload(self) -> None:
        payload = bytes(range(200))
        self.assertEqual(_encode(payload), b'\xc8\x01' + payload)

    def test_three_byte_length(self) -> None:
        payload = bytes(20000)
        self.assertEqual(_encode(payload), b'\xa0\x9c\x01' + payload)

    def test_prefix_inside_buffer(self) -> None:
        payload = b'x' * 130
        buf = bytearray(b'\x0a\x00' + payload + b'\x00')
        end = length_prefix.backpatch_length(1, 2 + len(payload), buf)
        self.assertEqual(end, len(buf))
        self.assertEqual(bytes(buf), b'\x0a\x82\x01' + payload)

    def test_no_room(self) -> None:
        buf = bytearray(1 + 128)
        with self.assertRaises(IndexError):
            length_prefix.backpatch_length(0, len(buf), buf)


class LengthPrefixLibraryTest(unittest.TestCase):
    """Tests for the emitted Solidity helper library."""

    def setUp(self) -> None:
        output = OutputFile('test.sol')
        length_prefix.write_length_prefix_library(output, 'Test_TypesLength')
        self.content = ' '.join(output.content().split())

    def test_signature(self) -> None:
        self.assertIn(
            'library Test_TypesLength { function backpatch_length('
            'uint64 len_pos, uint64 pos, bytes memory buf) internal pure '
            'returns (uint64) {',
            self.content,
        )

    def test_payload_moves_last_byte_first(self) -> None:
        self.assertIn(
            'for (uint64 i = pos; i > len_pos + 1; i--) '
            '{ buf[i - 1 + shift] = buf[i - 1]; }',
            self.content,
        )

    def test_varint_bytes(self) -> None:
        self.assertIn(
            'uint8 b = uint8(len & 0x7f); len >>= 7; '
            'if (len != 0) { b |= 0x80; } buf[len_pos + i] = bytes1(b);',
            self.content,
        )
        self.assertIn('return pos + shift; }', self.content)


if __name__ == '__main__':
    unittest.main()
