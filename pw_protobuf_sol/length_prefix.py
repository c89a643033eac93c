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
"""Length prefixes of length-delimited fields written by encoders.

An encoder does not know the size of a sub-message or packed array until it
has written it, so it reserves a single byte for the length and backpatches
the varint afterwards. When the length needs more than one varint byte, the
payload is moved towards the end of the buffer to make room.

This module holds a Python model of the backpatch and the emitter for the
equivalent Solidity helper library, which every generated file with
length-prefixed encoders carries.
"""

from pw_protobuf_sol.output_file import OutputFile

BACKPATCH_ROUTINE = 'backpatch_length'


def varint_size(value: int) -> int:
    """Number of bytes in the varint encoding of a non-negative value."""
    size = 1
    while value >= 0x80:
        value >>= 7
        size += 1
    return size


def backpatch_length(len_pos: int, pos: int, buf: bytearray) -> int:
    """Writes the length of buf[len_pos + 1:pos] at len_pos.

    Returns the end position of the payload after it has been moved.

    Raises:
      IndexError: buf has no room for the moved payload.
    """
    length = pos - len_pos - 1
    size = varint_size(length)
    shift = size - 1
    if pos + shift > len(buf):
        raise IndexError('buffer too small for the length prefix')

    buf[len_pos + size : pos + shift] = buf[len_pos + 1 : pos]
    for i in range(size):
        byte = length & 0x7F
        length >>= 7
        if length:
            byte |= 0x80
        buf[len_pos + i] = byte
    return pos + shift


def write_length_prefix_library(output: OutputFile, library_name: str) -> None:
    """Emits the backpatch helper used by one generated file's encoders."""
    with output.block(f'library {library_name}'):
        with output.block(
            f'function {BACKPATCH_ROUTINE}(uint64 len_pos, uint64 pos, '
            'bytes memory buf) internal pure returns (uint64)'
        ):
            output.write_line('uint64 len = pos - len_pos - 1;')
            output.write_line('uint64 size = 1;')
            with output.block(
                'for (uint64 rest = len >> 7; rest != 0; rest >>= 7)'
            ):
                output.write_line('size += 1;')
            output.write_line()
            output.write_line('// Move the payload up, last byte first')
            output.write_line('uint64 shift = size - 1;')
            with output.block('if (shift > 0)'):
                with output.block(
                    'for (uint64 i = pos; i > len_pos + 1; i--)'
                ):
                    output.write_line('buf[i - 1 + shift] = buf[i - 1];')
            output.write_line()
            with output.block('for (uint64 i = 0; i < size; i++)'):
                output.write_line('uint8 b = uint8(len & 0x7f);')
                output.write_line('len >>= 7;')
                with output.block('if (len != 0)'):
                    output.write_line('b |= 0x80;')
                output.write_line('buf[len_pos + i] = bytes1(b);')
            output.write_line()
            output.write_line('return pos + shift;')
