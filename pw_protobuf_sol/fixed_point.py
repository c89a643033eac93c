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
"""Fixed-point representation of proto float and double fields.

Solidity has no floating point types, so float and double fields are stored
as integers scaled by a fixed power of ten: a float holding 1.5 is stored as
the int32 1500000. The conversion between the IEEE-754 bit pattern on the wire
and the scaled integer is deterministic and lossy. Values too large for the
storage type saturate, as do infinities and NaNs. Zero and subnormal floats
become 0.

This module holds the scaling parameters, a Python model of the conversion,
and the emitter for the equivalent Solidity helper library. The model and the
Solidity helpers share the constants below and perform the same integer
operations in the same order.
"""

import dataclasses
from typing import Iterable

from pw_protobuf_sol.output_file import OutputFile


@dataclasses.dataclass(frozen=True)
class FixedPointFormat:
    """Parameters of one IEEE-754 binary format and its scaled storage."""

    name: str
    width: int
    exponent_bits: int
    mantissa_bits: int
    scale: int

    @property
    def storage(self) -> str:
        return f'int{self.width}'

    @property
    def bias(self) -> int:
        return (1 << (self.exponent_bits - 1)) - 1

    @property
    def exponent_mask(self) -> int:
        return (1 << self.exponent_bits) - 1

    @property
    def mantissa_mask(self) -> int:
        return (1 << self.mantissa_bits) - 1

    @property
    def implicit_bit(self) -> int:
        return 1 << self.mantissa_bits

    @property
    def max_value(self) -> int:
        return (1 << (self.width - 1)) - 1

    @property
    def unbiased_point(self) -> int:
        """Biased exponent at which the mantissa is an integer."""
        return self.bias + self.mantissa_bits

    def decode_routine(self) -> str:
        return f'decode_{self.name}_scaled'

    def encode_routine(self) -> str:
        return f'encode_{self.name}_scaled'


FLOAT = FixedPointFormat(
    name='float', width=32, exponent_bits=8, mantissa_bits=23, scale=10**6
)
DOUBLE = FixedPointFormat(
    name='double', width=64, exponent_bits=11, mantissa_bits=52, scale=10**15
)


def to_fixed_point(bits: int, fmt: FixedPointFormat) -> int:
    """Converts an IEEE-754 bit pattern to its scaled integer value."""
    exponent = (bits >> fmt.mantissa_bits) & fmt.exponent_mask
    mantissa = bits & fmt.mantissa_mask

    if exponent == 0:
        return 0

    if exponent == fmt.exponent_mask:
        return fmt.max_value

    magnitude = (mantissa | fmt.implicit_bit) * fmt.scale
    if exponent >= fmt.unbiased_point:
        shift = exponent - fmt.unbiased_point
        if shift > fmt.width:
            magnitude = fmt.max_value
        else:
            magnitude <<= shift
    else:
        magnitude >>= fmt.unbiased_point - exponent

    magnitude = min(magnitude, fmt.max_value)

    if (bits >> (fmt.width - 1)) & 1:
        return -magnitude
    return magnitude


def from_fixed_point(value: int, fmt: FixedPointFormat) -> int:
    """Converts a scaled integer to an IEEE-754 bit pattern.

    The mantissa is rounded up, so that to_fixed_point() truncates back to the
    original value whenever |value| < 2**fmt.mantissa_bits.
    """
    if value == 0:
        return 0

    sign = 1 if value < 0 else 0
    numerator = abs(value)
    denominator = fmt.scale
    exponent = fmt.unbiased_point

    # Normalize numerator / denominator into [2^M, 2^(M+1)).
    while numerator // denominator >= fmt.implicit_bit << 1:
        denominator <<= 1
        exponent += 1
    while numerator // denominator < fmt.implicit_bit:
        numerator <<= 1
        exponent -= 1

    mantissa = numerator // denominator
    if numerator % denominator != 0:
        mantissa += 1
    if mantissa == fmt.implicit_bit << 1:
        mantissa >>= 1
        exponent += 1

    return (
        (sign << (fmt.width - 1))
        | (exponent << fmt.mantissa_bits)
        | (mantissa & fmt.mantissa_mask)
    )


def _hex(value: int) -> str:
    return f'0x{value:x}'


def _write_decoder(
    output: OutputFile, fmt: FixedPointFormat, runtime: str
) -> None:
    bits_type = f'uint{fmt.width}'
    with output.block(
        f'function {fmt.decode_routine()}(uint64 p, bytes memory buf) '
        f'internal pure returns (bool, uint64, {fmt.storage})'
    ):
        output.write_lines(
            [
                'bool success;',
                'uint64 pos;',
                f'{bits_type} bits;',
                f'(success, pos, bits) = {runtime}.decode_fixed{fmt.width}'
                '(p, buf);',
            ]
        )
        with output.block('if (!success)'):
            output.write_line('return (false, pos, 0);')
        output.write_line()
        output.write_line(
            f'return (true, pos, {fmt.storage}({fmt.name}_bits_to_scaled'
            '(bits)));'
        )
    output.write_line()

    max_value = str(fmt.max_value)
    with output.block(
        f'function {fmt.name}_bits_to_scaled({bits_type} bits) '
        'internal pure returns (int256)'
    ):
        output.write_line(
            f'uint256 exponent = (uint256(bits) >> {fmt.mantissa_bits}) & '
            f'{_hex(fmt.exponent_mask)};'
        )
        output.write_line(
            f'uint256 mantissa = uint256(bits) & {_hex(fmt.mantissa_mask)};'
        )
        output.write_line()
        output.write_line('// Zero and subnormal values')
        with output.block('if (exponent == 0)'):
            output.write_line('return 0;')
        output.write_line()
        output.write_line('// Infinity and NaN saturate')
        with output.block(f'if (exponent == {_hex(fmt.exponent_mask)})'):
            output.write_line(f'return {max_value};')
        output.write_line()
        output.write_line(
            f'uint256 magnitude = (mantissa | {_hex(fmt.implicit_bit)}) * '
            f'{fmt.scale};'
        )
        point = fmt.unbiased_point
        with output.block(f'if (exponent >= {point})'):
            with output.block(f'if (exponent - {point} > {fmt.width})'):
                output.write_line(f'magnitude = {max_value};')
            with output.block('else'):
                output.write_line(
                    f'magnitude = magnitude << (exponent - {point});'
                )
        with output.block('else'):
            output.write_line(f'magnitude = magnitude >> ({point} - exponent);')
        with output.block(f'if (magnitude > {max_value})'):
            output.write_line(f'magnitude = {max_value};')
        output.write_line()
        with output.block(f'if ((bits >> {fmt.width - 1}) == 1)'):
            output.write_line('return -int256(magnitude);')
        output.write_line('return int256(magnitude);')


def _write_encoder(
    output: OutputFile, fmt: FixedPointFormat, runtime: str
) -> None:
    bits_type = f'uint{fmt.width}'
    with output.block(
        f'function {fmt.encode_routine()}(uint64 pos, bytes memory buf, '
        f'{fmt.storage} value) internal pure returns (uint64)'
    ):
        output.write_line(
            f'return {runtime}.encode_fixed{fmt.width}(pos, buf, '
            f'{bits_type}(scaled_to_{fmt.name}_bits(value)));'
        )
    output.write_line()

    limit = fmt.implicit_bit << 1
    with output.block(
        f'function scaled_to_{fmt.name}_bits(int256 value) '
        'internal pure returns (uint256)'
    ):
        with output.block('if (value == 0)'):
            output.write_line('return 0;')
        output.write_line()
        output.write_line('uint256 sign = 0;')
        output.write_line('uint256 numerator = 0;')
        with output.block('if (value < 0)'):
            output.write_line('sign = 1;')
            output.write_line('numerator = uint256(-value);')
        with output.block('else'):
            output.write_line('numerator = uint256(value);')
        output.write_line(f'uint256 denominator = {fmt.scale};')
        output.write_line(f'uint256 exponent = {fmt.unbiased_point};')
        output.write_line()
        output.write_line(
            f'// Normalize numerator / denominator into [2^{fmt.mantissa_bits}'
            f', 2^{fmt.mantissa_bits + 1})'
        )
        with output.block(f'while (numerator / denominator >= {_hex(limit)})'):
            output.write_line('denominator <<= 1;')
            output.write_line('exponent += 1;')
        with output.block(
            f'while (numerator / denominator < {_hex(fmt.implicit_bit)})'
        ):
            output.write_line('numerator <<= 1;')
            output.write_line('exponent -= 1;')
        output.write_line()
        output.write_line('// Round up so decoding truncates back to value')
        output.write_line('uint256 mantissa = numerator / denominator;')
        with output.block('if (numerator % denominator != 0)'):
            output.write_line('mantissa += 1;')
        with output.block(f'if (mantissa == {_hex(limit)})'):
            output.write_line('mantissa >>= 1;')
            output.write_line('exponent += 1;')
        output.write_line()
        output.write_line(
            f'return (sign << {fmt.width - 1}) | (exponent << '
            f'{fmt.mantissa_bits}) | (mantissa & {_hex(fmt.mantissa_mask)});'
        )


def write_fixed_point_library(
    output: OutputFile,
    library_name: str,
    formats: Iterable[FixedPointFormat],
    runtime: str,
    decoders: bool = True,
    encoders: bool = True,
) -> None:
    """Emits the scaled float helpers used by one generated file's codecs."""
    routines = []
    for fmt in formats:
        if decoders:
            routines.append((_write_decoder, fmt))
        if encoders:
            routines.append((_write_encoder, fmt))

    with output.block(f'library {library_name}'):
        for i, (write, fmt) in enumerate(routines):
            if i:
                output.write_line()
            write(output, fmt, runtime)
