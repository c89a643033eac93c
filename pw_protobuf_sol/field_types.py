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
"""Maps proto field types onto Solidity storage types and codec routines."""

import dataclasses
import enum

from google.protobuf import descriptor_pb2

from pw_protobuf_sol.errors import CodegenError
from pw_protobuf_sol.fixed_point import DOUBLE, FLOAT, FixedPointFormat

RUNTIME_LIBRARY = 'ProtobufLib'

_Field = descriptor_pb2.FieldDescriptorProto


class WireType(enum.Enum):
    """Wire format categories, named as in the runtime library's enum."""

    VARINT = 'Varint'
    FIXED64 = 'Bits64'
    LENGTH_DELIMITED = 'LengthDelimited'
    FIXED32 = 'Bits32'

    def sol(self) -> str:
        """The Solidity expression for this wire type."""
        return f'{RUNTIME_LIBRARY}.WireType.{self.value}'


class Category(enum.Enum):
    """How the default value of a type is detected in Solidity."""

    NUMBER = 1
    BOOL = 2
    STRING = 3
    BYTES = 4
    ENUM = 5
    MESSAGE = 6


@dataclasses.dataclass(frozen=True)
class ScalarType:
    """The Solidity lowering of a single proto field type.

    Routine names are unqualified; fixed_point is set for types whose routines
    live in the per-file fixed-point helper library rather than the runtime
    library.
    """

    proto_name: str
    storage: str | None
    wire_type: WireType
    decode_routine: str
    encode_routine: str
    category: Category
    fixed_point: FixedPointFormat | None = None

    def is_packable(self) -> bool:
        """Numeric and enum types may be packed; length-delimited ones not."""
        return self.wire_type is not WireType.LENGTH_DELIMITED


def _number(
    proto_name: str,
    storage: str,
    wire_type: WireType,
    routine: str | None = None,
) -> ScalarType:
    routine = routine or proto_name
    return ScalarType(
        proto_name,
        storage,
        wire_type,
        f'decode_{routine}',
        f'encode_{routine}',
        Category.NUMBER,
    )


PROTO_SCALAR_TYPES: dict[int, ScalarType] = {
    _Field.TYPE_DOUBLE: ScalarType(
        'double',
        DOUBLE.storage,
        WireType.FIXED64,
        'decode_double_scaled',
        'encode_double_scaled',
        Category.NUMBER,
        DOUBLE,
    ),
    _Field.TYPE_FLOAT: ScalarType(
        'float',
        FLOAT.storage,
        WireType.FIXED32,
        'decode_float_scaled',
        'encode_float_scaled',
        Category.NUMBER,
        FLOAT,
    ),
    _Field.TYPE_INT32: _number('int32', 'int32', WireType.VARINT),
    _Field.TYPE_INT64: _number('int64', 'int64', WireType.VARINT),
    _Field.TYPE_UINT32: _number('uint32', 'uint32', WireType.VARINT),
    _Field.TYPE_UINT64: _number('uint64', 'uint64', WireType.VARINT),
    _Field.TYPE_SINT32: _number('sint32', 'int32', WireType.VARINT),
    _Field.TYPE_SINT64: _number('sint64', 'int64', WireType.VARINT),
    _Field.TYPE_FIXED32: _number('fixed32', 'uint32', WireType.FIXED32),
    _Field.TYPE_FIXED64: _number('fixed64', 'uint64', WireType.FIXED64),
    _Field.TYPE_SFIXED32: _number('sfixed32', 'int32', WireType.FIXED32),
    _Field.TYPE_SFIXED64: _number('sfixed64', 'int64', WireType.FIXED64),
    _Field.TYPE_BOOL: ScalarType(
        'bool',
        'bool',
        WireType.VARINT,
        'decode_bool',
        'encode_bool',
        Category.BOOL,
    ),
    _Field.TYPE_STRING: ScalarType(
        'string',
        'string',
        WireType.LENGTH_DELIMITED,
        'decode_string',
        'encode_string',
        Category.STRING,
    ),
    _Field.TYPE_BYTES: ScalarType(
        'bytes',
        'bytes',
        WireType.LENGTH_DELIMITED,
        'decode_bytes',
        'encode_bytes',
        Category.BYTES,
    ),
    # Enums and messages have no storage type of their own; their Solidity
    # type is the declaration the field refers to.
    _Field.TYPE_ENUM: ScalarType(
        'enum',
        None,
        WireType.VARINT,
        'decode_enum',
        'encode_enum',
        Category.ENUM,
    ),
    _Field.TYPE_MESSAGE: ScalarType(
        'message',
        None,
        WireType.LENGTH_DELIMITED,
        'decode_embedded_message',
        'encode_embedded_message',
        Category.MESSAGE,
    ),
}


def lookup(field_type: int) -> ScalarType:
    """Returns the lowering of a field type.

    Raises:
      CodegenError: The field type has no Solidity lowering, e.g. groups.
    """
    try:
        return PROTO_SCALAR_TYPES[field_type]
    except KeyError:
        raise CodegenError(
            f'unsupported field type {_type_name(field_type)}'
        ) from None


def _type_name(field_type: int) -> str:
    if field_type in _Field.Type.values():
        return _Field.Type.Name(field_type)
    return str(field_type)


def storage_type(field_type: int) -> str:
    """Returns the Solidity storage type of a scalar field type."""
    scalar = lookup(field_type)
    if scalar.storage is None:
        raise CodegenError(
            f'field type {_type_name(field_type)} has no scalar storage '
            'type'
        )
    return scalar.storage


def wire_type(field_type: int) -> WireType:
    return lookup(field_type).wire_type


def decode_op(field_type: int) -> str:
    return lookup(field_type).decode_routine


def encode_op(field_type: int) -> str:
    return lookup(field_type).encode_routine


def default_check(field_type: int, expr: str) -> str:
    """A Solidity expression which is true when expr holds the default value.

    Messages have no such expression, as their emptiness is only known once
    they have been encoded.
    """
    category = lookup(field_type).category
    if category is Category.NUMBER:
        return f'{expr} == 0'
    if category is Category.BOOL:
        return f'!{expr}'
    if category is Category.STRING:
        return f'bytes({expr}).length == 0'
    if category is Category.BYTES:
        return f'{expr}.length == 0'
    if category is Category.ENUM:
        return f'uint32({expr}) == 0'
    raise CodegenError('message fields have no default value expression')
