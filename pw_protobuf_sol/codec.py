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
"""Generates canonical Solidity codec libraries for proto messages.

Each message gets a library holding a decode() and an encode() routine, plus
one decode_<N>() and encode_<N>() helper per field number N. The encoding is
canonical: every message has exactly one accepted byte representation.

- Encoders write fields in ascending field number order and omit fields which
  hold their default value. Empty packed arrays are omitted entirely.
- Decoders reject fields out of ascending order, explicitly encoded default
  values, unknown field numbers, mismatched wire types, and trailing bytes.

Decoders never revert; every routine reports failure as a false success flag
returned with the buffer position. Solidity memory arrays cannot grow, so
repeated fields are decoded in two passes: one to count the elements and one,
after allocating the array, to decode them.

Generated code calls the following runtime library routines besides the
standard ProtobufLib decoders:

  encode_key(uint64 field_number, WireType wire_type, uint64 pos,
             bytes memory buf) returns (uint64)
  encode_<type>(uint64 pos, bytes memory buf, <type> value) returns (uint64)

Encoders write into a buffer allocated by the caller, which must leave room
for the length prefixes to grow. A length prefix starts as a single reserved
byte and is backpatched by the file's length prefix helper library.
"""

import abc
import logging

from google.protobuf import descriptor_pb2

from pw_protobuf_sol import field_types, keywords
from pw_protobuf_sol.errors import CodegenError
from pw_protobuf_sol.field_types import RUNTIME_LIBRARY, ScalarType, WireType
from pw_protobuf_sol.fixed_point import FixedPointFormat
from pw_protobuf_sol.length_prefix import BACKPATCH_ROUTINE
from pw_protobuf_sol.options import GeneratorOptions
from pw_protobuf_sol.output_file import OutputFile
from pw_protobuf_sol.proto_tree import (
    ProtoEnum,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    TypeRegistry,
    WrapperRegistry,
)

_LOG = logging.getLogger(__name__)

_Field = descriptor_pb2.FieldDescriptorProto

# Codec routines are internal library functions, inlined into their callers.
VISIBILITY = 'internal pure'

_KEY_DECODE = (
    f'(success, pos, field_number, wire_type) = '
    f'{RUNTIME_LIBRARY}.decode_key(pos, buf);'
)


class CodecContext:
    """State shared by the codecs of one generated file.

    Records which fixed-point formats the file's codecs use, and whether any
    encoder backpatches a length prefix, so that the helper libraries are
    only emitted with the routines they need.
    """

    def __init__(
        self,
        registry: TypeRegistry,
        wrappers: WrapperRegistry,
        options: GeneratorOptions,
        fixed_point_library: str,
        length_prefix_library: str,
    ):
        self.registry = registry
        self.wrappers = wrappers
        self.options = options
        self.fixed_point_library = fixed_point_library
        self.length_prefix_library = length_prefix_library
        self._formats: dict[str, FixedPointFormat] = {}
        self._uses_length_prefix = False

    def use_fixed_point(self, fmt: FixedPointFormat) -> str:
        """Notes that fmt is used; returns the helper library's name."""
        self._formats.setdefault(fmt.name, fmt)
        return self.fixed_point_library

    def fixed_point_formats(self) -> list[FixedPointFormat]:
        return list(self._formats.values())

    def use_length_prefix(self) -> str:
        """Notes that a length is backpatched; returns the helper's name."""
        self._uses_length_prefix = True
        return self.length_prefix_library

    def uses_length_prefix(self) -> bool:
        return self._uses_length_prefix


def member_names(message: ProtoMessage) -> dict[int, str]:
    """Sanitized, collision-free struct member names keyed by field number."""
    fields = message.fields()
    names = keywords.unique_names(field.name() for field in fields)
    return {field.number(): name for field, name in zip(fields, names)}


class MessageProperty(abc.ABC):
    """Base class for the Solidity lowering of one field of a message."""

    def __init__(
        self,
        ctx: CodecContext,
        message: ProtoMessage,
        field: ProtoMessageField,
        member: str,
    ):
        self._ctx = ctx
        self._message = message
        self._field = field
        self._member = member
        self._scalar: ScalarType = field_types.lookup(field.type())

    def name(self) -> str:
        """The struct member which holds the field."""
        return self._member

    def number(self) -> int:
        return self._field.number()

    def field(self) -> ProtoMessageField:
        return self._field

    def is_repeated(self) -> bool:
        return self._field.is_repeated()

    @abc.abstractmethod
    def element_type(self, scope_package: str | None = None) -> str:
        """Returns the Solidity type of one element of the field."""

    def struct_member_type(self, scope_package: str | None = None) -> str:
        """Returns the type of the struct member which holds the field."""
        element = self.element_type(scope_package)
        return f'{element}[]' if self.is_repeated() else element

    def wire_type(self) -> WireType:
        """The wire type under which the field's key appears."""
        return self._scalar.wire_type

    def referenced_node(self) -> ProtoNode | None:
        """The message or enum the field refers to, if it refers to one."""
        return None

    def _member_ref(self) -> str:
        return f'instance.{self._member}'

    def _message_type(self) -> str:
        return self._message.sol_type()

    def _comment(self, output: OutputFile) -> None:
        output.write_line(f'// {self._message.name()}.{self._member}')

    def _decoder_signature(self) -> str:
        return (
            f'function decode_{self.number()}(uint64 pos, bytes memory buf, '
            f'uint64 end, {self._message_type()} memory instance) '
            f'{VISIBILITY} returns (bool, uint64)'
        )

    def _encoder_signature(self) -> str:
        return (
            f'function encode_{self.number()}(uint64 pos, bytes memory buf, '
            f'{self._message_type()} memory instance) {VISIBILITY} '
            'returns (uint64)'
        )

    @staticmethod
    def _fail_if(output: OutputFile, condition: str) -> None:
        with output.block(f'if ({condition})'):
            output.write_line('return (false, pos);')

    def _write_key(self, output: OutputFile, wire_type: WireType) -> None:
        output.write_line(
            f'pos = {RUNTIME_LIBRARY}.encode_key({self.number()}, '
            f'{wire_type.sol()}, pos, buf);'
        )

    @staticmethod
    def _write_reserve_length(output: OutputFile) -> None:
        output.write_line('// Reserve a byte for the length, backpatched later')
        output.write_line('uint64 len_pos = pos;')
        output.write_line('pos += 1;')

    def _write_backpatch_length(self, output: OutputFile) -> None:
        library = self._ctx.use_length_prefix()
        output.write_line(
            f'pos = {library}.{BACKPATCH_ROUTINE}(len_pos, pos, buf);'
        )

    @abc.abstractmethod
    def write_decoder(self, output: OutputFile) -> None:
        """Writes the decode_<N> routine of the field."""

    @abc.abstractmethod
    def write_encoder(self, output: OutputFile) -> None:
        """Writes the encode_<N> routine of the field."""


class NumberProperty(MessageProperty):
    """Property which holds an integer, bool, or fixed-point value.

    Repeated number properties are always packed.
    """

    def element_type(self, scope_package: str | None = None) -> str:
        assert self._scalar.storage is not None
        return self._scalar.storage

    def wire_type(self) -> WireType:
        if self._field.is_packed():
            return WireType.LENGTH_DELIMITED
        return self._scalar.wire_type

    def _library(self) -> str:
        if self._scalar.fixed_point is not None:
            return self._ctx.use_fixed_point(self._scalar.fixed_point)
        return RUNTIME_LIBRARY

    def _wire_value_type(self) -> str:
        """Type of the value returned by the decode routine."""
        return self.element_type()

    def _decode_call(self) -> str:
        return f'{self._library()}.{self._scalar.decode_routine}(pos, buf)'

    def _encode_call(self, value: str) -> str:
        return (
            f'{self._library()}.{self._scalar.encode_routine}(pos, buf, '
            f'{value})'
        )

    def _to_storage(self, value: str) -> str:
        return value

    def _to_wire(self, value: str) -> str:
        return value

    def _is_default(self, value: str) -> str:
        return field_types.default_check(self._field.type(), value)

    def _is_default_wire(self, value: str) -> str:
        """Default check on a value as returned by the decode routine."""
        return self._is_default(value)

    def _write_value_checks(self, output: OutputFile, value: str) -> None:
        """Writes checks rejecting decoded values outside the field's type."""

    def write_decoder(self, output: OutputFile) -> None:
        if self._field.is_packed():
            self._write_packed_decoder(output)
        else:
            self._write_singular_decoder(output)

    def write_encoder(self, output: OutputFile) -> None:
        if self._field.is_packed():
            self._write_packed_encoder(output)
        else:
            self._write_singular_encoder(output)

    def _write_singular_decoder(self, output: OutputFile) -> None:
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line(f'{self._wire_value_type()} v;')
            output.write_line(f'(success, pos, v) = {self._decode_call()};')
            self._fail_if(output, '!success || pos > end')
            output.write_line()
            output.write_line('// Default value must be omitted')
            self._fail_if(output, self._is_default_wire('v'))
            self._write_value_checks(output, 'v')
            output.write_line()
            output.write_line(
                f'{self._member_ref()} = {self._to_storage("v")};'
            )
            output.write_line()
            output.write_line('return (true, pos);')

    def _write_packed_decoder(self, output: OutputFile) -> None:
        element = self.element_type()
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line('uint64 len;')
            output.write_line(
                f'(success, pos, len) = '
                f'{RUNTIME_LIBRARY}.decode_length_delimited(pos, buf);'
            )
            self._fail_if(output, '!success || pos > end || len > end - pos')
            output.write_line()

            if not self._ctx.options.allow_empty_packed_arrays:
                output.write_line('// Empty packed array must be omitted')
                self._fail_if(output, 'len == 0')
                output.write_line()

            output.write_line('uint64 initial_pos = pos;')
            output.write_line('uint64 block_end = pos + len;')
            output.write_line()
            output.write_line('// Do one pass to count the number of elements')
            output.write_line('uint64 cnt = 0;')
            with output.block('while (pos < block_end)'):
                output.write_line(f'{self._wire_value_type()} v;')
                output.write_line(f'(success, pos, v) = {self._decode_call()};')
                self._fail_if(output, '!success || pos > block_end')
                output.write_line('cnt += 1;')
            output.write_line()
            output.write_line('// Allocated memory')
            output.write_line(f'{self._member_ref()} = new {element}[](cnt);')
            output.write_line()
            output.write_line('// Now actually parse the elements')
            output.write_line('pos = initial_pos;')
            with output.block('for (uint64 i = 0; i < cnt; i++)'):
                output.write_line(f'{self._wire_value_type()} v;')
                output.write_line(f'(success, pos, v) = {self._decode_call()};')
                self._fail_if(output, '!success')
                self._write_value_checks(output, 'v')
                output.write_line()
                output.write_line(
                    f'{self._member_ref()}[i] = {self._to_storage("v")};'
                )
            output.write_line()
            output.write_line('return (true, pos);')

    def _write_singular_encoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._encoder_signature()):
            output.write_line('// Default value must be omitted')
            with output.block(f'if ({self._is_default(member)})'):
                output.write_line('return pos;')
            output.write_line()
            self._write_key(output, self._scalar.wire_type)
            output.write_line(
                f'pos = {self._encode_call(self._to_wire(member))};'
            )
            output.write_line()
            output.write_line('return pos;')

    def _write_packed_encoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._encoder_signature()):
            output.write_line('// Empty packed array must be omitted')
            with output.block(f'if ({member}.length == 0)'):
                output.write_line('return pos;')
            output.write_line()
            self._write_key(output, WireType.LENGTH_DELIMITED)
            output.write_line()
            self._write_reserve_length(output)
            output.write_line()
            with output.block(
                f'for (uint256 i = 0; i < {member}.length; i++)'
            ):
                output.write_line(
                    f'pos = {self._encode_call(self._to_wire(f"{member}[i]"))};'
                )
            output.write_line()
            self._write_backpatch_length(output)
            output.write_line()
            output.write_line('return pos;')


class EnumProperty(NumberProperty):
    """Property which holds an enum value.

    Enums travel as int32 varints. Decoders reject values which are not
    members of the enum; encoders trust the instance to be valid.
    """

    def __init__(
        self,
        ctx: CodecContext,
        message: ProtoMessage,
        field: ProtoMessageField,
        member: str,
    ):
        super().__init__(ctx, message, field, member)
        node = ctx.registry.resolve(field.type_name())
        if not isinstance(node, ProtoEnum):
            raise CodegenError(
                f'{field.type_name()} is not an enum',
                message.proto_path(),
                field.name(),
            )
        self._enum: ProtoEnum = node

    def referenced_node(self) -> ProtoNode:
        return self._enum

    def element_type(self, scope_package: str | None = None) -> str:
        return self._enum.sol_type(scope_package)

    def _wire_value_type(self) -> str:
        return 'int32'

    def _is_default_wire(self, value: str) -> str:
        return f'{value} == 0'

    def _to_storage(self, value: str) -> str:
        return f'{self.element_type()}(uint32({value}))'

    def _to_wire(self, value: str) -> str:
        return f'int32(uint32({value}))'

    def _write_value_checks(self, output: OutputFile, value: str) -> None:
        output.write_line()
        output.write_line('// Value must be a member of the enum')
        self._fail_if(
            output, f'{value} < 0 || {value} > {self._enum.max_value()}'
        )
        gaps = self._enum.gaps()
        if gaps:
            self._fail_if(
                output, ' || '.join(f'{value} == {gap}' for gap in gaps)
            )


class StringProperty(MessageProperty):
    """Property which holds a singular string.

    Repeated strings are lowered to a list of wrapper messages.
    """

    def element_type(self, scope_package: str | None = None) -> str:
        return 'string'

    def write_decoder(self, output: OutputFile) -> None:
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line('string memory v;')
            output.write_line(
                f'(success, pos, v) = '
                f'{RUNTIME_LIBRARY}.decode_string(pos, buf);'
            )
            self._fail_if(output, '!success || pos > end')
            output.write_line()
            output.write_line('// Default value must be omitted')
            self._fail_if(output, 'bytes(v).length == 0')
            output.write_line()
            output.write_line(f'{self._member_ref()} = v;')
            output.write_line()
            output.write_line('return (true, pos);')

    def write_encoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._encoder_signature()):
            output.write_line('// Default value must be omitted')
            with output.block(f'if (bytes({member}).length == 0)'):
                output.write_line('return pos;')
            output.write_line()
            self._write_key(output, WireType.LENGTH_DELIMITED)
            output.write_line(
                f'pos = {RUNTIME_LIBRARY}.encode_string(pos, buf, {member});'
            )
            output.write_line()
            output.write_line('return pos;')


class BytesProperty(MessageProperty):
    """Property which holds a singular bytes value.

    Repeated bytes are lowered to a list of wrapper messages.
    """

    def element_type(self, scope_package: str | None = None) -> str:
        return 'bytes'

    def write_decoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line('uint64 len;')
            output.write_line(
                f'(success, pos, len) = '
                f'{RUNTIME_LIBRARY}.decode_bytes(pos, buf);'
            )
            self._fail_if(output, '!success || pos > end || len > end - pos')
            output.write_line()
            output.write_line('// Default value must be omitted')
            self._fail_if(output, 'len == 0')
            output.write_line()
            output.write_line(f'{member} = new bytes(len);')
            with output.block('for (uint64 i = 0; i < len; i++)'):
                output.write_line(f'{member}[i] = buf[pos + i];')
            output.write_line()
            output.write_line('pos = pos + len;')
            output.write_line()
            output.write_line('return (true, pos);')

    def write_encoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._encoder_signature()):
            output.write_line('// Default value must be omitted')
            with output.block(f'if ({member}.length == 0)'):
                output.write_line('return pos;')
            output.write_line()
            self._write_key(output, WireType.LENGTH_DELIMITED)
            output.write_line(
                f'pos = {RUNTIME_LIBRARY}.encode_bytes(pos, buf, {member});'
            )
            output.write_line()
            output.write_line('return pos;')


class SubMessageProperty(MessageProperty):
    """Property which holds an embedded message, or an array of them.

    Map fields and repeated string or bytes fields are also lowered to this
    property, as arrays of their wrapper message.
    """

    def __init__(
        self,
        ctx: CodecContext,
        message: ProtoMessage,
        field: ProtoMessageField,
        member: str,
        wrapper: ProtoMessage | None = None,
    ):
        super().__init__(ctx, message, field, member)
        self._scalar = field_types.lookup(_Field.TYPE_MESSAGE)

        if wrapper is not None:
            self._type_node: ProtoMessage = wrapper
            return

        node = ctx.registry.resolve(field.type_name())
        if not isinstance(node, ProtoMessage):
            raise CodegenError(
                f'{field.type_name()} is not a message',
                message.proto_path(),
                field.name(),
            )
        self._type_node = node

    def referenced_node(self) -> ProtoMessage:
        return self._type_node

    def element_type(self, scope_package: str | None = None) -> str:
        return self._type_node.sol_type(scope_package)

    def _codec(self) -> str:
        return self._type_node.codec_name()

    def write_decoder(self, output: OutputFile) -> None:
        if self.is_repeated():
            self._write_repeated_decoder(output)
        else:
            self._write_singular_decoder(output)

    def write_encoder(self, output: OutputFile) -> None:
        if self.is_repeated():
            self._write_repeated_encoder(output)
        else:
            self._write_singular_encoder(output)

    def _write_decode_embedded(self, output: OutputFile) -> None:
        output.write_line(
            f'(success, pos, len) = '
            f'{RUNTIME_LIBRARY}.decode_embedded_message(pos, buf);'
        )

    def _write_singular_decoder(self, output: OutputFile) -> None:
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line('uint64 len;')
            self._write_decode_embedded(output)
            self._fail_if(output, '!success || pos > end || len > end - pos')
            output.write_line()
            output.write_line('// Default value must be omitted')
            self._fail_if(output, 'len == 0')
            output.write_line()
            output.write_line(f'{self.element_type()} memory nested;')
            output.write_line(
                f'(success, pos, nested) = {self._codec()}.decode(pos, buf, '
                'len);'
            )
            self._fail_if(output, '!success')
            output.write_line()
            output.write_line(f'{self._member_ref()} = nested;')
            output.write_line()
            output.write_line('return (true, pos);')

    def _write_repeated_decoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        wire_type = WireType.LENGTH_DELIMITED.sol()
        self._comment(output)
        with output.block(self._decoder_signature()):
            output.write_line('bool success;')
            output.write_line('uint64 initial_pos = pos;')
            output.write_line()
            output.write_line('// Do one pass to count the number of elements')
            output.write_line('uint64 cnt = 0;')
            with output.block('while (true)'):
                output.write_line('uint64 len;')
                self._write_decode_embedded(output)
                self._fail_if(
                    output, '!success || pos > end || len > end - pos'
                )
                output.write_line('pos += len;')
                output.write_line('cnt += 1;')
                output.write_line()
                with output.block('if (pos == end)'):
                    output.write_line('break;')
                output.write_line()
                output.write_line(
                    '// Peek the next key; another field ends the array'
                )
                output.write_line('uint64 field_number;')
                output.write_line(f'{RUNTIME_LIBRARY}.WireType wire_type;')
                output.write_line(_KEY_DECODE)
                self._fail_if(output, '!success')
                with output.block(f'if (field_number != {self.number()})'):
                    output.write_line('break;')
                self._fail_if(output, f'wire_type != {wire_type}')
            output.write_line()
            output.write_line('// Allocated memory')
            output.write_line(f'{member} = new {self.element_type()}[](cnt);')
            output.write_line()
            output.write_line(
                '// Now actually parse the elements, rewinding the look-ahead'
            )
            output.write_line('pos = initial_pos;')
            with output.block('for (uint64 i = 0; i < cnt; i++)'):
                output.write_line('uint64 len;')
                self._write_decode_embedded(output)
                self._fail_if(output, '!success')
                output.write_line()
                output.write_line(f'{self.element_type()} memory nested;')
                output.write_line(
                    f'(success, pos, nested) = {self._codec()}.decode(pos, '
                    'buf, len);'
                )
                self._fail_if(output, '!success')
                output.write_line()
                output.write_line(f'{member}[i] = nested;')
                output.write_line()
                output.write_line('// Skip over the key of the next element')
                with output.block('if (i < cnt - 1)'):
                    output.write_line('uint64 field_number;')
                    output.write_line(f'{RUNTIME_LIBRARY}.WireType wire_type;')
                    output.write_line(_KEY_DECODE)
                    self._fail_if(output, '!success')
            output.write_line()
            output.write_line('return (true, pos);')

    def _write_singular_encoder(self, output: OutputFile) -> None:
        self._comment(output)
        with output.block(self._encoder_signature()):
            output.write_line('uint64 key_pos = pos;')
            self._write_key(output, WireType.LENGTH_DELIMITED)
            output.write_line()
            self._write_reserve_length(output)
            output.write_line(
                f'pos = {self._codec()}.encode(pos, buf, {self._member_ref()});'
            )
            output.write_line()
            output.write_line('// Default value must be omitted')
            with output.block('if (pos == len_pos + 1)'):
                output.write_line('return key_pos;')
            output.write_line()
            self._write_backpatch_length(output)
            output.write_line()
            output.write_line('return pos;')

    def _write_repeated_encoder(self, output: OutputFile) -> None:
        member = self._member_ref()
        self._comment(output)
        with output.block(self._encoder_signature()):
            with output.block(
                f'for (uint256 i = 0; i < {member}.length; i++)'
            ):
                self._write_key(output, WireType.LENGTH_DELIMITED)
                output.write_line()
                self._write_reserve_length(output)
                output.write_line(
                    f'pos = {self._codec()}.encode(pos, buf, {member}[i]);'
                )
                self._write_backpatch_length(output)
            output.write_line()
            output.write_line('return pos;')


PROTO_FIELD_PROPERTIES: dict[int, type[MessageProperty]] = {
    _Field.TYPE_DOUBLE: NumberProperty,
    _Field.TYPE_FLOAT: NumberProperty,
    _Field.TYPE_INT32: NumberProperty,
    _Field.TYPE_SINT32: NumberProperty,
    _Field.TYPE_SFIXED32: NumberProperty,
    _Field.TYPE_INT64: NumberProperty,
    _Field.TYPE_SINT64: NumberProperty,
    _Field.TYPE_SFIXED64: NumberProperty,
    _Field.TYPE_UINT32: NumberProperty,
    _Field.TYPE_FIXED32: NumberProperty,
    _Field.TYPE_UINT64: NumberProperty,
    _Field.TYPE_FIXED64: NumberProperty,
    _Field.TYPE_BOOL: NumberProperty,
    _Field.TYPE_BYTES: BytesProperty,
    _Field.TYPE_STRING: StringProperty,
    _Field.TYPE_MESSAGE: SubMessageProperty,
    _Field.TYPE_ENUM: EnumProperty,
}


def field_property(
    ctx: CodecContext,
    message: ProtoMessage,
    field: ProtoMessageField,
    member: str,
) -> MessageProperty:
    """Returns the lowering of a field, rerouting it through a wrapper if the
    field needs one."""
    try:
        wrapper = ctx.wrappers.wrapper_for(field)
        if wrapper is not None:
            return SubMessageProperty(ctx, message, field, member, wrapper)

        property_class = PROTO_FIELD_PROPERTIES.get(field.type())
        if property_class is None:
            field_types.lookup(field.type())
            raise CodegenError(f'unsupported field type {field.type()}')
        return property_class(ctx, message, field, member)
    except CodegenError as err:
        raise err.with_context(message.proto_path(), field.name()) from err


def message_properties(
    ctx: CodecContext, message: ProtoMessage
) -> list[MessageProperty]:
    """Properties of a message's fields, in declaration order."""
    names = member_names(message)
    return [
        field_property(ctx, message, field, names[field.number()])
        for field in message.fields()
    ]


def _write_decode(
    output: OutputFile,
    ctx: CodecContext,
    message: ProtoMessage,
    properties: list[MessageProperty],
) -> None:
    sol_type = message.sol_type()
    max_field_number = max((p.number() for p in properties), default=0)
    monotonic = not ctx.options.allow_non_monotonic_fields

    def fail() -> None:
        output.write_line('return (false, pos, instance);')

    with output.block(
        'function decode(uint64 initial_pos, bytes memory buf, uint64 len) '
        f'{VISIBILITY} returns (bool, uint64, {sol_type} memory)'
    ):
        output.write_line('// Message instance')
        output.write_line(f'{sol_type} memory instance;')
        if monotonic:
            output.write_line('// Previous field number')
            output.write_line('uint64 previous_field_number = 0;')
        output.write_line('// Current position in the buffer')
        output.write_line('uint64 pos = initial_pos;')
        output.write_line()
        output.write_line('// Sanity checks')
        with output.block(
            'if (len > buf.length || initial_pos > buf.length - len)'
        ):
            fail()
        output.write_line('uint64 end = initial_pos + len;')
        output.write_line()
        with output.block('while (pos < end)'):
            output.write_line('// Decode the key (field number and wire type)')
            output.write_line('bool success;')
            output.write_line('uint64 field_number;')
            output.write_line(f'{RUNTIME_LIBRARY}.WireType wire_type;')
            output.write_line(_KEY_DECODE)
            with output.block('if (!success)'):
                fail()
            output.write_line()
            output.write_line('// Check that the field number is within bounds')
            with output.block(f'if (field_number > {max_field_number})'):
                fail()
            output.write_line()
            if monotonic:
                output.write_line(
                    '// Check that the field number is monotonically increasing'
                )
                with output.block('if (field_number <= previous_field_number)'):
                    fail()
                output.write_line()
            output.write_line('// Check that the wire type is correct')
            output.write_line('success = check_key(field_number, wire_type);')
            with output.block('if (!success)'):
                fail()
            output.write_line()
            output.write_line('// Actually decode the field')
            output.write_line(
                '(success, pos) = decode_field(pos, buf, end, field_number, '
                'instance);'
            )
            with output.block('if (!success)'):
                fail()
            if monotonic:
                output.write_line()
                output.write_line('previous_field_number = field_number;')
        output.write_line()
        output.write_line('// Decoding must have consumed len bytes')
        with output.block('if (pos != end)'):
            fail()
        output.write_line()
        output.write_line('return (true, pos, instance);')


def _write_check_key(
    output: OutputFile, properties: list[MessageProperty]
) -> None:
    with output.block(
        'function check_key(uint64 field_number, '
        f'{RUNTIME_LIBRARY}.WireType wire_type) {VISIBILITY} returns (bool)'
    ):
        for prop in properties:
            with output.block(f'if (field_number == {prop.number()})'):
                output.write_line(
                    f'return wire_type == {prop.wire_type().sol()};'
                )
            output.write_line()
        output.write_line('return false;')


def _write_decode_field(
    output: OutputFile,
    message: ProtoMessage,
    properties: list[MessageProperty],
) -> None:
    with output.block(
        'function decode_field(uint64 pos, bytes memory buf, uint64 end, '
        f'uint64 field_number, {message.sol_type()} memory instance) '
        f'{VISIBILITY} returns (bool, uint64)'
    ):
        for prop in properties:
            with output.block(f'if (field_number == {prop.number()})'):
                output.write_line(
                    f'return decode_{prop.number()}(pos, buf, end, instance);'
                )
            output.write_line()
        output.write_line('return (false, pos);')


def _write_encode(
    output: OutputFile,
    message: ProtoMessage,
    properties: list[MessageProperty],
) -> None:
    with output.block(
        'function encode(uint64 pos, bytes memory buf, '
        f'{message.sol_type()} memory instance) {VISIBILITY} returns (uint64)'
    ):
        for prop in properties:
            output.write_line(
                f'pos = encode_{prop.number()}(pos, buf, instance);'
            )
        if properties:
            output.write_line()
        output.write_line('return pos;')


def write_codec_library(
    output: OutputFile,
    ctx: CodecContext,
    message: ProtoMessage,
    properties: list[MessageProperty],
) -> None:
    """Writes the codec library of a message.

    Field routines are written, and encoded, in ascending field number order.
    """
    properties = sorted(properties, key=lambda p: p.number())
    generate = ctx.options.generate

    sections = []
    if generate.decoders():
        sections.append(lambda: _write_decode(output, ctx, message, properties))
        sections.append(lambda: _write_check_key(output, properties))
        sections.append(
            lambda: _write_decode_field(output, message, properties)
        )
        sections.extend(
            (lambda prop=prop: prop.write_decoder(output))
            for prop in properties
        )
    if generate.encoders():
        sections.append(lambda: _write_encode(output, message, properties))
        sections.extend(
            (lambda prop=prop: prop.write_encoder(output))
            for prop in properties
        )

    with output.block(f'library {message.codec_name()}'):
        for i, write_section in enumerate(sections):
            if i:
                output.write_line()
            write_section()

    _LOG.debug('Generated codec %s', message.codec_name())
