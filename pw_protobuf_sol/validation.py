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
"""Checks that schemas can be lowered to canonical Solidity codecs."""

import logging

from google.protobuf import descriptor_pb2

from pw_protobuf_sol import field_types
from pw_protobuf_sol.errors import CodegenError
from pw_protobuf_sol.options import GeneratorOptions

_LOG = logging.getLogger(__name__)

_Field = descriptor_pb2.FieldDescriptorProto

SUPPORTED_SYNTAX = 'proto3'

# Solidity enums may have at most 256 members.
MAX_ENUM_MEMBERS = 256


def _qualify(scope: str, name: str) -> str:
    return f'{scope}.{name}' if scope else name


def check_syntax(proto_file: descriptor_pb2.FileDescriptorProto) -> None:
    """Only proto3 files are accepted."""
    if not proto_file.syntax:
        raise CodegenError(
            f'{proto_file.name} does not declare a syntax; only '
            f'{SUPPORTED_SYNTAX} is supported',
            proto_file.name,
        )

    if proto_file.syntax != SUPPORTED_SYNTAX:
        raise CodegenError(
            f'{proto_file.name} declares syntax {proto_file.syntax}; only '
            f'{SUPPORTED_SYNTAX} is supported',
            proto_file.name,
        )


def check_enum(
    proto_enum: descriptor_pb2.EnumDescriptorProto,
    path: str,
    strict: bool,
) -> None:
    """Enum values must be representable as Solidity enum members.

    In strict mode values must also start at 0 and increase by exactly 1.
    """
    if not proto_enum.value:
        raise CodegenError(f'enum {path} has no values', path)

    seen: dict[int, str] = {}
    for value in proto_enum.value:
        if value.number < 0:
            raise CodegenError(
                f'enum {path} value {value.name} = {value.number} is negative',
                path,
            )

        if value.number in seen:
            raise CodegenError(
                f'enum {path} value {value.name} = {value.number} aliases '
                f'{seen[value.number]}',
                path,
            )
        seen[value.number] = value.name

    if strict:
        for expected, value in enumerate(proto_enum.value):
            if value.number != expected:
                raise CodegenError(
                    f'enum {path} value {value.name} = {value.number} must be '
                    f'{expected}; enum values must start at 0 and increment '
                    'by 1',
                    path,
                )

    if max(seen) >= MAX_ENUM_MEMBERS:
        raise CodegenError(
            f'enum {path} value {seen[max(seen)]} = {max(seen)} exceeds the '
            f'Solidity limit of {MAX_ENUM_MEMBERS} members',
            path,
        )


def check_field_numbers(
    message: descriptor_pb2.DescriptorProto,
    path: str,
    strict: bool,
) -> None:
    """Field numbers are positive; in strict mode they are exactly 1..N.

    The numbers are checked in sorted order, since a message may declare its
    fields out of numeric order.
    """
    for field in message.field:
        if field.number <= 0:
            raise CodegenError(
                f'field number {field.number} must be positive',
                path,
                field.name,
            )

    if not strict:
        return

    for expected, field in enumerate(
        sorted(message.field, key=lambda f: f.number), start=1
    ):
        if field.number != expected:
            raise CodegenError(
                f'field number {field.number} must be {expected}; field '
                'numbers must start at 1 and increment by 1',
                path,
                field.name,
            )


def check_not_empty(
    message: descriptor_pb2.DescriptorProto,
    path: str,
    allow_empty_messages: bool,
) -> None:
    """Messages without fields are only accepted if nothing is nested in them.

    A message with no fields and no nested declarations is a legitimately
    empty message, unless empty messages have been disallowed.
    """
    if message.field:
        return

    if message.nested_type or message.enum_type:
        raise CodegenError(
            f'message {path} declares nested types but no fields', path
        )

    if not allow_empty_messages:
        raise CodegenError(f'message {path} has no fields', path)


def check_field(
    field: descriptor_pb2.FieldDescriptorProto,
    path: str,
) -> None:
    """Checks the type, repetition, and packing of a single field."""
    try:
        scalar = field_types.lookup(field.type)
    except CodegenError as err:
        raise err.with_context(path, field.name) from err

    if field.HasField('oneof_index') and not field.proto3_optional:
        raise CodegenError('oneof fields are not supported', path, field.name)

    repeated = field.label == _Field.LABEL_REPEATED
    if field.options.packed and not (repeated and scalar.is_packable()):
        raise CodegenError(
            'only repeated numeric and enum fields may be packed',
            path,
            field.name,
        )

    if repeated and scalar.is_packable() and not field.options.packed:
        raise CodegenError(
            'repeated numeric and enum fields must be declared with '
            '[packed = true]',
            path,
            field.name,
        )


def _check_message(
    message: descriptor_pb2.DescriptorProto,
    path: str,
    options: GeneratorOptions,
) -> None:
    # Map entries are generated by protoc and lowered to wrappers.
    if message.options.map_entry:
        return

    for proto_enum in message.enum_type:
        check_enum(
            proto_enum,
            _qualify(path, proto_enum.name),
            options.strict_enum_validation,
        )

    for nested in message.nested_type:
        _check_message(nested, _qualify(path, nested.name), options)

    check_not_empty(message, path, options.allow_empty_messages)
    check_field_numbers(message, path, options.strict_field_numbers)
    for field in message.field:
        check_field(field, path)


def validate_file(
    proto_file: descriptor_pb2.FileDescriptorProto,
    options: GeneratorOptions,
) -> None:
    """Checks every declaration of a file, raising on the first violation.

    Raises:
      CodegenError: The file cannot be lowered to Solidity.
    """
    check_syntax(proto_file)

    for proto_enum in proto_file.enum_type:
        check_enum(
            proto_enum,
            _qualify(proto_file.package, proto_enum.name),
            options.strict_enum_validation,
        )

    for message in proto_file.message_type:
        _check_message(
            message, _qualify(proto_file.package, message.name), options
        )

    _LOG.debug('Validated %s', proto_file.name)
