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
"""This module generates Solidity code for a proto3 file.

The generated file holds, in order:

- a header naming the generator version and the license
- the compiler pragmas
- imports of the runtime library and of the files defining referenced types
- a library named after the package, holding the structs and enums of the file
  and the wrappers synthesized for its map and repeated string or bytes fields
- one codec library per struct, outside of the package library
- a helper library for fixed-point float fields, if the file has any
- a helper library backpatching length prefixes, if any encoder writes one
"""

import logging
import posixpath

from google.protobuf import descriptor_pb2

from pw_protobuf_sol import PLUGIN_NAME, PLUGIN_VERSION, imports, keywords
from pw_protobuf_sol.codec import (
    CodecContext,
    MessageProperty,
    message_properties,
    write_codec_library,
)
from pw_protobuf_sol.field_types import RUNTIME_LIBRARY
from pw_protobuf_sol.fixed_point import write_fixed_point_library
from pw_protobuf_sol.length_prefix import write_length_prefix_library
from pw_protobuf_sol.options import GeneratorOptions
from pw_protobuf_sol.output_file import OutputFile
from pw_protobuf_sol.proto_tree import (
    ProtoEnum,
    ProtoMessage,
    TypeRegistry,
    WrapperRegistry,
    library_name,
)

_LOG = logging.getLogger(__name__)

SOLIDITY_PRAGMA = 'pragma solidity >=0.6.0 <8.0.0;'
ABI_ENCODER_PRAGMA = 'pragma experimental ABIEncoderV2;'

PLACEHOLDER_MEMBER = '_placeholder'


def _helper_library_name(
    proto_file: descriptor_pb2.FileDescriptorProto, suffix: str
) -> str:
    output_name = posixpath.basename(imports.output_path(proto_file))
    stem = posixpath.splitext(output_name)[0]
    library = library_name(proto_file.package)
    prefix = f'{library}_' if library else ''
    return f'{prefix}{keywords.upper_camel_case(stem)}{suffix}'


def fixed_point_library_name(
    proto_file: descriptor_pb2.FileDescriptorProto,
) -> str:
    """Name of the helper library for a file's fixed-point float fields."""
    return _helper_library_name(proto_file, 'FixedPoint')


def length_prefix_library_name(
    proto_file: descriptor_pb2.FileDescriptorProto,
) -> str:
    """Name of the helper library which backpatches a file's lengths."""
    return _helper_library_name(proto_file, 'LengthPrefix')


def generate_enum(proto_enum: ProtoEnum, output: OutputFile) -> None:
    """Creates a Solidity enum for a proto enum."""
    members = proto_enum.members()
    with output.block(f'enum {proto_enum.name()}'):
        for i, member in enumerate(members):
            separator = ',' if i < len(members) - 1 else ''
            output.write_line(f'{member}{separator}')


def generate_struct(
    message: ProtoMessage,
    properties: list[MessageProperty],
    output: OutputFile,
) -> None:
    """Creates a Solidity struct for a message, members in field order."""
    with output.block(f'struct {message.name()}'):
        if not properties:
            output.write_line('// Solidity does not allow empty structs')
            output.write_line(f'bool {PLACEHOLDER_MEMBER};')

        for prop in properties:
            output.write_line(
                f'{prop.struct_member_type(message.package())} {prop.name()};'
            )


def _write_header(
    output: OutputFile,
    options: GeneratorOptions,
    import_paths: list[str],
) -> None:
    output.write_line(
        f'// File automatically generated by {PLUGIN_NAME} v{PLUGIN_VERSION}'
    )
    output.write_line(f'// SPDX-License-Identifier: {options.license}')
    output.write_line(SOLIDITY_PRAGMA)
    output.write_line(ABI_ENCODER_PRAGMA)
    output.write_line()

    for path in import_paths:
        output.write_line(f'import "{path}";')


def _write_declarations(
    output: OutputFile,
    enums: list[ProtoEnum],
    structs: list[tuple[ProtoMessage, list[MessageProperty]]],
    wrappers: list[tuple[ProtoMessage, list[MessageProperty]]],
) -> None:
    first = True

    def separate() -> None:
        nonlocal first
        if not first:
            output.write_line()
        first = False

    for proto_enum in enums:
        separate()
        generate_enum(proto_enum, output)

    for message, properties in structs:
        separate()
        generate_struct(message, properties, output)

    if wrappers:
        separate()
        output.write_line(
            '// Wrappers for map fields and repeated string or bytes fields'
        )
        first = True
        for message, properties in wrappers:
            separate()
            generate_struct(message, properties, output)


def generate_code_for_file(
    proto_file: descriptor_pb2.FileDescriptorProto,
    proto_files: dict[str, descriptor_pb2.FileDescriptorProto],
    registry: TypeRegistry,
    options: GeneratorOptions,
) -> OutputFile:
    """Generates the Solidity file for one validated .proto file.

    Raises:
      CodegenError: A field cannot be lowered to Solidity.
    """
    return generate_code_for_unit([proto_file], proto_files, registry, options)


def generate_code_for_unit(
    unit_files: list[descriptor_pb2.FileDescriptorProto],
    proto_files: dict[str, descriptor_pb2.FileDescriptorProto],
    registry: TypeRegistry,
    options: GeneratorOptions,
) -> OutputFile:
    """Generates one Solidity file from validated .proto files.

    Every file of the unit has the same output path, and so the same
    package. All of the wrapper messages and helper library bookkeeping of
    the unit lives in state created here, so units may be generated
    independently.

    Raises:
      CodegenError: A field cannot be lowered to Solidity.
    """
    proto_file = unit_files[0]
    package = proto_file.package
    output = OutputFile(imports.output_path(proto_file))
    wrappers = WrapperRegistry(registry, package, proto_file.name)
    ctx = CodecContext(
        registry,
        wrappers,
        options,
        fixed_point_library_name(proto_file),
        length_prefix_library_name(proto_file),
    )

    enums = [
        proto_enum
        for unit_file in unit_files
        for proto_enum in registry.enums(unit_file.name)
    ]
    structs = [
        (message, message_properties(ctx, message))
        for unit_file in unit_files
        for message in registry.messages(unit_file.name)
    ]
    # Lowering the fields above synthesized every wrapper the file needs.
    wrapper_structs = [
        (wrapper, message_properties(ctx, wrapper))
        for wrapper in wrappers.wrappers()
    ]
    all_structs = structs + wrapper_structs

    _write_header(
        output,
        options,
        imports.import_paths(
            proto_file,
            proto_files,
            registry,
            [message for message, _ in all_structs],
            options.protobuf_lib_import,
        ),
    )

    library = library_name(package)
    if enums or all_structs:
        output.write_line()
        if library:
            with output.block(f'library {library}'):
                _write_declarations(output, enums, structs, wrapper_structs)
        else:
            _write_declarations(output, enums, structs, wrapper_structs)

    for message, properties in all_structs:
        output.write_line()
        write_codec_library(output, ctx, message, properties)

    formats = ctx.fixed_point_formats()
    if formats:
        output.write_line()
        write_fixed_point_library(
            output,
            ctx.fixed_point_library,
            formats,
            RUNTIME_LIBRARY,
            decoders=options.generate.decoders(),
            encoders=options.generate.encoders(),
        )

    if ctx.uses_length_prefix():
        output.write_line()
        write_length_prefix_library(output, ctx.length_prefix_library)

    _LOG.info(
        'Generated %s from %s: %d enums, %d structs, %d wrappers',
        output.name(),
        ', '.join(unit_file.name for unit_file in unit_files),
        len(enums),
        len(structs),
        len(wrapper_structs),
    )
    return output
