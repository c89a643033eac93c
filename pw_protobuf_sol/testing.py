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
"""Utilities for testing the Solidity generator without protoc."""

from google.protobuf import descriptor_pb2, text_format
from google.protobuf.compiler import plugin_pb2

from pw_protobuf_sol import codegen_sol, options, proto_tree, validation


def file_descriptor(text: str) -> descriptor_pb2.FileDescriptorProto:
    """Parses a FileDescriptorProto from its text format."""
    return text_format.Parse(text, descriptor_pb2.FileDescriptorProto())


def code_generator_request(
    *files: descriptor_pb2.FileDescriptorProto,
    parameter: str = '',
    generate: tuple[str, ...] | None = None,
) -> plugin_pb2.CodeGeneratorRequest:
    """Builds a request for the given files, in dependency order.

    Every file is generated unless the names to generate are given.
    """
    request = plugin_pb2.CodeGeneratorRequest(parameter=parameter)
    request.proto_file.extend(files)
    if generate is None:
        generate = tuple(proto_file.name for proto_file in files)
    request.file_to_generate.extend(generate)
    return request


def generate(
    *files: descriptor_pb2.FileDescriptorProto,
    generator_options: options.GeneratorOptions | None = None,
) -> str:
    """Validates and generates the last of the given files, returning its
    Solidity source."""
    generator_options = generator_options or options.GeneratorOptions()
    registry = proto_tree.build_registry(files)
    target = files[-1]
    validation.validate_file(target, generator_options)
    output = codegen_sol.generate_code_for_file(
        target,
        {proto_file.name: proto_file for proto_file in files},
        registry,
        generator_options,
    )
    return output.content()
