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
"""protoc-gen-sol compiler plugin.

This file implements a protobuf compiler plugin which generates Solidity
structs, enums, and canonical codec libraries for proto3 messages.
"""

import logging
import os
import sys

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from pw_protobuf_sol import (
    PLUGIN_NAME,
    codegen_sol,
    imports,
    options,
    proto_tree,
    validation,
)
from pw_protobuf_sol.errors import CodegenError

_LOG = logging.getLogger(__name__)

LOG_LEVEL_ENV_VAR = 'PW_PROTOBUF_SOL_LOG_LEVEL'


def _well_known_units(
    targets: list[descriptor_pb2.FileDescriptorProto],
    proto_files: dict[str, descriptor_pb2.FileDescriptorProto],
    registry: proto_tree.TypeRegistry,
) -> list[list[descriptor_pb2.FileDescriptorProto]]:
    """Groups the well-known files the targets need by output path."""
    units: dict[str, list[descriptor_pb2.FileDescriptorProto]] = {}
    for name in imports.well_known_dependencies(
        registry, (proto_file.name for proto_file in targets)
    ):
        proto_file = proto_files[name]
        units.setdefault(imports.output_path(proto_file), []).append(
            proto_file
        )

    return [units[path] for path in sorted(units)]


def _generate(
    req: plugin_pb2.CodeGeneratorRequest,
    res: plugin_pb2.CodeGeneratorResponse,
) -> None:
    generator_options = options.parse_parameter_options(req.parameter)

    proto_files = {proto_file.name: proto_file for proto_file in req.proto_file}
    registry = proto_tree.build_registry(req.proto_file)

    targets = []
    for name in req.file_to_generate:
        if imports.is_well_known(name):
            _LOG.info('Skipping %s', name)
            continue
        targets.append(proto_files[name])

    units = [[proto_file] for proto_file in targets]
    for unit in _well_known_units(targets, proto_files, registry):
        _LOG.info(
            'Generating referenced well-known files %s',
            ', '.join(proto_file.name for proto_file in unit),
        )
        units.append(unit)

    # Every file is validated before any code is generated.
    for unit in units:
        for proto_file in unit:
            validation.validate_file(proto_file, generator_options)

    outputs = [
        codegen_sol.generate_code_for_unit(
            unit, proto_files, registry, generator_options
        )
        for unit in units
    ]

    for output_file in outputs:
        fd = res.file.add()
        fd.name = output_file.name()
        fd.content = output_file.content()


def process_proto_request(
    req: plugin_pb2.CodeGeneratorRequest, res: plugin_pb2.CodeGeneratorResponse
) -> bool:
    """Handles a protoc CodeGeneratorRequest message.

    Generates code for the files in the request and writes the output to the
    specified CodeGeneratorResponse message. If any file cannot be generated,
    the response holds the error instead of any files.

    Args:
      req: A CodeGeneratorRequest for a proto compilation.
      res: A CodeGeneratorResponse to populate with the plugin's output.

    Returns:
      True if code was generated for every requested file.
    """
    try:
        _generate(req, res)
    except CodegenError as err:
        _LOG.debug('Generation failed', exc_info=True)
        del res.file[:]
        res.error = err.formatted_message()
        return False

    return True


def _configure_logging() -> None:
    # protoc captures stdout, so logs go to stderr.
    level = os.environ.get(LOG_LEVEL_ENV_VAR, 'WARNING').upper()
    logging.basicConfig(
        stream=sys.stderr,
        level=getattr(logging, level, logging.WARNING),
        format='%(levelname)s %(message)s',
    )


def main() -> int:
    """Protobuf compiler plugin entrypoint.

    Reads a CodeGeneratorRequest proto from stdin and writes a
    CodeGeneratorResponse to stdout.
    """
    _configure_logging()

    data = sys.stdin.buffer.read()
    request = plugin_pb2.CodeGeneratorRequest.FromString(data)
    response = plugin_pb2.CodeGeneratorResponse()

    # Declare that this plugin supports optional fields in proto3.
    response.supported_features |= response.FEATURE_PROTO3_OPTIONAL

    if not process_proto_request(request, response):
        _LOG.error('%s failed to generate Solidity code', PLUGIN_NAME)

    sys.stdout.buffer.write(response.SerializeToString())
    return 0


if __name__ == '__main__':
    sys.exit(main())
