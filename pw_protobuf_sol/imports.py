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
"""Resolves the Solidity imports of a generated file."""

import posixpath
from typing import Iterable

from google.protobuf import descriptor_pb2

from pw_protobuf_sol.errors import CodegenError
from pw_protobuf_sol.proto_tree import (
    ProtoMessage,
    ProtoMessageField,
    TypeRegistry,
)

OUTPUT_EXTENSION = '.sol'

# Files provided by protobuf and Google APIs. They are only generated when a
# generated file references one of their types, and all of a package's
# well-known files share one output file.
WELL_KNOWN_PREFIXES = ('google/protobuf/', 'google/api/')
WELL_KNOWN_STEM = 'well_known_types'


def is_well_known(file_name: str) -> bool:
    return file_name.startswith(WELL_KNOWN_PREFIXES)


def output_path(proto_file: descriptor_pb2.FileDescriptorProto) -> str:
    """Path of the Solidity file generated for a .proto file.

    The path is built from the package, with one directory per package
    segment, and the .proto file's base name: package foo.bar in
    protos/baz.proto generates foo/bar/baz.sol. Well-known files generate
    <package directories>/well_known_types.sol.
    """
    if is_well_known(proto_file.name):
        stem = WELL_KNOWN_STEM
    else:
        stem = posixpath.splitext(posixpath.basename(proto_file.name))[0]
    directories = [part for part in proto_file.package.split('.') if part]
    return posixpath.join(*directories, stem + OUTPUT_EXTENSION)


def relative_import(current: str, dependency: str) -> str:
    """Path which reaches a generated dependency from a generated file.

    Both paths are output paths relative to the output root. The result climbs
    out of current's directory to the deepest directory the two paths share,
    then descends to the dependency.
    """
    current_dirs = [d for d in posixpath.dirname(current).split('/') if d]
    dependency_parts = [p for p in dependency.split('/') if p]
    dependency_dirs = dependency_parts[:-1]

    common = 0
    for ours, theirs in zip(current_dirs, dependency_dirs):
        if ours != theirs:
            break
        common += 1

    ups = len(current_dirs) - common
    descent = dependency_parts[common:]
    if ups == 0:
        return './' + '/'.join(descent)
    return '../' * ups + '/'.join(descent)


def _referenced_type_names(
    registry: TypeRegistry, field: ProtoMessageField
) -> list[str]:
    """Types a field refers to; a map field refers to its key and value."""
    if registry.is_map_field(field):
        entry = registry.map_entry(field.type_name())
        assert entry is not None
        return [
            entry_field.type_name
            for entry_field in entry.field
            if entry_field.type_name
        ]
    return [field.type_name()] if field.type_name() else []


def referenced_files(
    registry: TypeRegistry,
    messages: Iterable[ProtoMessage],
) -> set[str]:
    """The .proto files which define types referenced by the given messages.

    Raises:
      CodegenError: A field references a type which is not registered.
    """
    files = set()
    for message in messages:
        for field in message.fields():
            try:
                nodes = [
                    registry.resolve(type_name)
                    for type_name in _referenced_type_names(registry, field)
                ]
            except CodegenError as err:
                raise err.with_context(
                    message.proto_path(), field.name()
                ) from err

            files.update(node.file_name() for node in nodes)

    return files


def well_known_dependencies(
    registry: TypeRegistry, file_names: Iterable[str]
) -> list[str]:
    """Well-known files whose types the given files need, directly or not.

    Raises:
      CodegenError: A field references a type which is not registered.
    """
    pending = list(file_names)
    seen = set(pending)
    found = []
    while pending:
        file_name = pending.pop()
        for dependency in referenced_files(
            registry, registry.messages(file_name)
        ):
            if dependency not in seen and is_well_known(dependency):
                seen.add(dependency)
                found.append(dependency)
                pending.append(dependency)

    return sorted(found)


def import_paths(
    proto_file: descriptor_pb2.FileDescriptorProto,
    proto_files: dict[str, descriptor_pb2.FileDescriptorProto],
    registry: TypeRegistry,
    messages: Iterable[ProtoMessage],
    protobuf_lib_import: str,
) -> list[str]:
    """Import paths of a generated file, runtime library first.

    Only dependencies which define a type referenced by one of the file's
    messages are imported. They are sorted by their path.
    """
    current = output_path(proto_file)
    dependencies = {
        output_path(proto_files[name])
        for name in referenced_files(registry, messages)
    }
    dependencies.discard(current)

    paths = sorted(
        relative_import(current, dependency) for dependency in dependencies
    )
    return [protobuf_lib_import] + paths
