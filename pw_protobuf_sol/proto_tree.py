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
"""Normalized view of the proto schemas in a protoc request.

Solidity has no nested declarations, so nested messages and enums are
flattened into top-level declarations named after their nesting path:
Outer.Inner becomes Outer_Inner. Every message and enum of every file in the
request is registered once, up front, in a read-only TypeRegistry which later
resolves field type references across files and packages.

Map fields and repeated string or bytes fields are rerouted through synthesized
wrapper messages, since every element of a non-packed repeated field is
decoded as an embedded message. Wrappers are created while a single file is
generated, so they are tracked by a WrapperRegistry owned by that file's
generation alone.
"""

import abc
import enum
import logging
import types
from typing import Iterable, Mapping

from google.protobuf import descriptor_pb2

from pw_protobuf_sol import keywords
from pw_protobuf_sol.errors import CodegenError

_LOG = logging.getLogger(__name__)

_Field = descriptor_pb2.FieldDescriptorProto


def library_name(package: str) -> str:
    """Name of the Solidity library which holds a package's declarations.

    Package segments are capitalized and joined by underscores:
    foo.bar_baz becomes Foo_Bar_baz. The empty package has no library.
    """
    if not package:
        return ''
    return '_'.join(part[:1].upper() + part[1:] for part in package.split('.'))


def _qualify(package: str, name: str) -> str:
    return f'{package}.{name}' if package else name


class ProtoNode(abc.ABC):
    """A message or enum lowered to a top-level Solidity declaration."""

    class Type(enum.Enum):
        """The type of a ProtoNode.

        MESSAGE maps to a Solidity struct and its codec library.
        ENUM maps to a Solidity enum.
        """

        MESSAGE = 1
        ENUM = 2

    def __init__(
        self, name: str, package: str, proto_path: str, file_name: str
    ):
        self._name = name
        self._package = package
        self._proto_path = proto_path
        self._file_name = file_name

    @abc.abstractmethod
    def type(self) -> 'ProtoNode.Type':
        """The type of the node."""

    def name(self) -> str:
        """The flattened, sanitized Solidity name of the declaration."""
        return self._name

    def package(self) -> str:
        return self._package

    def proto_path(self) -> str:
        """Fully-qualified proto path of the node, before flattening."""
        return self._proto_path

    def qualified_name(self) -> str:
        """Registry key of the node: its package and flattened name."""
        return _qualify(self._package, self._name)

    def file_name(self) -> str:
        """The .proto file which defines the node."""
        return self._file_name

    def library(self) -> str:
        return library_name(self._package)

    def sol_type(self, scope_package: str | None = None) -> str:
        """The Solidity type name of the node.

        Args:
          scope_package: The package in whose library the reference appears,
              or None if it appears outside of any package library.
        """
        library = self.library()
        if not library or scope_package == self._package:
            return self._name
        return f'{library}.{self._name}'


class ProtoEnum(ProtoNode):
    """Representation of an enum in a .proto file."""

    def __init__(
        self, name: str, package: str, proto_path: str, file_name: str
    ):
        super().__init__(name, package, proto_path, file_name)
        self._values: list[tuple[str, int]] = []

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.ENUM

    def values(self) -> list[tuple[str, int]]:
        return list(self._values)

    def add_value(self, name: str, value: int) -> None:
        self._values.append((name, value))

    def max_value(self) -> int:
        return max((value for _, value in self._values), default=0)

    def gaps(self) -> list[int]:
        """Values below max_value() which the enum does not declare."""
        declared = {value for _, value in self._values}
        return [v for v in range(self.max_value()) if v not in declared]

    def members(self) -> list[str]:
        """Solidity member names, indexed by wire value.

        Solidity enum members are numbered from zero in declaration order, so
        undeclared values are filled with placeholder members. Declared names
        keep their spelling; a placeholder which collides with one gets a
        numeric suffix.
        """
        declared = keywords.unique_names(name for name, _ in self._values)
        by_value = dict(zip((value for _, value in self._values), declared))
        taken = set(declared) | {name for name, _ in self._values}

        members = []
        for value in range(self.max_value() + 1):
            name = by_value.get(value)
            if name is None:
                name = f'_UNUSED_{value}'
                suffix = 1
                while name in taken:
                    name = f'_UNUSED_{value}_{suffix}'
                    suffix += 1
                taken.add(name)
            members.append(name)
        return members


class ProtoMessageField:
    """Representation of a field within a protobuf message."""

    def __init__(
        self,
        field_name: str,
        field_number: int,
        field_type: int,
        type_name: str = '',
        repeated: bool = False,
        packed: bool = False,
    ):
        self._field_name = field_name
        self._number = field_number
        self._type = field_type
        self._type_name = type_name
        self._repeated = repeated
        self._packed = packed

    @classmethod
    def from_descriptor(
        cls, descriptor: descriptor_pb2.FieldDescriptorProto
    ) -> 'ProtoMessageField':
        return cls(
            descriptor.name,
            descriptor.number,
            descriptor.type,
            descriptor.type_name,
            descriptor.label == _Field.LABEL_REPEATED,
            descriptor.options.packed,
        )

    def name(self) -> str:
        """The field name as declared in the .proto file."""
        return self._field_name

    def number(self) -> int:
        return self._number

    def type(self) -> int:
        return self._type

    def type_name(self) -> str:
        """Referenced message or enum path, empty for scalar fields."""
        return self._type_name

    def is_repeated(self) -> bool:
        return self._repeated

    def is_packed(self) -> bool:
        return self._packed

    def signature(self) -> tuple:
        return (
            self._field_name,
            self._number,
            self._type,
            self._type_name,
            self._repeated,
            self._packed,
        )


class ProtoMessage(ProtoNode):
    """Representation of a message in a .proto file, or a wrapper."""

    def __init__(
        self,
        name: str,
        package: str,
        proto_path: str,
        file_name: str,
        wrapper: bool = False,
    ):
        super().__init__(name, package, proto_path, file_name)
        self._fields: list[ProtoMessageField] = []
        self._wrapper = wrapper

    def type(self) -> ProtoNode.Type:
        return ProtoNode.Type.MESSAGE

    def fields(self) -> list[ProtoMessageField]:
        return list(self._fields)

    def add_field(self, field: ProtoMessageField) -> None:
        self._fields.append(field)

    def is_wrapper(self) -> bool:
        """True for messages synthesized for map or repeated string fields."""
        return self._wrapper

    def codec_name(self) -> str:
        """Name of the Solidity library holding this message's codec."""
        library = self.library()
        if library:
            return f'{library}_{self._name}Codec'
        return f'{self._name}Codec'

    def signature(self) -> tuple:
        return tuple(field.signature() for field in self._fields)


class TypeRegistry:
    """Every message and enum of a protoc request, keyed by flattened name.

    Built once per request by build_registry() and never modified afterwards.
    """

    def __init__(
        self,
        nodes: Mapping[str, ProtoNode],
        nodes_by_path: Mapping[str, ProtoNode],
        flatten_map: Mapping[str, str],
        map_entries: Mapping[str, descriptor_pb2.DescriptorProto],
        file_order: Mapping[str, tuple[ProtoNode, ...]],
    ):
        self._nodes = types.MappingProxyType(dict(nodes))
        self._nodes_by_path = types.MappingProxyType(dict(nodes_by_path))
        self._flatten_map = types.MappingProxyType(dict(flatten_map))
        self._map_entries = types.MappingProxyType(dict(map_entries))
        self._file_order = types.MappingProxyType(dict(file_order))

    def types(self) -> Mapping[str, ProtoNode]:
        """Nodes keyed by package-qualified flattened name."""
        return self._nodes

    def flatten_map(self) -> Mapping[str, str]:
        """Flattened names keyed by the nested proto path they replace."""
        return self._flatten_map

    def resolve(self, type_name: str) -> ProtoNode:
        """Finds the node for a field's fully-qualified type reference.

        Raises:
          CodegenError: No message or enum is registered at the path.
        """
        path = type_name.lstrip('.')
        node = self._nodes_by_path.get(path)
        if node is None:
            raise CodegenError(f'unknown type {type_name}')
        return node

    def map_entry(
        self, type_name: str
    ) -> descriptor_pb2.DescriptorProto | None:
        """Returns the map entry descriptor at a path, if there is one."""
        return self._map_entries.get(type_name.lstrip('.'))

    def is_map_field(self, field: ProtoMessageField) -> bool:
        return (
            field.is_repeated()
            and field.type() == _Field.TYPE_MESSAGE
            and self.map_entry(field.type_name()) is not None
        )

    def file_nodes(self, file_name: str) -> tuple[ProtoNode, ...]:
        """Nodes defined by a file, nested declarations before their parent."""
        return self._file_order.get(file_name, ())

    def messages(self, file_name: str) -> list[ProtoMessage]:
        return [
            node
            for node in self.file_nodes(file_name)
            if isinstance(node, ProtoMessage)
        ]

    def enums(self, file_name: str) -> list[ProtoEnum]:
        return [
            node
            for node in self.file_nodes(file_name)
            if isinstance(node, ProtoEnum)
        ]


class _RegistryBuilder:
    """Accumulates the tables of a TypeRegistry."""

    def __init__(self) -> None:
        self.nodes: dict[str, ProtoNode] = {}
        self.nodes_by_path: dict[str, ProtoNode] = {}
        self.flatten_map: dict[str, str] = {}
        self.map_entries: dict[str, descriptor_pb2.DescriptorProto] = {}
        self.file_order: dict[str, list[ProtoNode]] = {}

    def add_file(self, proto_file: descriptor_pb2.FileDescriptorProto) -> None:
        order = self.file_order.setdefault(proto_file.name, [])

        for proto_enum in proto_file.enum_type:
            self._add_enum(proto_file, proto_enum, [], order)

        for message in proto_file.message_type:
            self._add_message(proto_file, message, [], order)

    def _register(self, node: ProtoNode, nested: bool) -> None:
        key = node.qualified_name()
        existing = self.nodes.get(key)
        if existing is not None:
            raise CodegenError(
                f'{node.proto_path()} flattens to {node.name()}, which is '
                f'already defined by {existing.proto_path()}',
                node.proto_path(),
            )

        self.nodes[key] = node
        self.nodes_by_path[node.proto_path()] = node
        if nested:
            self.flatten_map[node.proto_path()] = node.name()
            _LOG.debug('Flattened %s to %s', node.proto_path(), node.name())

    def _add_enum(
        self,
        proto_file: descriptor_pb2.FileDescriptorProto,
        proto_enum: descriptor_pb2.EnumDescriptorProto,
        scope: list[str],
        order: list[ProtoNode],
    ) -> None:
        package = proto_file.package
        path = scope + [proto_enum.name]
        node = ProtoEnum(
            keywords.sanitize('_'.join(path)),
            package,
            _qualify(package, '.'.join(path)),
            proto_file.name,
        )
        for value in proto_enum.value:
            node.add_value(value.name, value.number)

        self._register(node, nested=bool(scope))
        order.append(node)

    def _add_message(
        self,
        proto_file: descriptor_pb2.FileDescriptorProto,
        message: descriptor_pb2.DescriptorProto,
        scope: list[str],
        order: list[ProtoNode],
    ) -> None:
        package = proto_file.package
        path = scope + [message.name]
        proto_path = _qualify(package, '.'.join(path))

        if message.options.map_entry:
            # Map entries are represented through their map field's wrapper.
            self.map_entries[proto_path] = message
            return

        for proto_enum in message.enum_type:
            self._add_enum(proto_file, proto_enum, path, order)

        for nested in message.nested_type:
            self._add_message(proto_file, nested, path, order)

        node = ProtoMessage(
            keywords.sanitize('_'.join(path)),
            package,
            proto_path,
            proto_file.name,
        )
        for field in message.field:
            node.add_field(ProtoMessageField.from_descriptor(field))

        self._register(node, nested=bool(scope))
        order.append(node)

    def build(self) -> TypeRegistry:
        return TypeRegistry(
            self.nodes,
            self.nodes_by_path,
            self.flatten_map,
            self.map_entries,
            {name: tuple(nodes) for name, nodes in self.file_order.items()},
        )


def build_registry(
    proto_files: Iterable[descriptor_pb2.FileDescriptorProto],
) -> TypeRegistry:
    """Flattens and registers every message and enum of the given files.

    Raises:
      CodegenError: Two declarations flatten to the same name.
    """
    builder = _RegistryBuilder()
    for proto_file in proto_files:
        builder.add_file(proto_file)

    registry = builder.build()
    _LOG.debug(
        'Registered %d types, %d flattened',
        len(registry.types()),
        len(registry.flatten_map()),
    )
    return registry


class WrapperRegistry:
    """Wrapper messages synthesized while generating one file.

    Wrappers are keyed by name within the file's package. Requesting the same
    wrapper twice returns the message created the first time; a request for a
    different structure under an existing name is an error.
    """

    def __init__(self, registry: TypeRegistry, package: str, file_name: str):
        self._registry = registry
        self._package = package
        self._file_name = file_name
        self._wrappers: dict[str, ProtoMessage] = {}

    def wrappers(self) -> list[ProtoMessage]:
        """Wrappers in the order they were first requested."""
        return list(self._wrappers.values())

    def wrapper_for(self, field: ProtoMessageField) -> ProtoMessage | None:
        """Returns the wrapper a field is rerouted through, if it needs one."""
        if not field.is_repeated():
            return None

        if field.type() in (_Field.TYPE_STRING, _Field.TYPE_BYTES):
            return self.list_wrapper(field)

        if field.type() == _Field.TYPE_MESSAGE:
            entry = self._registry.map_entry(field.type_name())
            if entry is not None:
                return self.map_wrapper(field, entry)

        return None

    def list_wrapper(self, field: ProtoMessageField) -> ProtoMessage:
        """<Field>List { value } for a repeated string or bytes field."""
        wrapper = self._new_wrapper(
            f'{keywords.upper_camel_case(field.name())}List'
        )
        wrapper.add_field(ProtoMessageField('value', 1, field.type()))
        return self._register(wrapper)

    def map_wrapper(
        self,
        field: ProtoMessageField,
        entry: descriptor_pb2.DescriptorProto,
    ) -> ProtoMessage:
        """<Field>Entry { key, value } for a map field."""
        entry_fields = {f.name: f for f in entry.field}
        if set(entry_fields) != {'key', 'value'}:
            raise CodegenError(
                f'map entry {entry.name} must have exactly the fields key '
                'and value',
                field=field.name(),
            )

        wrapper = self._new_wrapper(
            f'{keywords.upper_camel_case(field.name())}Entry'
        )
        for number, name in enumerate(('key', 'value'), start=1):
            descriptor = entry_fields[name]
            wrapper.add_field(
                ProtoMessageField(
                    name, number, descriptor.type, descriptor.type_name
                )
            )
        return self._register(wrapper)

    def _new_wrapper(self, name: str) -> ProtoMessage:
        return ProtoMessage(
            keywords.sanitize(name),
            self._package,
            _qualify(self._package, name),
            self._file_name,
            wrapper=True,
        )

    def _register(self, wrapper: ProtoMessage) -> ProtoMessage:
        existing = self._wrappers.get(wrapper.name())
        if existing is not None:
            if existing.signature() != wrapper.signature():
                raise CodegenError(
                    f'wrapper {wrapper.name()} is required with two different '
                    'structures',
                    wrapper.proto_path(),
                )
            return existing

        if wrapper.qualified_name() in self._registry.types():
            raise CodegenError(
                f'wrapper {wrapper.name()} collides with a declared type',
                wrapper.proto_path(),
            )

        _LOG.debug('Synthesized wrapper %s', wrapper.qualified_name())
        self._wrappers[wrapper.name()] = wrapper
        return wrapper
