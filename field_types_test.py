#!/usr/bin/env python3
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
"""Tests for the proto to Solidity type mapping."""

import unittest

from google.protobuf import descriptor_pb2

from pw_protobuf_sol import field_types
from pw_protobuf_sol.errors import CodegenError
from pw_protobuf_sol.field_types import WireType

_Field = descriptor_pb2.FieldDescriptorProto


class StorageTypeTest(unittest.TestCase):
    """Tests for field_types.storage_type."""

    def test_integers(self) -> None:
        expected = {
            _Field.TYPE_INT32: 'int32',
            _Field.TYPE_INT64: 'int64',
            _Field.TYPE_UINT32: 'uint32',
            _Field.TYPE_UINT64: 'uint64',
            _Field.TYPE_SINT32: 'int32',
            _Field.TYPE_SINT64: 'int64',
            _Field.TYPE_FIXED32: 'uint32',
            _Field.TYPE_FIXED64: 'uint64',
            _Field.TYPE_SFIXED32: 'int32',
            _Field.TYPE_SFIXED64: 'int64',
        }
        for field_type, storage in expected.items():
            with self.subTest(field_type=_Field.Type.Name(field_type)):
                self.assertEqual(field_types.storage_type(field_type), storage)

    def test_floating_point_is_scaled_integer(self) -> None:
        self.assertEqual(field_types.storage_type(_Field.TYPE_FLOAT), 'int32')
        self.assertEqual(field_types.storage_type(_Field.TYPE_DOUBLE), 'int64')

    def test_length_delimited(self) -> None:
        self.assertEqual(field_types.storage_type(_Field.TYPE_STRING), 'string')
        self.assertEqual(field_types.storage_type(_Field.TYPE_BYTES), 'bytes')
        self.assertEqual(field_types.storage_type(_Field.TYPE_BOOL), 'bool')

    def test_enum_and_message_have_no_storage_type(self) -> None:
        with self.assertRaises(CodegenError):
            field_types.storage_type(_Field.TYPE_ENUM)
        with self.assertRaises(CodegenError):
            field_types.storage_type(_Field.TYPE_MESSAGE)

    def test_group_is_unsupported(self) -> None:
        with self.assertRaisesRegex(CodegenError, 'TYPE_GROUP'):
            field_types.storage_type(_Field.TYPE_GROUP)
        with self.assertRaisesRegex(CodegenError, 'TYPE_GROUP'):
            field_types.wire_type(_Field.TYPE_GROUP)


class WireTypeTest(unittest.TestCase):
    """Tests for field_types.wire_type."""

    def test_categories(self) -> None:
        expected = {
            _Field.TYPE_INT32: WireType.VARINT,
            _Field.TYPE_SINT64: WireType.VARINT,
            _Field.TYPE_BOOL: WireType.VARINT,
            _Field.TYPE_ENUM: WireType.VARINT,
            _Field.TYPE_FIXED32: WireType.FIXED32,
            _Field.TYPE_SFIXED32: WireType.FIXED32,
            _Field.TYPE_FLOAT: WireType.FIXED32,
            _Field.TYPE_FIXED64: WireType.FIXED64,
            _Field.TYPE_SFIXED64: WireType.FIXED64,
            _Field.TYPE_DOUBLE: WireType.FIXED64,
            _Field.TYPE_STRING: WireType.LENGTH_DELIMITED,
            _Field.TYPE_BYTES: WireType.LENGTH_DELIMITED,
            _Field.TYPE_MESSAGE: WireType.LENGTH_DELIMITED,
        }
        for field_type, wire_type in expected.items():
            with self.subTest(field_type=_Field.Type.Name(field_type)):
                self.assertIs(field_types.wire_type(field_type), wire_type)

    def test_solidity_names(self) -> None:
        self.assertEqual(
            WireType.FIXED32.sol(), 'ProtobufLib.WireType.Bits32'
        )
        self.assertEqual(
            WireType.LENGTH_DELIMITED.sol(),
            'ProtobufLib.WireType.LengthDelimited',
        )


class RoutineTest(unittest.TestCase):
    """Tests for the decode and encode routine selectors."""

    def test_integer_routines(self) -> None:
        self.assertEqual(
            field_types.decode_op(_Field.TYPE_SINT32), 'decode_sint32'
        )
        self.assertEqual(
            field_types.encode_op(_Field.TYPE_FIXED64), 'encode_fixed64'
        )

    def test_scaled_routines(self) -> None:
        self.assertEqual(
            field_types.decode_op(_Field.TYPE_FLOAT), 'decode_float_scaled'
        )
        self.assertEqual(
            field_types.encode_op(_Field.TYPE_DOUBLE), 'encode_double_scaled'
        )

    def test_only_numbers_are_packable(self) -> None:
        self.assertTrue(field_types.lookup(_Field.TYPE_UINT64).is_packable())
        self.assertTrue(field_types.lookup(_Field.TYPE_ENUM).is_packable())
        self.assertFalse(field_types.lookup(_Field.TYPE_STRING).is_packable())
        self.assertFalse(field_types.lookup(_Field.TYPE_MESSAGE).is_packable())


class DefaultCheckTest(unittest.TestCase):
    """Tests for field_types.default_check."""

    def test_expressions(self) -> None:
        self.assertEqual(
            field_types.default_check(_Field.TYPE_INT64, 'instance.a'),
            'instance.a == 0',
        )
        self.assertEqual(
            field_types.default_check(_Field.TYPE_BOOL, 'instance.a'),
            '!instance.a',
        )
        self.assertEqual(
            field_types.default_check(_Field.TYPE_STRING, 'instance.a'),
            'bytes(instance.a).length == 0',
        )
        self.assertEqual(
            field_types.default_check(_Field.TYPE_BYTES, 'instance.a'),
            'instance.a.length == 0',
        )
        self.assertEqual(
            field_types.default_check(_Field.TYPE_ENUM, 'instance.a'),
            'uint32(instance.a) == 0',
        )

    def test_message_has_no_expression(self) -> None:
        with self.assertRaises(CodegenError):
            field_types.default_check(_Field.TYPE_MESSAGE, 'instance.a')


if __name__ == '__main__':
    unittest.main()
