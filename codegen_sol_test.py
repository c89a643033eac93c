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
"""Tests for the layout of generated Solidity files."""

import unittest

from pw_protobuf_sol import PLUGIN_VERSION, codegen_sol, testing
from pw_protobuf_sol.options import Generate, GeneratorOptions

_TYPES = testing.file_descriptor(
    """
    name: "test/types.proto"
    package: "test.pkg"
    syntax: "proto3"
    enum_type {
      name: "Color"
      value { name: "RED" number: 0 }
      value { name: "GREEN" number: 1 }
    }
    message_type {
      name: "Point"
      field { name: "x" number: 1 label: LABEL_OPTIONAL type: TYPE_SINT32 }
      field { name: "y" number: 2 label: LABEL_OPTIONAL type: TYPE_SINT32 }
    }
    message_type {
      name: "Shape"
      field { name: "label" number: 1 label: LABEL_OPTIONAL
              type: TYPE_STRING }
      field { name: "origin" number: 2 label: LABEL_OPTIONAL
              type: TYPE_MESSAGE type_name: ".test.pkg.Point" }
      field { name: "names" number: 3 label: LABEL_REPEATED
              type: TYPE_STRING }
      field { name: "color" number: 4 label: LABEL_OPTIONAL type: TYPE_ENUM
              type_name: ".test.pkg.Color" }
    }
    """
)

_EXPECTED_PREFIX = f"""\
// File automatically generated by protoc-gen-sol v{PLUGIN_VERSION}
// SPDX-License-Identifier: CC0
pragma solidity >=0.6.0 <8.0.0;
pragma experimental ABIEncoderV2;

import "@lazyledger/protobuf3-solidity-lib/contracts/ProtobufLib.sol";

library Test_Pkg {{
    enum Color {{
        RED,
        GREEN
    }}

    struct Point {{
        int32 x;
        int32 y;
    }}

    struct Shape {{
        string label;
        Point origin;
        NamesList[] names;
        Color color;
    }}

    // Wrappers for map fields and repeated string or bytes fields
    struct NamesList {{
        string value;
    }}
}}

library Test_Pkg_PointCodec {{
    function decode(uint64 initial_pos, bytes memory buf, uint64 len) \
internal pure returns (bool, uint64, Test_Pkg.Point memory) {{
"""


class LayoutTest(unittest.TestCase):
    """Tests for the overall layout of a generated file."""

    def test_layout(self) -> None:
        content = testing.generate(_TYPES)
        self.assertTrue(
            content.startswith(_EXPECTED_PREFIX),
            f'Unexpected layout:\n{content[:len(_EXPECTED_PREFIX) + 200]}',
        )

    def test_codec_libraries_follow_package_library(self) -> None:
        content = testing.generate(_TYPES)
        libraries = [
            line
            for line in content.splitlines()
            if line.startswith('library ')
        ]
        self.assertEqual(
            libraries,
            [
                'library Test_Pkg {',
                'library Test_Pkg_PointCodec {',
                'library Test_Pkg_ShapeCodec {',
                'library Test_Pkg_NamesListCodec {',
            ],
        )
        self.assertTrue(content.endswith('}\n'))

    def test_license(self) -> None:
        content = testing.generate(
            _TYPES, generator_options=GeneratorOptions(license='MIT')
        )
        self.assertIn('// SPDX-License-Identifier: MIT\n', content)

    def test_protobuf_lib_import(self) -> None:
        content = testing.generate(
            _TYPES,
            generator_options=GeneratorOptions(
                protobuf_lib_import='./ProtobufLib.sol'
            ),
        )
        self.assertIn('\nimport "./ProtobufLib.sol";\n', content)


class PackageTest(unittest.TestCase):
    """Tests for files with and without a package."""

    def test_empty_package(self) -> None:
        proto_file = testing.file_descriptor(
            """
            name: "plain.proto"
            syntax: "proto3"
            message_type {
              name: "Point"
              field { name: "x" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_INT64 }
            }
            """
        )
        content = testing.generate(proto_file)
        self.assertIn('\nstruct Point {\n    int64 x;\n}\n', content)
        self.assertIn('\nlibrary PointCodec {\n', content)
        self.assertIn(
            'returns (bool, uint64, Point memory) {', content
        )

    def test_cross_package_reference(self) -> None:
        common = testing.file_descriptor(
            """
            name: "common/id.proto"
            package: "common"
            syntax: "proto3"
            enum_type {
              name: "Kind"
              value { name: "NONE" number: 0 }
              value { name: "USER" number: 1 }
            }
            """
        )
        user = testing.file_descriptor(
            """
            name: "app/user.proto"
            package: "app"
            syntax: "proto3"
            dependency: "common/id.proto"
            message_type {
              name: "User"
              field { name: "kind" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_ENUM type_name: ".common.Kind" }
            }
            """
        )
        content = testing.generate(common, user)
        self.assertIn('import "../common/id.sol";\n', content)
        self.assertIn('        Common.Kind kind;\n', content)
        self.assertIn('instance.kind = Common.Kind(uint32(v));', content)

    def test_empty_message_placeholder(self) -> None:
        proto_file = testing.file_descriptor(
            """
            name: "empty.proto"
            package: "e"
            syntax: "proto3"
            message_type { name: "Empty" }
            """
        )
        content = testing.generate(proto_file)
        self.assertIn(
            '    struct Empty {\n'
            '        // Solidity does not allow empty structs\n'
            '        bool _placeholder;\n'
            '    }\n',
            content,
        )
        self.assertIn('if (field_number > 0) {', content)


class FixedPointLibraryNameTest(unittest.TestCase):
    """Tests for codegen_sol.fixed_point_library_name."""

    def test_names(self) -> None:
        self.assertEqual(
            codegen_sol.fixed_point_library_name(_TYPES),
            'Test_Pkg_TypesFixedPoint',
        )
        plain = testing.file_descriptor('name: "dir/sensor_data.proto"')
        self.assertEqual(
            codegen_sol.fixed_point_library_name(plain),
            'SensorDataFixedPoint',
        )

    def test_only_used_formats_are_emitted(self) -> None:
        proto_file = testing.file_descriptor(
            """
            name: "test/reading.proto"
            package: "test"
            syntax: "proto3"
            message_type {
              name: "Reading"
              field { name: "value" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_DOUBLE }
            }
            """
        )
        content = testing.generate(proto_file)
        self.assertIn('\nlibrary Test_ReadingFixedPoint {\n', content)
        self.assertIn('function decode_double_scaled(', content)
        self.assertNotIn('float', content)

    def test_no_helper_library_without_floats(self) -> None:
        self.assertNotIn('FixedPoint', testing.generate(_TYPES))


class LengthPrefixLibraryTest(unittest.TestCase):
    """Tests for the length prefix helper library of a file."""

    def test_name(self) -> None:
        self.assertEqual(
            codegen_sol.length_prefix_library_name(_TYPES),
            'Test_Pkg_TypesLengthPrefix',
        )

    def test_emitted_last_with_encoders(self) -> None:
        content = testing.generate(
            _TYPES, generator_options=GeneratorOptions(generate=Generate.ALL)
        )
        libraries = [
            line
            for line in content.splitlines()
            if line.startswith('library ')
        ]
        self.assertEqual(libraries[-1], 'library Test_Pkg_TypesLengthPrefix {')
        self.assertIn('function backpatch_length(', content)

    def test_not_emitted_without_length_prefixes(self) -> None:
        proto_file = testing.file_descriptor(
            """
            name: "test/counter.proto"
            package: "test"
            syntax: "proto3"
            message_type {
              name: "Counter"
              field { name: "count" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_UINT64 }
            }
            """
        )
        content = testing.generate(
            proto_file,
            generator_options=GeneratorOptions(generate=Generate.ALL),
        )
        self.assertIn('function encode(', content)
        self.assertNotIn('LengthPrefix', content)


if __name__ == '__main__':
    unittest.main()
