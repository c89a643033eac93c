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
"""Tests for the protoc plugin request handling."""

import unittest

from google.protobuf.compiler import plugin_pb2

from pw_protobuf_sol import plugin, testing

_COMMON = testing.file_descriptor(
    """
    name: "common/id.proto"
    package: "common"
    syntax: "proto3"
    message_type {
      name: "Id"
      field { name: "value" number: 1 label: LABEL_OPTIONAL type: TYPE_UINT64 }
    }
    """
)

_USER = testing.file_descriptor(
    """
    name: "app/user.proto"
    package: "app.v1"
    syntax: "proto3"
    dependency: "common/id.proto"
    message_type {
      name: "User"
      field { name: "id" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
              type_name: ".common.Id" }
    }
    """
)

_WELL_KNOWN = testing.file_descriptor(
    """
    name: "google/protobuf/empty.proto"
    package: "google.protobuf"
    syntax: "proto3"
    message_type { name: "Empty" }
    """
)

_TIMESTAMP = testing.file_descriptor(
    """
    name: "google/protobuf/timestamp.proto"
    package: "google.protobuf"
    syntax: "proto3"
    message_type {
      name: "Timestamp"
      field { name: "seconds" number: 1 label: LABEL_OPTIONAL
              type: TYPE_INT64 }
      field { name: "nanos" number: 2 label: LABEL_OPTIONAL type: TYPE_INT32 }
    }
    """
)

_DURATION = testing.file_descriptor(
    """
    name: "google/protobuf/duration.proto"
    package: "google.protobuf"
    syntax: "proto3"
    message_type {
      name: "Duration"
      field { name: "seconds" number: 1 label: LABEL_OPTIONAL
              type: TYPE_INT64 }
      field { name: "nanos" number: 2 label: LABEL_OPTIONAL type: TYPE_INT32 }
    }
    """
)

_EVENT = testing.file_descriptor(
    """
    name: "app/event.proto"
    package: "app"
    syntax: "proto3"
    dependency: "google/protobuf/timestamp.proto"
    dependency: "google/protobuf/duration.proto"
    message_type {
      name: "Event"
      field { name: "at" number: 1 label: LABEL_OPTIONAL type: TYPE_MESSAGE
              type_name: ".google.protobuf.Timestamp" }
      field { name: "took" number: 2 label: LABEL_OPTIONAL
              type: TYPE_MESSAGE type_name: ".google.protobuf.Duration" }
    }
    """
)

_PROTO2 = testing.file_descriptor(
    """
    name: "legacy.proto"
    syntax: "proto2"
    message_type {
      name: "Legacy"
      field { name: "a" number: 1 label: LABEL_OPTIONAL type: TYPE_INT32 }
    }
    """
)


def _process(
    request: plugin_pb2.CodeGeneratorRequest,
) -> tuple[bool, plugin_pb2.CodeGeneratorResponse]:
    response = plugin_pb2.CodeGeneratorResponse()
    success = plugin.process_proto_request(request, response)
    return success, response


class ProcessProtoRequestTest(unittest.TestCase):
    """Tests for plugin.process_proto_request."""

    def test_generates_every_requested_file(self) -> None:
        success, response = _process(
            testing.code_generator_request(_COMMON, _USER)
        )
        self.assertTrue(success)
        self.assertFalse(response.HasField('error'))
        self.assertEqual(
            [f.name for f in response.file],
            ['common/id.sol', 'app/v1/user.sol'],
        )
        user = response.file[1].content
        self.assertIn('import "../../common/id.sol";', user)
        self.assertIn('library App_V1 {', user)
        self.assertIn('        Common.Id id;', user)

    def test_only_files_to_generate(self) -> None:
        success, response = _process(
            testing.code_generator_request(
                _COMMON, _USER, generate=('app/user.proto',)
            )
        )
        self.assertTrue(success)
        self.assertEqual([f.name for f in response.file], ['app/v1/user.sol'])

    def test_google_files_are_skipped(self) -> None:
        success, response = _process(
            testing.code_generator_request(_WELL_KNOWN, _COMMON)
        )
        self.assertTrue(success)
        self.assertEqual([f.name for f in response.file], ['common/id.sol'])

    def test_referenced_well_known_files_are_generated(self) -> None:
        success, response = _process(
            testing.code_generator_request(
                _TIMESTAMP,
                _DURATION,
                _WELL_KNOWN,
                _EVENT,
                generate=('app/event.proto',),
            )
        )
        self.assertTrue(success, response.error)
        self.assertEqual(
            [f.name for f in response.file],
            ['app/event.sol', 'google/protobuf/well_known_types.sol'],
        )

        event, well_known = (f.content for f in response.file)
        self.assertEqual(
            event.count('import "../google/protobuf/well_known_types.sol";'),
            1,
        )
        self.assertIn('        Google_Protobuf.Timestamp at;', event)
        self.assertIn('        Google_Protobuf.Duration took;', event)

        self.assertEqual(well_known.count('library Google_Protobuf {'), 1)
        self.assertIn('    struct Timestamp {', well_known)
        self.assertIn('    struct Duration {', well_known)
        self.assertIn('library Google_Protobuf_TimestampCodec {', well_known)
        self.assertIn('library Google_Protobuf_DurationCodec {', well_known)
        self.assertNotIn('Empty', well_known)

    def test_well_known_map_values_are_generated(self) -> None:
        log = testing.file_descriptor(
            """
            name: "app/log.proto"
            package: "app"
            syntax: "proto3"
            dependency: "google/protobuf/timestamp.proto"
            message_type {
              name: "Log"
              field { name: "seen" number: 1 label: LABEL_REPEATED
                      type: TYPE_MESSAGE type_name: ".app.Log.SeenEntry" }
              nested_type {
                name: "SeenEntry"
                field { name: "key" number: 1 label: LABEL_OPTIONAL
                        type: TYPE_STRING }
                field { name: "value" number: 2 label: LABEL_OPTIONAL
                        type: TYPE_MESSAGE
                        type_name: ".google.protobuf.Timestamp" }
                options { map_entry: true }
              }
            }
            """
        )
        success, response = _process(
            testing.code_generator_request(
                _TIMESTAMP, log, generate=('app/log.proto',)
            )
        )
        self.assertTrue(success, response.error)
        self.assertEqual(
            [f.name for f in response.file],
            ['app/log.sol', 'google/protobuf/well_known_types.sol'],
        )
        self.assertIn(
            'import "../google/protobuf/well_known_types.sol";',
            response.file[0].content,
        )

    def test_unsupported_well_known_type_is_an_error(self) -> None:
        struct = testing.file_descriptor(
            """
            name: "google/protobuf/struct.proto"
            package: "google.protobuf"
            syntax: "proto3"
            message_type {
              name: "Value"
              field { name: "number_value" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_DOUBLE oneof_index: 0 }
              oneof_decl { name: "kind" }
            }
            """
        )
        config = testing.file_descriptor(
            """
            name: "app/config.proto"
            package: "app"
            syntax: "proto3"
            dependency: "google/protobuf/struct.proto"
            message_type {
              name: "Config"
              field { name: "value" number: 1 label: LABEL_OPTIONAL
                      type: TYPE_MESSAGE type_name: ".google.protobuf.Value" }
            }
            """
        )
        success, response = _process(
            testing.code_generator_request(
                struct, config, generate=('app/config.proto',)
            )
        )
        self.assertFalse(success)
        self.assertEqual(len(response.file), 0)
        self.assertIn('oneof fields are not supported', response.error)
        self.assertIn('    at google.protobuf.Value', response.error)

    def test_parameter_options(self) -> None:
        success, response = _process(
            testing.code_generator_request(
                _COMMON, parameter='license=MIT,generate=all'
            )
        )
        self.assertTrue(success)
        content = response.file[0].content
        self.assertIn('// SPDX-License-Identifier: MIT', content)
        self.assertIn('function encode(', content)

    def test_invalid_option(self) -> None:
        success, response = _process(
            testing.code_generator_request(_COMMON, parameter='compile=link')
        )
        self.assertFalse(success)
        self.assertEqual(len(response.file), 0)
        self.assertIn('unimplemented option compile=link', response.error)

    def test_invalid_schema_produces_no_files(self) -> None:
        success, response = _process(
            testing.code_generator_request(_COMMON, _PROTO2)
        )
        self.assertFalse(success)
        self.assertEqual(len(response.file), 0)
        self.assertTrue(response.error.startswith('protoc-gen-sol error: '))
        self.assertIn('legacy.proto declares syntax proto2', response.error)
        self.assertIn('    at legacy.proto', response.error)

    def test_error_names_field(self) -> None:
        bad = testing.file_descriptor(
            """
            name: "bad.proto"
            package: "bad"
            syntax: "proto3"
            message_type {
              name: "M"
              field { name: "ids" number: 1 label: LABEL_REPEATED
                      type: TYPE_UINT32 }
            }
            """
        )
        success, response = _process(testing.code_generator_request(bad))
        self.assertFalse(success)
        self.assertEqual(
            response.error,
            'protoc-gen-sol error: repeated numeric and enum fields must be '
            'declared with [packed = true]\n'
            '    at bad.M\n'
            '    in field ids',
        )


if __name__ == '__main__':
    unittest.main()
