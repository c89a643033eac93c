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
"""The pw_protobuf_sol package generates Solidity protobuf codecs.

It is a protoc plugin which lowers proto3 messages and enums into Solidity
structs and enums, together with canonical encode and decode libraries.
"""

PLUGIN_NAME = 'protoc-gen-sol'
PLUGIN_VERSION = '0.3.0'
