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
"""Errors raised while lowering a schema to Solidity."""


class CodegenError(Exception):
    """A schema could not be converted to Solidity.

    Every schema error is fatal to the run which raised it; no output is
    produced for a request once one has been raised.
    """

    def __init__(
        self,
        error_message: str,
        path: str | None = None,
        field: str | None = None,
    ):
        super().__init__(f'protoc-gen-sol error: {error_message}')
        self.error_message = error_message
        self.path = path
        self.field = field

    def with_context(
        self, path: str | None, field: str | None = None
    ) -> 'CodegenError':
        """Returns a copy of this error located at the given path and field."""
        return CodegenError(
            self.error_message,
            self.path if self.path is not None else path,
            self.field if self.field is not None else field,
        )

    def formatted_message(self) -> str:
        lines = [f'protoc-gen-sol error: {self.error_message}']

        if self.path is not None:
            lines.append(f'    at {self.path}')

        if self.field is not None:
            lines.append(f'    in field {self.field}')

        return '\n'.join(lines)
