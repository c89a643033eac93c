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
"""Text buffer holding one generated Solidity source file."""

import contextlib
from typing import Iterable, Iterator


class OutputFile:
    """A buffer to which Solidity source is written.

    Example:

    ```
    output = OutputFile('foo/bar.sol')
    with output.block('library Bar'):
        with output.block('function one() internal pure returns (uint64)'):
            output.write_line('return 1;')

    print(output.content())
    ```

    Produces:
    ```
    library Bar {
        function one() internal pure returns (uint64) {
            return 1;
        }
    }
    ```
    """

    INDENT_WIDTH = 4

    def __init__(self, filename: str):
        self._filename: str = filename
        self._content: list[str] = []
        self._indentation: int = 0

    def write_line(self, line: str = '') -> None:
        if line:
            self._content.append(' ' * self._indentation)
            self._content.append(line)
        self._content.append('\n')

    def write_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self.write_line(line)

    def indent(self) -> 'OutputFile._IndentationContext':
        """Increases the indentation level of the output."""
        return self._IndentationContext(self)

    @contextlib.contextmanager
    def block(self, opener: str, closer: str = '}') -> Iterator[None]:
        """Writes a braced block, indenting everything written within it."""
        self.write_line(f'{opener} {{')
        with self.indent():
            yield
        self.write_line(closer)

    def name(self) -> str:
        return self._filename

    def content(self) -> str:
        return ''.join(self._content)

    class _IndentationContext:
        """Context that increases the output's indentation when it is active."""

        def __init__(self, output: 'OutputFile'):
            self._output = output

        def __enter__(self):
            self._output._indentation += OutputFile.INDENT_WIDTH

        def __exit__(self, typ, value, traceback):
            self._output._indentation -= OutputFile.INDENT_WIDTH
