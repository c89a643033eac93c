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
"""Generator options passed to the plugin through protoc.

Options are given as a comma-separated list of key=value pairs, e.g.

  protoc --sol_out=out --sol_opt=license=MIT,generate=all foo.proto
"""

import dataclasses
import enum
import logging
from shlex import shlex

from pw_protobuf_sol.errors import CodegenError

_LOG = logging.getLogger(__name__)

DEFAULT_LICENSE = 'CC0'
DEFAULT_PROTOBUF_LIB_IMPORT = (
    '@lazyledger/protobuf3-solidity-lib/contracts/ProtobufLib.sol'
)


class CompileMode(enum.Enum):
    """How generated codec routines are made available to contracts."""

    # Routines are internal library functions, inlined into the caller.
    INLINE = 'inline'
    # Routines are public library functions, deployed and linked separately.
    LINK = 'link'


class Generate(enum.Enum):
    """Which halves of the codec are generated."""

    ALL = 'all'
    DECODER = 'decoder'
    ENCODER = 'encoder'

    def decoders(self) -> bool:
        return self in (Generate.ALL, Generate.DECODER)

    def encoders(self) -> bool:
        return self in (Generate.ALL, Generate.ENCODER)


@dataclasses.dataclass(frozen=True)
class GeneratorOptions:
    license: str = DEFAULT_LICENSE
    compile: CompileMode = CompileMode.INLINE
    generate: Generate = Generate.DECODER
    strict_field_numbers: bool = True
    strict_enum_validation: bool = True
    allow_empty_packed_arrays: bool = False
    allow_non_monotonic_fields: bool = False
    allow_empty_messages: bool = True
    protobuf_lib_import: str = DEFAULT_PROTOBUF_LIB_IMPORT


_BOOLEAN_OPTIONS = frozenset(
    field.name
    for field in dataclasses.fields(GeneratorOptions)
    if field.type in (bool, 'bool')
)


def split_parameter(parameter: str) -> list[str]:
    """Splits protoc's parameter string into its comma-separated parts."""
    # protoc passes the custom arguments in shell quoted form, separated by
    # commas. Use shlex to split them, correctly handling quoted sections, with
    # equivalent options to IFS=","
    lex = shlex(parameter, posix=True)
    lex.whitespace_split = True
    lex.whitespace = ','
    lex.commenters = ''
    return list(lex)


def _parse_bool(key: str, value: str) -> bool:
    if value == 'true':
        return True
    if value == 'false':
        return False
    raise CodegenError(
        f"invalid option value {key}={value}; expected 'true' or 'false'"
    )


def _parse_enum(key: str, value: str, enum_type: type[enum.Enum]):
    try:
        return enum_type(value)
    except ValueError:
        choices = ', '.join(repr(member.value) for member in enum_type)
        raise CodegenError(
            f'invalid option value {key}={value}; expected one of {choices}'
        ) from None


def parse_parameter_options(parameter: str) -> GeneratorOptions:
    """Parses the options passed to the plugin through protoc.

    Raises:
      CodegenError: An option is malformed, unknown, has an invalid value, or
          selects an unimplemented feature.
    """
    known = {field.name for field in dataclasses.fields(GeneratorOptions)}
    values: dict[str, object] = {}

    for arg in split_parameter(parameter):
        key, sep, value = arg.partition('=')
        key = key.strip()
        value = value.strip()
        if not sep:
            raise CodegenError(f'invalid option {arg!r}; expected key=value')

        if key not in known:
            raise CodegenError(f'unrecognized option {key}')

        if key in _BOOLEAN_OPTIONS:
            values[key] = _parse_bool(key, value)
        elif key == 'compile':
            values[key] = _parse_enum(key, value, CompileMode)
        elif key == 'generate':
            values[key] = _parse_enum(key, value, Generate)
        else:
            values[key] = value

    if values.get('compile') is CompileMode.LINK:
        raise CodegenError(
            'unimplemented option compile=link; only compile=inline is '
            'supported'
        )

    options = GeneratorOptions(**values)  # type: ignore[arg-type]
    _LOG.debug('Generator options: %s', options)
    return options
