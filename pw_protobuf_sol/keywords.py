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
"""Maps proto identifiers onto identifiers which are safe in Solidity."""

import re
from typing import Iterable

ESCAPE_PREFIX = '_'

# Solidity keywords, reserved words, units, and global symbols which may not
# be used as (or are confusing when used as) struct, enum, or member names.
_SOLIDITY_KEYWORDS = frozenset(
    [
        # Reserved for future use.
        'after', 'alias', 'apply', 'auto', 'case', 'copyof', 'default',
        'define', 'final', 'implements', 'in', 'inline', 'let', 'macro',
        'match', 'mutable', 'null', 'of', 'partial', 'promise', 'reference',
        'relocatable', 'sealed', 'sizeof', 'static', 'supports', 'switch',
        'typedef', 'typeof', 'var',
        # Declarations and modifiers.
        'abstract', 'anonymous', 'assembly', 'calldata', 'constant',
        'constructor', 'contract', 'enum', 'error', 'event', 'external',
        'fallback', 'function', 'immutable', 'import', 'indexed', 'interface',
        'internal', 'is', 'library', 'mapping', 'memory', 'modifier',
        'nonpayable', 'override', 'package', 'payable', 'pragma', 'private',
        'public', 'pure', 'receive', 'returns', 'storage', 'struct', 'type',
        'unchecked', 'using', 'view', 'virtual',
        # Statements.
        'break', 'catch', 'continue', 'delete', 'do', 'else', 'emit', 'for',
        'from', 'if', 'new', 'return', 'revert', 'throw', 'try', 'while',
        # Literals and units.
        'true', 'false', 'hex', 'wei', 'gwei', 'finney', 'szabo', 'ether',
        'seconds', 'minutes', 'hours', 'days', 'weeks', 'years',
        # Global variables and functions.
        'abi', 'addmod', 'assert', 'block', 'blockhash', 'ecrecover',
        'gasleft', 'keccak256', 'msg', 'mulmod', 'now', 'require',
        'ripemd160', 'selector', 'self', 'selfdestruct', 'sha256', 'super',
        'this', 'tx',
        # Elementary types without a size suffix.
        'address', 'bool', 'byte', 'bytes', 'fixed', 'int', 'string', 'ufixed',
        'uint',
    ]
)

# Sized elementary types, e.g. uint40, int256, bytes32, or fixed128x18.
_SIZED_TYPE = re.compile(r'(u?int|bytes?)[0-9]+|u?fixed[0-9]+x[0-9]+')


def is_reserved(identifier: str) -> bool:
    """True if the identifier may not be used verbatim in Solidity."""
    return (
        identifier in _SOLIDITY_KEYWORDS
        or _SIZED_TYPE.fullmatch(identifier) is not None
        or identifier[:1].isdigit()
    )


def sanitize(identifier: str) -> str:
    """Returns a Solidity-safe spelling of a proto identifier.

    Identifiers which already begin with the escape prefix are returned as-is,
    so sanitizing is idempotent.
    """
    if identifier.startswith(ESCAPE_PREFIX):
        return identifier

    if is_reserved(identifier):
        return ESCAPE_PREFIX + identifier

    return identifier


def unique_names(identifiers: Iterable[str]) -> list[str]:
    """Sanitizes a message's member names, disambiguating any collisions.

    The first member to claim a sanitized name keeps it. Later members which
    collide get a numeric suffix, avoiding every name in the message, including
    those of members declared after them.
    """
    originals = list(identifiers)
    sanitized = [sanitize(name) for name in originals]
    taken = set(originals) | set(sanitized)

    assigned: list[str] = []
    used: set[str] = set()
    for name in sanitized:
        if name in used:
            if name.startswith(ESCAPE_PREFIX):
                stem = name
            else:
                stem = ESCAPE_PREFIX + name

            suffix = 1
            while f'{stem}_{suffix}' in taken or f'{stem}_{suffix}' in used:
                suffix += 1
            name = f'{stem}_{suffix}'

        used.add(name)
        assigned.append(name)

    return assigned


def upper_camel_case(identifier: str) -> str:
    """Converts a snake_case proto identifier to UpperCamelCase.

    Leading underscores are dropped: _foo_bar -> FooBar.
    """
    parts = identifier.split('_')
    return ''.join(part[:1].upper() + part[1:] for part in parts)
