"""Reference values and their on-disk encoding."""

from pathlib import Path
from typing import TypeAlias

from .constants import HASH_CHARSET, HASH_LENGTH, SYMREF_PREFIX
from .exceptions import RefError

__all__ = ['HashRef', 'Ref', 'RefError', 'SymRef', 'is_hash', 'read_ref', 'write_ref']


class HashRef(str):
    """A direct reference: the hex hash of an object."""


class SymRef(str):
    """A symbolic reference: the name of another ref, such as 'refs/heads/master'."""


Ref: TypeAlias = HashRef | SymRef


def is_hash(value: str) -> bool:
    """Return True if `value` looks like a full object hash."""
    return len(value) == HASH_LENGTH and all(c in HASH_CHARSET for c in value)


def parse_ref(content: str) -> Ref | None:
    """Parse the text of a ref file.

    :param content: The raw ref file content.
    :return: A SymRef for `ref: <name>`, a HashRef for a bare hash, or None for an empty ref.
    :raises RefError: If the content is neither."""
    content = content.strip()
    if not content:
        return None

    if content.startswith(SYMREF_PREFIX):
        target = content.removeprefix(SYMREF_PREFIX).strip()
        if not target:
            msg = 'Symbolic reference has no target'
            raise RefError(msg)
        return SymRef(target)

    if is_hash(content):
        return HashRef(content)

    msg = f'Invalid reference content: {content!r}'
    raise RefError(msg)


def read_ref(ref_file: Path) -> Ref | None:
    """Read a ref file into a typed value.

    :param ref_file: The path of the ref file.
    :return: The parsed reference, or None if the file is empty.
    :raises FileNotFoundError: If the ref file does not exist.
    :raises RefError: If the file content is invalid."""
    return parse_ref(ref_file.read_text())


def write_ref(ref_file: Path, ref: Ref | None) -> None:
    """Write a reference value to a ref file, creating parent directories as needed.

    :param ref_file: The path of the ref file.
    :param ref: The value to store. None writes an empty ref."""
    match ref:
        case SymRef():
            content = f'{SYMREF_PREFIX} {ref}'
        case HashRef():
            content = str(ref)
        case None:
            content = ''
        case _:
            msg = f'Invalid reference type: {type(ref)}'
            raise RefError(msg)

    ref_file.parent.mkdir(parents=True, exist_ok=True)
    ref_file.write_text(content)
