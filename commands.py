"""
Text command layer for the in-memory store.

Turns a line such as ``SET a 10`` into a validated Command and runs it
against a Store, producing the string that should be shown to the user
(empty when the command prints nothing).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional, Tuple
import logging

from inmem_store import Store, StoreError


logger = logging.getLogger(__name__)

NULL = "NULL"
NO_TRANSACTION = "NO TRANSACTION"


class CommandName(Enum):
    """Every command the dispatcher understands"""
    SET = "SET"
    GET = "GET"
    UNSET = "UNSET"
    NUMEQUALTO = "NUMEQUALTO"
    BEGIN = "BEGIN"
    ROLLBACK = "ROLLBACK"
    COMMIT = "COMMIT"
    END = "END"


# Required argument count per command
ARITY: Dict[CommandName, int] = {
    CommandName.SET: 2,
    CommandName.GET: 1,
    CommandName.UNSET: 1,
    CommandName.NUMEQUALTO: 1,
    CommandName.BEGIN: 0,
    CommandName.ROLLBACK: 0,
    CommandName.COMMIT: 0,
    CommandName.END: 0,
}


class CommandError(StoreError):
    """Raised for input that cannot be turned into a command; str() is user-facing"""
    pass


class ArityError(CommandError):
    """Raised when a command gets the wrong number of arguments"""

    def __init__(self, name: CommandName, given: int) -> None:
        self.name = name
        self.given = given
        super().__init__(arity_message(name))


class UnknownCommandError(CommandError):
    """Raised when the command word is not recognised"""

    def __init__(self, word: str) -> None:
        self.word = word
        super().__init__("Command not found")


def arity_message(name: CommandName) -> str:
    expected = ARITY[name]
    if expected == 0:
        return f"{name.value} takes no arguments"
    if expected == 1:
        return f"{name.value} takes 1 argument"
    return f"{name.value} takes {expected} arguments"


@dataclass(frozen=True)
class Command:
    """A command with an argument list already checked against ARITY"""
    name: CommandName
    args: Tuple[str, ...] = ()

    @classmethod
    def build(cls, name: CommandName, *args: str) -> "Command":
        if len(args) != ARITY[name]:
            raise ArityError(name, len(args))
        return cls(name, tuple(args))


def parse_command(line: str) -> Optional[Command]:
    """
    Parse one input line.

    Returns None for a blank line. Raises UnknownCommandError or ArityError
    for bad input.
    """
    tokens = line.split()
    if not tokens:
        return None
    word, *args = tokens
    try:
        name = CommandName(word.upper())
    except ValueError:
        raise UnknownCommandError(word) from None
    return Command.build(name, *args)


# --- handlers -----------------------------------------------------------


def _set(store: Store, key: str, value: str) -> str:
    store.set(key, value)
    return ""


def _get(store: Store, key: str) -> str:
    value = store.get(key)
    return NULL if value is None else value


def _unset(store: Store, key: str) -> str:
    store.unset(key)
    return ""


def _num_equal_to(store: Store, value: str) -> str:
    return str(store.num_equal_to(value))


def _begin(store: Store) -> str:
    store.begin()
    return ""


def _rollback(store: Store) -> str:
    return "" if store.rollback() else NO_TRANSACTION


def _commit(store: Store) -> str:
    store.commit()
    return ""


def _end(store: Store) -> str:
    # ending the session is up to the caller
    return ""


HANDLERS: Dict[CommandName, Callable[..., str]] = {
    CommandName.SET: _set,
    CommandName.GET: _get,
    CommandName.UNSET: _unset,
    CommandName.NUMEQUALTO: _num_equal_to,
    CommandName.BEGIN: _begin,
    CommandName.ROLLBACK: _rollback,
    CommandName.COMMIT: _commit,
    CommandName.END: _end,
}

_missing = set(CommandName) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"No handler for {sorted(m.value for m in _missing)}")


def execute(store: Store, command: Command) -> str:
    """Run command against store and return its output line ('' for none)"""
    logger.debug("%s %s", command.name.value, " ".join(command.args))
    return HANDLERS[command.name](store, *command.args)
