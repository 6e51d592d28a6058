"""
In-memory Key-Value Store with Nested Transactions

A single-process key-value store that supports nested BEGIN/ROLLBACK/COMMIT
blocks and answers "how many keys hold value V" in constant time, even while
uncommitted writes are pending.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging


logger = logging.getLogger(__name__)


@dataclass
class TxnFrame:
    """
    Bookkeeping for one open transaction block.

    Attributes:
        local_writes: Latest value this block wrote per key (None means unset)
        freq_delta: Net change this block made to the frequency index per value
    """
    local_writes: Dict[str, Optional[str]] = field(default_factory=dict)
    freq_delta: Dict[str, int] = field(default_factory=dict)


# Custom Exceptions
class StoreError(Exception):
    """Base class for errors reported by the store"""
    pass


class InvalidKeyError(StoreError, ValueError):
    """Raised when a key is empty or not a string"""
    pass


class Store(ABC):
    """Abstract base class for a transactional key-value store"""

    @abstractmethod
    def set(self, key: str, value: Optional[str]) -> None:
        """Set key to value (None unsets it)"""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the effective value of key, or None"""
        pass

    @abstractmethod
    def unset(self, key: str) -> None:
        """Remove key"""
        pass

    @abstractmethod
    def num_equal_to(self, value: str) -> int:
        """Count keys whose effective value equals value"""
        pass

    @abstractmethod
    def begin(self) -> None:
        """Open a new (possibly nested) transaction block"""
        pass

    @abstractmethod
    def rollback(self) -> bool:
        """Discard the innermost transaction block"""
        pass

    @abstractmethod
    def commit(self) -> bool:
        """Make every open transaction block permanent"""
        pass

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        """True while at least one transaction block is open"""
        pass

    def end(self) -> bool:
        """Commit whatever is still open; returns True if anything was committed"""
        return self.commit()


class InMemoryStore(Store):
    """
    Main in-memory store implementation.

    State:
    - committed: authoritative data, only written outside transactions or by commit
    - history: per-key stack of values written by open blocks, newest last
    - freq: value -> number of keys whose *effective* value it is
    - frames: stack of open TxnFrame records, innermost last

    Reads never walk the frames: the top of a key's history stack is its
    current value. The frequency index is updated eagerly on every write and
    compensated from the frame's freq_delta on rollback.
    """

    def __init__(self) -> None:
        """Initialize an empty store"""
        self._committed: Dict[str, str] = {}
        self._history: Dict[str, List[Optional[str]]] = {}
        self._freq: Dict[str, int] = {}
        self._frames: List[TxnFrame] = []

    # ---- introspection ----
    @property
    def in_transaction(self) -> bool:
        return bool(self._frames)

    @property
    def depth(self) -> int:
        """Number of open transaction blocks"""
        return len(self._frames)

    @property
    def committed(self) -> Dict[str, str]:
        """Copy of the committed data"""
        return dict(self._committed)

    # ---- helpers ----
    def _effective(self, key: str) -> Optional[str]:
        """Current value of key, accounting for open blocks"""
        if self._frames:
            states = self._history.get(key)
            if states is not None:
                return states[-1]
        return self._committed.get(key)

    def _adjust(self, value: str, delta: int) -> None:
        """Apply delta to the frequency of value, recording it on the open block"""
        count = self._freq.get(value, 0) + delta
        if count:
            self._freq[value] = count
        else:
            self._freq.pop(value, None)

        if self._frames:
            local = self._frames[-1].freq_delta
            net = local.get(value, 0) + delta
            if net:
                local[value] = net
            else:
                local.pop(value, None)

    # ---- public API ----
    def set(self, key: str, value: Optional[str]) -> None:
        """Set key to value in the innermost scope; None unsets the key"""
        if not isinstance(key, str) or not key:
            raise InvalidKeyError(f"Invalid key {key!r}: must be a non-empty string")

        if self._frames:
            scope: Dict[str, Optional[str]] = self._frames[-1].local_writes
        else:
            scope = self._committed  # type: ignore[assignment]

        previous = self._effective(key)
        written_here = key in scope
        local_value = scope.get(key)

        # same value already written in this scope
        if written_here and local_value == value:
            return
        # unsetting something that is already gone
        if not written_here and value is None and previous is None:
            return

        if value is not None:
            self._adjust(value, 1)

        old = local_value if written_here else previous
        if old is not None:
            self._adjust(old, -1)

        if value is None and not self._frames:
            del self._committed[key]
        else:
            scope[key] = value

        if self._frames:
            states = self._history.setdefault(key, [])
            if written_here:
                # one history entry per block: overwrite this block's entry
                states[-1] = value
            else:
                states.append(value)

    def get(self, key: str) -> Optional[str]:
        """Get the effective value of key, or None if it has no value"""
        return self._effective(key)

    def unset(self, key: str) -> None:
        """Unset key; same as set(key, None)"""
        self.set(key, None)

    def num_equal_to(self, value: str) -> int:
        """Number of keys whose effective value equals value"""
        return self._freq.get(value, 0)

    def begin(self) -> None:
        """Open a new transaction block on top of the current ones"""
        self._frames.append(TxnFrame())
        logger.debug("BEGIN (depth=%d)", len(self._frames))

    def rollback(self) -> bool:
        """
        Discard the innermost transaction block.

        Returns False (and changes nothing) when no block is open.
        """
        if not self._frames:
            logger.debug("ROLLBACK with no open transaction")
            return False

        frame = self._frames.pop()

        # undo this block's history entries
        for key in frame.local_writes:
            states = self._history[key]
            states.pop()
            if not states:
                del self._history[key]

        # compensate the frequency index
        for value, delta in frame.freq_delta.items():
            count = self._freq.get(value, 0) - delta
            if count:
                self._freq[value] = count
            else:
                self._freq.pop(value, None)

        logger.debug(
            "ROLLBACK (keys=%d, values=%d, depth=%d)",
            len(frame.local_writes), len(frame.freq_delta), len(self._frames),
        )
        return True

    def commit(self) -> bool:
        """
        Flatten every open transaction block into the committed data.

        Committing with nothing open is a no-op and returns False.
        """
        if not self._frames:
            logger.debug("COMMIT with no open transaction (ignored)")
            return False

        for key, states in self._history.items():
            value = states[-1]
            if value is None:
                self._committed.pop(key, None)
            else:
                self._committed[key] = value

        logger.debug("COMMIT (keys=%d, blocks=%d)", len(self._history), len(self._frames))
        self._frames.clear()
        self._history.clear()
        return True
