"""Per-destination locks and upload session leases."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Callable, Dict, Optional

from relay.exceptions import DestinationBusyError

logger = logging.getLogger(__name__)


@dataclass
class SessionLease:
    """
    Ownership of a destination name by one upload session.
    """
    session_id: str
    expires_at: float


@dataclass
class _NamedLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class DestinationLocks:
    """
    Serializes writes per destination name and tracks which upload session
    owns each name.

    A lease is renewed by every chunk of its session and expires after
    ``lease_ttl`` seconds of inactivity. Locks exist only while some writer
    holds or awaits them; expired leases are pruned on the next claim.
    """

    def __init__(self, lease_ttl: float, clock: Callable[[], float] = time.monotonic):
        self.lease_ttl = lease_ttl
        self._clock = clock
        self._locks: Dict[str, _NamedLock] = {}
        self._leases: Dict[str, SessionLease] = {}

    @asynccontextmanager
    async def lock(self, name: str) -> AsyncIterator[None]:
        """
        Hold the lock guarding a destination name.

        Args:
            name: Destination file name

        Usage:
            async with locks.lock(name): ...
        """
        entry = self._locks.get(name)
        if entry is None:
            entry = _NamedLock()
            self._locks[name] = entry
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[name]

    def claim(self, name: str, session_id: str) -> None:
        """
        Claim or renew the lease on a destination for a session.

        Must be called while holding ``lock(name)``.

        Args:
            name: Destination file name
            session_id: Upload session identifier

        Raises:
            DestinationBusyError: If a different session holds a live lease
        """
        now = self._clock()
        self._prune(now)
        lease = self._leases.get(name)

        if lease and lease.session_id != session_id:
            logger.warning(
                f"Destination busy: {name} held by session {lease.session_id}, "
                f"rejected session {session_id}"
            )
            raise DestinationBusyError(
                f"Destination '{name}' is in use by another upload session"
            )

        if lease is None:
            logger.debug(f"Session {session_id} claimed destination {name}")
        self._leases[name] = SessionLease(session_id=session_id, expires_at=now + self.lease_ttl)

    def ensure_unleased(self, name: str) -> None:
        """
        Check that no upload session currently owns a destination.

        Must be called while holding ``lock(name)``.

        Raises:
            DestinationBusyError: If any session holds a live lease
        """
        holder = self.holder(name)
        if holder is not None:
            logger.warning(f"Destination busy: {name} held by session {holder}")
            raise DestinationBusyError(
                f"Destination '{name}' is in use by upload session {holder}"
            )

    def release(self, name: str) -> None:
        """
        Drop the lease on a destination, if any.

        Args:
            name: Destination file name
        """
        if self._leases.pop(name, None) is not None:
            logger.debug(f"Released lease on {name}")

    def holder(self, name: str) -> Optional[str]:
        """
        Get the session currently holding a live lease on a name.

        Args:
            name: Destination file name

        Returns:
            Session id, or None if unleased or expired
        """
        lease = self._leases.get(name)
        if lease and lease.expires_at > self._clock():
            return lease.session_id
        return None

    def _prune(self, now: float) -> None:
        expired = [name for name, lease in self._leases.items() if lease.expires_at <= now]
        for name in expired:
            del self._leases[name]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired leases")
