"""Per-property mutual exclusion inside one process.

Intake, sweep, finalize and manual review on the same property serialize on
one asyncio.Lock; different properties never contend. Cross-process
exclusion comes from SELECT ... FOR UPDATE on the property row.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class PropertyLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, property_id: str) -> asyncio.Lock:
        return self._locks[property_id]

    @asynccontextmanager
    async def hold(self, property_id: str) -> AsyncIterator[None]:
        async with self._locks[property_id]:
            yield

    def __len__(self) -> int:
        return len(self._locks)


_locks: PropertyLocks | None = None


def get_property_locks() -> PropertyLocks:
    global _locks  # noqa: PLW0603
    if _locks is None:
        _locks = PropertyLocks()
    return _locks
