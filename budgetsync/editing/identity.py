"""
Identity allocation for working-copy rows.

Local ids come from a monotonic counter owned by the allocator, so two
rows added in the same session can never collide, and removing a row
never shifts the identity of another.
"""

import itertools

from budgetsync.models.editing import EntryId


class IdentityAllocator:
    """Hands out `local:<n>` ids and wraps server ids."""

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def allocate(self) -> EntryId:
        return EntryId.local(next(self._counter))

    @staticmethod
    def persisted(server_id: str) -> EntryId:
        return EntryId.persisted(server_id)
