"""InMemoryDatastore: deterministic Datastore for tests and local development.

Documents are plain dicts shaped like the stored records, so tests can seed
loosely typed data (string expiries, malformed media) exactly as the
production documents may contain it. A per-username asyncio.Lock gives the
profile transaction the same serialisation the SQL row lock provides.
"""

import asyncio
import copy
from collections import defaultdict
from collections.abc import Awaitable, Callable
from typing import Any

from app.db.datastore import (
    Datastore,
    ProfileSnapshot,
    ProfileTransaction,
    T,
    apply_media_update,
    snapshot_from_document,
)


class _MemoryProfileTransaction(ProfileTransaction):
    def __init__(self, username: str, document: dict | None) -> None:
        super().__init__(username)
        self.document = document

    async def read(self) -> ProfileSnapshot | None:
        # Yield once so concurrent callers genuinely interleave around the lock
        await asyncio.sleep(0)
        if self.document is None:
            return None
        return snapshot_from_document(self.username, self.document)


class InMemoryDatastore(Datastore):
    def __init__(
        self,
        profiles: dict[str, dict] | None = None,
        users: dict[str, dict] | None = None,
        config_documents: dict[str, Any] | None = None,
    ):
        self.profiles: dict[str, dict] = profiles if profiles is not None else {}
        self.users: dict[str, dict] = users if users is not None else {}
        self.config_documents: dict[str, Any] = config_documents if config_documents is not None else {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def get_subscription(self, uid: str) -> dict | None:
        await asyncio.sleep(0)
        record = self.users.get(uid)
        return copy.deepcopy(record) if record is not None else None

    async def get_profile(self, username: str) -> ProfileSnapshot | None:
        document = self.profiles.get(username)
        if document is None:
            return None
        return snapshot_from_document(username, copy.deepcopy(document))

    async def get_config_document(self, name: str) -> Any | None:
        return copy.deepcopy(self.config_documents.get(name))

    async def put_config_document(self, name: str, data: Any, overwrite: bool = False) -> bool:
        if name in self.config_documents and not overwrite:
            return False
        self.config_documents[name] = copy.deepcopy(data)
        return True

    async def run_profile_transaction(
        self,
        username: str,
        fn: Callable[[ProfileTransaction], Awaitable[T]],
    ) -> T:
        async with self._locks[username]:
            document = copy.deepcopy(self.profiles.get(username))
            txn = _MemoryProfileTransaction(username, document)

            outcome = await fn(txn)

            if txn.pending is not None:
                stored = self.profiles.get(username)
                if stored is None:
                    raise RuntimeError(f"Cannot write media for missing profile {username!r}")
                stored["media"] = apply_media_update(stored.get("media"), txn.pending)

            return outcome
