"""SqlDatastore: SQLAlchemy async implementation of the Datastore interface.

The profile transaction takes a row-level lock (SELECT ... FOR UPDATE) inside
``session.begin()``, so concurrent commits against one username serialise on
the database and a raised exception rolls everything back.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.attributes import flag_modified

from app.db.datastore import (
    Datastore,
    ProfileSnapshot,
    ProfileTransaction,
    T,
    apply_media_update,
    snapshot_from_document,
)
from app.db.models.config_document import ConfigDocument
from app.db.models.profile import Profile
from app.db.models.user_account import UserAccount


class _SqlProfileTransaction(ProfileTransaction):
    def __init__(self, username: str, row: Profile | None) -> None:
        super().__init__(username)
        self.row = row

    async def read(self) -> ProfileSnapshot | None:
        if self.row is None:
            return None
        return snapshot_from_document(self.username, self.row.to_document())


class SqlDatastore(Datastore):
    """Datastore backed by the relational database through an injected session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def get_subscription(self, uid: str) -> dict | None:
        async with self.session_factory() as session:
            result = await session.execute(select(UserAccount).where(UserAccount.uid == uid))
            account = result.scalar_one_or_none()
            if account is None:
                return None
            return {"plan": account.plan, "planExpiresAt": account.plan_expires_at}

    async def get_profile(self, username: str) -> ProfileSnapshot | None:
        async with self.session_factory() as session:
            result = await session.execute(select(Profile).where(Profile.username == username))
            profile = result.scalar_one_or_none()
            if profile is None:
                return None
            return snapshot_from_document(username, profile.to_document())

    async def get_config_document(self, name: str) -> Any | None:
        async with self.session_factory() as session:
            result = await session.execute(select(ConfigDocument).where(ConfigDocument.name == name))
            document = result.scalar_one_or_none()
            return document.data if document is not None else None

    async def put_config_document(self, name: str, data: Any, overwrite: bool = False) -> bool:
        async with self.session_factory() as session:
            result = await session.execute(select(ConfigDocument).where(ConfigDocument.name == name))
            existing = result.scalar_one_or_none()

            if existing is not None:
                if not overwrite:
                    return False
                existing.data = data
                flag_modified(existing, "data")
                await session.commit()
                return True

            try:
                session.add(ConfigDocument(name=name, data=data))
                await session.commit()
                return True
            except IntegrityError:
                # Concurrent seeder inserted it first
                await session.rollback()
                return False

    async def run_profile_transaction(
        self,
        username: str,
        fn: Callable[[ProfileTransaction], Awaitable[T]],
    ) -> T:
        async with self.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(Profile)
                    .where(Profile.username == username)
                    .with_for_update()  # Row-level lock
                )
                row = result.scalar_one_or_none()

                txn = _SqlProfileTransaction(username, row)
                outcome = await fn(txn)

                if txn.pending is not None:
                    if row is None:
                        raise RuntimeError(f"Cannot write media for missing profile {username!r}")
                    row.media = apply_media_update(row.media, txn.pending)
                    flag_modified(row, "media")

            return outcome
