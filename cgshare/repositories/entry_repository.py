# cgshare/repositories/entry_repository.py
# Repository for short-lived share entries with lazy expiry

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

import bcrypt
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cgshare import config
from cgshare.constants import EntryType, MAX_INSERT_ATTEMPTS
from cgshare.db.base import AsyncSessionFactory
from cgshare.middleware.error_handler import (
    HashingError,
    MalformedPayloadError,
    NotFoundError,
    StorageError,
)
from cgshare.models.entries_table import entries
from cgshare.schemas.entries import EntryPayload, PAYLOAD_MODELS
from cgshare.utils import codec
from cgshare.utils.ids import generate_id
from cgshare.utils.logger import log_exception, log_info


@dataclass(frozen=True)
class Entry:
    id: str
    created: int
    type: EntryType
    password_hash: Optional[bytes]
    data: bytes


class EntryRepository:
    """Entry persistence.

    Every operation first deletes entries whose age reached the TTL, in the
    same transaction, so no caller ever observes an expired entry.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], float] = time.time,
        ttl_seconds: int = config.ENTRY_TTL_SECONDS,
        bcrypt_rounds: int = config.BCRYPT_ROUNDS,
        id_generator: Callable[[], str] = generate_id,
    ):
        self._session_factory = session_factory or AsyncSessionFactory
        self._clock = clock
        self._generate_id = id_generator
        self.ttl_seconds = ttl_seconds
        self.bcrypt_rounds = bcrypt_rounds

    def now(self) -> int:
        return int(self._clock())

    async def _sweep(self, session: AsyncSession, now: int) -> int:
        # Alive while now - created < ttl, so created == now - ttl is already gone
        result = await session.execute(
            delete(entries).where(entries.c.created <= now - self.ttl_seconds)
        )
        return result.rowcount or 0

    async def _hash_password(self, password: str) -> bytes:
        try:
            # bcrypt is CPU-bound, keep it off the event loop
            return await asyncio.to_thread(
                bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt(rounds=self.bcrypt_rounds)
            )
        except (ValueError, TypeError) as e:
            log_exception(e, "EntryRepository: failed to generate password hash")
            raise HashingError() from e

    async def put(self, entry_type: EntryType, payload: EntryPayload, password: str | None = None) -> str:
        """Store a payload and return its generated ID."""
        if not isinstance(payload, PAYLOAD_MODELS[entry_type]):
            raise TypeError(f"{type(payload).__name__} is not a {entry_type.label} payload")

        password_hash = await self._hash_password(password) if password else None
        data = codec.encode(payload)

        for attempt in range(1, MAX_INSERT_ATTEMPTS + 1):
            entry_id = self._generate_id()
            now = self.now()
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        swept = await self._sweep(session, now)
                        await session.execute(
                            insert(entries).values(
                                id=entry_id,
                                created=now,
                                type=int(entry_type),
                                password_hash=password_hash,
                                data=data,
                            )
                        )
            except IntegrityError:
                log_info(f"EntryRepository: id collision on {entry_id} (attempt {attempt})")
                continue
            except SQLAlchemyError as e:
                log_exception(e, "EntryRepository: failed to store entry")
                raise StorageError() from e

            if swept:
                log_info(f"EntryRepository: removed {swept} expired entries")
            log_info(f"EntryRepository: stored {entry_type.label} entry id={entry_id}")
            return entry_id

        log_info(f"EntryRepository: giving up after {MAX_INSERT_ATTEMPTS} id collisions")
        raise StorageError()

    async def get(self, entry_id: str) -> Entry:
        """Load an entry by ID. Raises NotFoundError if it is missing or expired."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._sweep(session, self.now())
                    result = await session.execute(
                        select(entries).where(entries.c.id == entry_id)
                    )
                    row = result.mappings().first()
        except SQLAlchemyError as e:
            log_exception(e, "EntryRepository: failed to find entry by id")
            raise StorageError() from e

        if row is None:
            raise NotFoundError(f"No entry stored at {entry_id}.")

        try:
            entry_type = EntryType(row["type"])
        except ValueError:
            raise MalformedPayloadError(f"Entry {entry_id} has unknown type {row['type']}.") from None

        return Entry(
            id=row["id"],
            created=row["created"],
            type=entry_type,
            password_hash=row["password_hash"],
            data=row["data"],
        )

    async def delete(self, entry_id: str) -> None:
        """Remove an entry. Deleting a missing entry is not an error."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await self._sweep(session, self.now())
                    await session.execute(delete(entries).where(entries.c.id == entry_id))
        except SQLAlchemyError as e:
            log_exception(e, "EntryRepository: failed to delete entry")
            raise StorageError() from e

    async def sweep(self) -> int:
        """Delete expired entries and return how many were removed."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    return await self._sweep(session, self.now())
        except SQLAlchemyError as e:
            log_exception(e, "EntryRepository: failed to delete expired entries")
            raise StorageError() from e
