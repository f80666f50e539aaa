"""Database repository for generation requests and responses.

Records are stored as JSON documents keyed by id, with the fields used
for lookups (owner, status, idempotency key, lease) mirrored into columns.
Every write is committed before the call returns.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from src.generator.errors import RepositoryError
from src.generator.models import (
    GenerationRequest,
    GenerationResponse,
    IntermediateResults,
    RequestStatus,
)

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS generation_requests (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    status TEXT NOT NULL,
    idempotency_key TEXT,
    attempt INTEGER NOT NULL DEFAULT 1,
    lease_expires_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS generation_responses (
    id TEXT PRIMARY KEY,
    request_id TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL,
    data TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_requests_owner ON generation_requests(owner_id, created_at);
CREATE INDEX IF NOT EXISTS idx_requests_idempotency ON generation_requests(idempotency_key, attempt);
CREATE INDEX IF NOT EXISTS idx_requests_lease ON generation_requests(status, lease_expires_at);
"""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class GenerationRepository:
    """Async SQLite repository for generation records."""

    def __init__(self, db_path: Path | str):
        """Initialize the repository.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = Path(db_path)
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _get_connection(self) -> AsyncGenerator[aiosqlite.Connection, None]:
        """Get the shared database connection, opening it on first use."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row
        yield self._connection

    async def initialize(self) -> None:
        """Initialize the database, creating tables if needed."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._get_connection() as conn:
            await conn.executescript(CREATE_TABLES_SQL)
            await conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    # Requests

    async def insert_request(self, request: GenerationRequest) -> None:
        """Insert a new request record.

        Raises:
            RepositoryError: If the insert fails (including duplicate ids).
        """
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO generation_requests (
                        id, owner_id, status, idempotency_key, attempt,
                        lease_expires_at, created_at, updated_at, data
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        request.id,
                        request.owner_id,
                        request.status.value,
                        request.idempotency_key,
                        request.attempt,
                        _iso(request.lease_expires_at),
                        _iso(request.created_at),
                        _iso(request.updated_at),
                        json.dumps(request.to_dict()),
                    ),
                )
                await conn.commit()
        except (sqlite3.Error, ValueError) as e:
            logger.error(f"Failed to create generation request {request.id}: {e}")
            raise RepositoryError(f"Failed to create request: {e}", e) from e

    async def get_request(self, request_id: str) -> GenerationRequest | None:
        """Get a request by id, or None if it does not exist."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    "SELECT data FROM generation_requests WHERE id = ?", (request_id,)
                )
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to get generation request {request_id}: {e}")
            raise RepositoryError(f"Failed to get request: {e}", e) from e

        if row is None:
            return None
        return self._row_to_request(row)

    async def update_request_fields(
        self,
        request_id: str,
        fields: dict[str, Any],
        expected_status: RequestStatus | None = None,
    ) -> GenerationRequest | None:
        """Apply a partial update and stamp `updated_at`.

        Args:
            request_id: Request to update.
            fields: Top-level fields to overwrite (JSON-compatible values).
            expected_status: When set, the update only applies if the stored
                status still equals it.

        Returns:
            The updated request, or None when `expected_status` did not match.

        Raises:
            RepositoryError: If the request does not exist or the write fails.
        """
        return await self._modify(request_id, lambda data: data.update(fields), expected_status)

    async def merge_intermediate_results(
        self, request_id: str, results: IntermediateResults
    ) -> GenerationRequest:
        """Merge the set fields of `results` into the stored intermediate results."""
        partial = results.model_dump(mode="json", exclude_none=True)

        def merge(data: dict[str, Any]) -> None:
            merged = dict(data.get("intermediate_results") or {})
            merged.update(partial)
            data["intermediate_results"] = merged

        updated = await self._modify(request_id, merge)
        if updated is None:
            raise RepositoryError(f"Request changed concurrently: {request_id}")
        return updated

    async def _modify(
        self,
        request_id: str,
        mutate: Callable[[dict[str, Any]], None],
        expected_status: RequestStatus | None = None,
    ) -> GenerationRequest | None:
        # Read-modify-write; the lock keeps concurrent updates from one
        # process from overwriting each other.
        async with self._write_lock:
            try:
                async with self._get_connection() as conn:
                    cursor = await conn.execute(
                        "SELECT data FROM generation_requests WHERE id = ?", (request_id,)
                    )
                    row = await cursor.fetchone()
                    if row is None:
                        raise RepositoryError(f"Request not found: {request_id}")

                    data = json.loads(row["data"])
                    mutate(data)
                    data["updated_at"] = _iso(_utcnow())
                    updated = GenerationRequest.from_dict(data)

                    sql = """
                        UPDATE generation_requests
                        SET status = ?, lease_expires_at = ?, updated_at = ?, data = ?
                        WHERE id = ?
                    """
                    params: list[Any] = [
                        updated.status.value,
                        _iso(updated.lease_expires_at),
                        _iso(updated.updated_at),
                        json.dumps(updated.to_dict()),
                        request_id,
                    ]
                    if expected_status is not None:
                        sql += " AND status = ?"
                        params.append(expected_status.value)

                    cursor = await conn.execute(sql, params)
                    await conn.commit()
            except RepositoryError:
                raise
            except (sqlite3.Error, ValueError) as e:
                logger.error(f"Failed to update generation request {request_id}: {e}")
                raise RepositoryError(f"Failed to update request: {e}", e) from e

        if cursor.rowcount == 0:
            return None
        return updated

    async def list_requests(
        self, owner_id: str, limit: int | None = None
    ) -> list[GenerationRequest]:
        """List an owner's requests, newest first."""
        sql = "SELECT data FROM generation_requests WHERE owner_id = ? ORDER BY created_at DESC"
        params: list[Any] = [owner_id]
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(sql, params)
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list requests: {e}", e) from e
        return [self._row_to_request(row) for row in rows]

    async def find_latest_by_idempotency_key(
        self, idempotency_key: str, owner_id: str
    ) -> GenerationRequest | None:
        """Return the highest attempt for an owner's idempotency key."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT data FROM generation_requests
                    WHERE idempotency_key = ? AND owner_id = ?
                    ORDER BY attempt DESC LIMIT 1
                    """,
                    (idempotency_key, owner_id),
                )
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to look up idempotency key: {e}", e) from e
        if row is None:
            return None
        return self._row_to_request(row)

    async def list_stalled(self, now: datetime) -> list[GenerationRequest]:
        """Return processing requests whose stage lease expired before `now`."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    """
                    SELECT data FROM generation_requests
                    WHERE status = ? AND lease_expires_at IS NOT NULL
                    """,
                    (RequestStatus.PROCESSING.value,),
                )
                rows = await cursor.fetchall()
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to list stalled requests: {e}", e) from e
        requests = [self._row_to_request(row) for row in rows]
        return [r for r in requests if r.lease_expires_at and r.lease_expires_at < now]

    # Responses

    async def insert_response(self, response: GenerationResponse) -> None:
        """Insert the response for a request. Responses are never updated.

        Raises:
            RepositoryError: If a response for the request already exists or
                the write fails.
        """
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO generation_responses (id, request_id, created_at, data)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        response.id,
                        response.request_id,
                        _iso(response.created_at),
                        json.dumps(response.to_dict()),
                    ),
                )
                await conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to create response for {response.request_id}: {e}")
            raise RepositoryError(f"Failed to create response: {e}", e) from e

    async def get_response(self, response_id: str) -> GenerationResponse | None:
        """Get a response by id, or None if it does not exist."""
        try:
            async with self._get_connection() as conn:
                cursor = await conn.execute(
                    "SELECT data FROM generation_responses WHERE id = ?", (response_id,)
                )
                row = await cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to get response {response_id}: {e}")
            raise RepositoryError(f"Failed to get response: {e}", e) from e

        if row is None:
            return None
        return GenerationResponse.from_dict(json.loads(row["data"]))

    def _row_to_request(self, row: aiosqlite.Row) -> GenerationRequest:
        return GenerationRequest.from_dict(json.loads(row["data"]))
