"""Persistence adapter: remote store first, local storage on any remote failure."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from supabase import Client

from storefront.core.config import get_settings
from storefront.core.exceptions import (
    MalformedRecord,
    NotFoundError,
    PersistenceExhausted,
    RemoteUnavailable,
)
from storefront.core.local_storage import LocalStorage, LocalStorageError, get_shared_storage
from storefront.core.supabase import get_supabase_client
from storefront.services.codecs import RecordCodec

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class PersistenceAdapter:
    """Uniform record operations over Supabase with a local fallback log.

    Every operation tries the remote store first. A remote failure (error
    response, exception, timeout, malformed row, or no remote configured) is
    absorbed and the operation is served from the local log for the record
    kind instead. Records carry a ``source`` telling which store held them.
    Only a failure of both stores reaches the caller, as PersistenceExhausted.
    """

    def __init__(
        self,
        remote: Client | None,
        local: LocalStorage,
        timeout_seconds: float = 10.0,
    ) -> None:
        """Initialize the adapter.

        Args:
            remote: Supabase client, or None when the remote is not configured.
            local: Storage holding the fallback logs.
            timeout_seconds: Remote calls slower than this fall back to local.
        """
        self.remote = remote
        self.local = local
        self.timeout_seconds = timeout_seconds

    async def _remote(self, operation: Callable[[Client], Any], description: str) -> Any:
        if self.remote is None:
            raise RemoteUnavailable("Remote store is not configured")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(operation, self.remote),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as e:
            raise RemoteUnavailable(f"{description} timed out after {self.timeout_seconds}s") from e
        except Exception as e:
            raise RemoteUnavailable(f"{description} failed: {e}") from e

    def _read_log(self, codec: RecordCodec[R]) -> list[dict[str, Any]]:
        entries = self.local.get_json(codec.local_key, default=[])
        if not isinstance(entries, list):
            raise LocalStorageError(f"Local log {codec.local_key!r} is not a list")
        return entries

    def _write_log(self, codec: RecordCodec[R], entries: list[dict[str, Any]]) -> None:
        self.local.set_json(codec.local_key, entries)

    @staticmethod
    def _sort_newest_first(records: list[R]) -> list[R]:
        oldest = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(records, key=lambda r: getattr(r, "created_at", None) or oldest, reverse=True)

    async def commit(self, codec: RecordCodec[R], data: BaseModel) -> R:
        """Durably create a record.

        The id is chosen before the remote attempt so a remote write that
        lands after a timeout and its local copy share one id.

        Args:
            codec: Record kind.
            data: Creation fields.

        Returns:
            The persisted record, tagged with the store that holds it.

        Raises:
            PersistenceExhausted: If neither store accepted the record.
        """
        record = codec.build(data, record_id=str(uuid4()), created_at=datetime.now(timezone.utc))

        try:
            response = await self._remote(
                lambda client: client.table(codec.table).insert(codec.to_row(record)).execute(),
                f"Insert into {codec.table}",
            )
            if not response.data:
                raise RemoteUnavailable(f"Insert into {codec.table} returned no row")
            persisted = codec.from_row(response.data[0])
            logger.info("Committed %s %s to remote store", codec.kind, persisted.id)
            return persisted
        except (RemoteUnavailable, MalformedRecord) as e:
            logger.warning("Remote commit of %s %s failed, using local storage: %s", codec.kind, record.id, e.message)

        local_record = codec.from_local(codec.to_local(record))
        try:
            entries = self._read_log(codec)
            entries.append(codec.to_local(local_record))
            self._write_log(codec, entries)
        except LocalStorageError as e:
            logger.error("Local commit of %s %s failed: %s", codec.kind, record.id, e)
            raise PersistenceExhausted(
                f"Failed to save {codec.kind}: both remote and local storage failed"
            ) from e

        logger.info("Committed %s %s to local storage", codec.kind, local_record.id)
        return local_record

    async def fetch_all(self, codec: RecordCodec[R]) -> list[R]:
        """Fetch every record of a kind from both stores.

        Records present in both stores are returned once, in their remote
        version. The result is ordered newest first.

        Raises:
            PersistenceExhausted: If neither store could be read.
        """
        remote_records: list[R] | None = None
        try:
            response = await self._remote(
                lambda client: client.table(codec.table).select("*").order("created_at", desc=True).execute(),
                f"Select from {codec.table}",
            )
            remote_records = [codec.from_row(row) for row in response.data or []]
        except (RemoteUnavailable, MalformedRecord) as e:
            logger.warning("Remote fetch of %s records failed, using local storage: %s", codec.kind, e.message)

        try:
            local_records = [codec.from_local(entry) for entry in self._read_log(codec)]
        except LocalStorageError as e:
            if remote_records is None:
                raise PersistenceExhausted(f"Failed to read {codec.kind} records from any store") from e
            logger.error("Local %s log unreadable, returning remote records only: %s", codec.kind, e)
            local_records = []

        merged = list(remote_records or [])
        seen = {record.id for record in merged}
        merged.extend(record for record in local_records if record.id not in seen)
        return self._sort_newest_first(merged)

    async def fetch_one(self, codec: RecordCodec[R], record_id: str) -> R:
        """Fetch one record by id, remote first.

        Raises:
            NotFoundError: If neither store holds the record.
        """
        try:
            response = await self._remote(
                lambda client: client.table(codec.table).select("*").eq("id", record_id).execute(),
                f"Select {codec.kind} {record_id}",
            )
            if response.data:
                return codec.from_row(response.data[0])
        except (RemoteUnavailable, MalformedRecord) as e:
            logger.warning("Remote fetch of %s %s failed, using local storage: %s", codec.kind, record_id, e.message)

        try:
            entries = self._read_log(codec)
        except LocalStorageError as e:
            raise PersistenceExhausted(f"Failed to read {codec.kind} {record_id} from any store") from e

        for entry in entries:
            if isinstance(entry, dict) and entry.get("id") == record_id:
                return codec.from_local(entry)

        raise NotFoundError(f"{codec.kind.capitalize()} {record_id} not found")

    async def update(self, codec: RecordCodec[R], record_id: str, patch: dict[str, Any]) -> R:
        """Apply a field-level patch to a record.

        Args:
            codec: Record kind.
            record_id: Record to update.
            patch: Model field names mapped to their new values.

        Returns:
            The updated record.

        Raises:
            NotFoundError: If the remote answered and no store holds the record.
            PersistenceExhausted: If the remote failed and the record has no
                local copy, or the local copy could not be written.
        """
        remote_answered = False
        try:
            current = await self._remote(
                lambda client: client.table(codec.table).select("*").eq("id", record_id).execute(),
                f"Select {codec.kind} {record_id}",
            )
            remote_answered = True
            if current.data:
                changes = codec.patch_row(current.data[0], patch)
                response = await self._remote(
                    lambda client: client.table(codec.table).update(changes).eq("id", record_id).execute(),
                    f"Update {codec.kind} {record_id}",
                )
                if not response.data:
                    raise RemoteUnavailable(f"Update of {codec.kind} {record_id} returned no row")
                updated = codec.from_row(response.data[0])
                logger.info("Updated %s %s in remote store: %s", codec.kind, record_id, sorted(patch))
                return updated
        except (RemoteUnavailable, MalformedRecord) as e:
            remote_answered = False
            logger.warning("Remote update of %s %s failed, using local storage: %s", codec.kind, record_id, e.message)

        try:
            entries = self._read_log(codec)
            for index, entry in enumerate(entries):
                if isinstance(entry, dict) and entry.get("id") == record_id:
                    updated = codec.apply_patch(codec.from_local(entry), patch)
                    entries[index] = codec.to_local(updated)
                    self._write_log(codec, entries)
                    logger.info("Updated %s %s in local storage: %s", codec.kind, record_id, sorted(patch))
                    return updated
        except LocalStorageError as e:
            raise PersistenceExhausted(f"Failed to update {codec.kind} {record_id} in any store") from e

        if remote_answered:
            raise NotFoundError(f"{codec.kind.capitalize()} {record_id} not found")
        raise PersistenceExhausted(
            f"Failed to update {codec.kind} {record_id}: remote store unavailable and no local copy"
        )

    async def delete(self, codec: RecordCodec[R], record_id: str) -> None:
        """Delete a record from whichever stores hold it.

        Raises:
            NotFoundError: If the remote answered and no store held the record.
            PersistenceExhausted: If the remote failed and there was no local copy.
        """
        remote_answered = False
        removed = False
        try:
            response = await self._remote(
                lambda client: client.table(codec.table).delete().eq("id", record_id).execute(),
                f"Delete {codec.kind} {record_id}",
            )
            remote_answered = True
            removed = bool(response.data)
        except RemoteUnavailable as e:
            logger.warning("Remote delete of %s %s failed, using local storage: %s", codec.kind, record_id, e.message)

        try:
            entries = self._read_log(codec)
            remaining = [e for e in entries if not (isinstance(e, dict) and e.get("id") == record_id)]
            if len(remaining) != len(entries):
                self._write_log(codec, remaining)
                removed = True
        except LocalStorageError as e:
            if not removed:
                raise PersistenceExhausted(f"Failed to delete {codec.kind} {record_id} from any store") from e
            logger.error("Local %s log unreadable while deleting %s: %s", codec.kind, record_id, e)

        if removed:
            logger.info("Deleted %s %s", codec.kind, record_id)
            return
        if remote_answered:
            raise NotFoundError(f"{codec.kind.capitalize()} {record_id} not found")
        raise PersistenceExhausted(
            f"Failed to delete {codec.kind} {record_id}: remote store unavailable and no local copy"
        )


@lru_cache
def get_persistence_adapter() -> PersistenceAdapter:
    """Get the process-wide adapter over the configured stores."""
    settings = get_settings()
    return PersistenceAdapter(
        remote=get_supabase_client(),
        local=get_shared_storage(),
        timeout_seconds=settings.remote_timeout_seconds,
    )
