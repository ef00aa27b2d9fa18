# =============================================================================
# synka_core/data/supabase_client.py
# Supabase implementation of the RemoteDataService contract
# =============================================================================

from __future__ import annotations
from typing import Any, List, Optional, Sequence, Union
import logging

from supabase import AsyncClient, acreate_client

from synka_core.config import SyncSettings
from synka_core.data.remote import Filters, Row
from synka_core.errors import ConfigurationError, RemoteServiceError

logger = logging.getLogger(__name__)


async def create_supabase_client(settings: SyncSettings) -> AsyncClient:
    """
    Build an async Supabase client from settings.

    Expects secrets in .streamlit/secrets.toml:
        [supabase]
        url = "https://your-project.supabase.co"
        key = "your-anon-key"
    """
    if not settings.has_supabase:
        raise ConfigurationError(
            "Supabase credentials not found. Configure [supabase] url/key in secrets.toml",
            config_key="supabase",
        )
    client = await acreate_client(settings.supabase_url, settings.supabase_key)
    logger.info("Supabase client initialized")
    return client


class SupabaseDataService:
    """
    Generic table access over ``supabase.AsyncClient``.

    Usage:
        client = await create_supabase_client(settings)
        remote = SupabaseDataService(client)
        rows = await remote.list("tags", {"user_id": uid}, order_by="created_at")
    """

    BATCH_SIZE = 1000  # PostgREST row limit per request

    def __init__(self, client: AsyncClient):
        self.client = client

    @staticmethod
    def _apply_filters(query, filters: Optional[Filters]):
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        return query

    async def list(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        columns: str = "*",
    ) -> List[Row]:
        """
        Fetch ALL matching rows (pages through the 1000 row limit).
        """
        rows: List[Row] = []
        offset = 0
        try:
            while True:
                query = self._apply_filters(self.client.table(table).select(columns), filters)
                if order_by:
                    query = query.order(order_by, desc=not ascending)
                response = await query.range(offset, offset + self.BATCH_SIZE - 1).execute()

                if not response.data:
                    break
                rows.extend(response.data)
                if len(response.data) < self.BATCH_SIZE:
                    break
                offset += self.BATCH_SIZE
        except Exception as e:
            raise RemoteServiceError(f"Error fetching {table}: {e}", table=table, operation="list") from e

        logger.debug(f"Fetched {len(rows)} rows from {table}")
        return rows

    async def list_in(
        self,
        table: str,
        column: str,
        values: Sequence[Any],
        columns: str = "*",
    ) -> List[Row]:
        if not values:
            return []
        try:
            response = await self.client.table(table).select(columns).in_(column, list(values)).execute()
        except Exception as e:
            raise RemoteServiceError(f"Error fetching {table}: {e}", table=table, operation="list_in") from e
        return response.data or []

    async def insert(self, table: str, rows: Union[Row, List[Row]]) -> List[Row]:
        try:
            response = await self.client.table(table).insert(rows).execute()
        except Exception as e:
            raise RemoteServiceError(f"Error inserting into {table}: {e}", table=table, operation="insert") from e
        return response.data or []

    async def update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        if not filters:
            raise RemoteServiceError("Refusing unfiltered update", table=table, operation="update")
        try:
            query = self._apply_filters(self.client.table(table).update(values), filters)
            response = await query.execute()
        except Exception as e:
            raise RemoteServiceError(f"Error updating {table}: {e}", table=table, operation="update") from e
        return response.data or []

    async def delete(self, table: str, filters: Filters) -> None:
        if not filters:
            raise RemoteServiceError("Refusing unfiltered delete", table=table, operation="delete")
        try:
            query = self._apply_filters(self.client.table(table).delete(), filters)
            await query.execute()
        except Exception as e:
            raise RemoteServiceError(f"Error deleting from {table}: {e}", table=table, operation="delete") from e
