"""
Supabase client construction and read access for the dashboard pages.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

import httpx
import streamlit as st
from pydantic import BaseModel, ValidationError
from supabase import Client, PostgrestAPIError, create_client

from crm_dashboard.config import Settings
from crm_dashboard.errors import DataFetchError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


@st.cache_resource(show_spinner=False)
def _client_impl(url: str, key: str) -> Client:
    """Cached by url/key so every page and rerun shares one client."""
    logger.info("Creating Supabase client for %s", url)
    return create_client(url, key)


def get_client(settings: Settings) -> Client:
    return _client_impl(settings.supabase_url, settings.supabase_key)


def fetch_rows(
    client: Client,
    table: str,
    columns: str = "*",
    order_by: Optional[str] = None,
    descending: bool = True,
    filters: Optional[Mapping[str, Any]] = None,
    in_filters: Optional[Mapping[str, Sequence[Any]]] = None,
    model: Optional[Type[M]] = None,
) -> List[Any]:
    """Select rows from ``table`` and optionally validate them into ``model``.

    ``filters`` are equality filters (``column -> value``) and ``in_filters``
    membership filters (``column -> values``). Backend errors, failed requests
    and rows that fail validation all surface as :class:`DataFetchError`.
    """
    query = client.table(table).select(columns)
    for column, value in (filters or {}).items():
        query = query.eq(column, value)
    for column, values in (in_filters or {}).items():
        query = query.in_(column, list(values))
    if order_by:
        query = query.order(order_by, desc=descending)

    try:
        response = query.execute()
    except PostgrestAPIError as exc:
        raise DataFetchError(table, exc.message or str(exc), exc.code, exc.details) from exc
    except httpx.HTTPError as exc:
        logger.error("Request to %s failed: %s", table, exc)
        raise DataFetchError(table, f"request failed: {exc}") from exc

    raw: List[Dict[str, Any]] = response.data or []
    logger.debug("Fetched %d rows from %s", len(raw), table)
    if model is None:
        return raw
    try:
        return [model.model_validate(row) for row in raw]
    except ValidationError as exc:
        raise DataFetchError(table, f"unexpected row shape ({exc.error_count()} errors)") from exc
