"""
Write access (insert / update / delete) against Supabase tables.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import httpx
from supabase import Client, PostgrestAPIError

from crm_dashboard.errors import MutationError

logger = logging.getLogger(__name__)


def _execute(query: Any, table: str, action: str) -> List[Dict[str, Any]]:
    try:
        response = query.execute()
    except PostgrestAPIError as exc:
        logger.error("%s on %s failed: %s (code=%s)", action, table, exc.message, exc.code)
        raise MutationError(table, exc.message or str(exc)) from exc
    except httpx.HTTPError as exc:
        logger.error("%s on %s failed: %s", action, table, exc)
        raise MutationError(table, f"request failed: {exc}") from exc
    return response.data or []


def _match(query: Any, match: Mapping[str, Any]) -> Any:
    if not match:
        raise ValueError("at least one match column is required")
    for column, value in match.items():
        query = query.eq(column, value)
    return query


def insert_row(client: Client, table: str, values: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Insert one row and return the stored representation."""
    rows = _execute(client.table(table).insert([dict(values)]), table, "Insert")
    logger.info("Inserted row into %s", table)
    return rows


def insert_returning_id(client: Client, table: str, values: Mapping[str, Any]) -> str:
    rows = insert_row(client, table, values)
    if not rows or rows[0].get("id") is None:
        raise MutationError(table, "insert returned no id")
    return str(rows[0]["id"])


def update_rows(
    client: Client,
    table: str,
    values: Mapping[str, Any],
    match: Mapping[str, Any],
) -> List[Dict[str, Any]]:
    """Update every row of ``table`` whose columns equal ``match``."""
    query = _match(client.table(table).update(dict(values)), match)
    rows = _execute(query, table, "Update")
    logger.info("Updated %s where %s", table, dict(match))
    return rows


def delete_rows(client: Client, table: str, match: Mapping[str, Any]) -> List[Dict[str, Any]]:
    query = _match(client.table(table).delete(), match)
    rows = _execute(query, table, "Delete")
    logger.info("Deleted from %s where %s", table, dict(match))
    return rows
