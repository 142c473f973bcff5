"""
Supabase Query Helpers
Shared execution and filter-building for the Supabase-backed stores
"""
import logging
import re
from typing import Any

import httpx
from postgrest.exceptions import APIError

from leadpool.domain.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000
INSERT_CHUNK_SIZE = 500
IN_FILTER_CHUNK_SIZE = 200

# Characters with meaning inside a PostgREST or=() expression
_RESERVED = re.compile(r'[,.:()"*%\\]')


def execute_query(query: Any, operation: str) -> Any:
    """
    Run a PostgREST query builder.

    Raises:
        StoreUnavailableError: On API or transport errors
    """
    try:
        return query.execute()
    except APIError as e:
        logger.error(f"Supabase {operation} failed: {e.message}", exc_info=True)
        raise StoreUnavailableError(f"{operation} failed: {e.message}")
    except httpx.HTTPError as e:
        logger.error(f"Supabase {operation} request error: {e}", exc_info=True)
        raise StoreUnavailableError(f"{operation} failed: data store unreachable")


def quote_value(value: str) -> str:
    """Double-quote a value for use inside an or=() filter"""
    return '"' + value.replace('"', '') + '"'


def sanitize_search_term(term: str) -> str:
    """Strip characters that would break an or=() ilike pattern"""
    return _RESERVED.sub(" ", term or "").strip()


def chunked(items: list, size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]
