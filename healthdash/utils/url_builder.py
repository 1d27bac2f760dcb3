"""
Database URL utilities
"""
import logging
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

logger = logging.getLogger(__name__)


def build_async_url(sync_url: str) -> str:
    """
    Convert a plain database URL to its async driver form

    postgres:// and postgresql:// become postgresql+asyncpg:// (sslmode is
    dropped from the query string since asyncpg does not accept it there),
    sqlite:// becomes sqlite+aiosqlite://. URLs that already name a driver
    are returned unchanged.

    Args:
        sync_url: Original database URL

    Returns:
        Async-compatible database URL
    """
    if not sync_url:
        return sync_url

    parts = urlsplit(sync_url)
    scheme = parts.scheme

    if "+" in scheme:
        return sync_url

    if scheme.startswith("postgres"):
        query_pairs = dict(parse_qsl(parts.query, keep_blank_values=True))
        query_pairs.pop("sslmode", None)
        new_query = urlencode(query_pairs) if query_pairs else ""

        new_parts = ("postgresql+asyncpg", parts.netloc, parts.path, new_query, parts.fragment)
        return urlunsplit(new_parts)

    if scheme == "sqlite":
        return "sqlite+aiosqlite" + sync_url[len("sqlite"):]

    logger.warning("Unrecognised database scheme '%s', using URL as-is", scheme)
    return sync_url


def is_sqlite_url(database_url: str) -> bool:
    """Check whether a URL points at SQLite (any driver)"""
    return bool(database_url) and urlsplit(database_url).scheme.split("+")[0] == "sqlite"


def requires_ssl(database_url: str, sslmode: str = None) -> bool:
    """Whether the connection should be made over SSL"""
    if not database_url or is_sqlite_url(database_url):
        return False
    return "sslmode=require" in database_url.lower() or sslmode == "require"
