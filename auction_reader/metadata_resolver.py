#!/usr/bin/env python3
"""
Fetch asset metadata documents through an IPFS HTTP gateway.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from auction_reader.config import get_settings
from auction_reader.errors import MetadataUnavailable

logger = logging.getLogger(__name__)

CONTENT_SCHEMES = ("ipfs://",)


def strip_scheme(uri: str) -> str:
    """Content hash (plus optional path) of a URI, with or without the ipfs:// prefix"""
    value = uri.strip()
    for scheme in CONTENT_SCHEMES:
        if value.lower().startswith(scheme):
            value = value[len(scheme):]
            break
    value = value.lstrip('/')
    if value.startswith("ipfs/"):
        value = value[len("ipfs/"):]
    return value


def to_gateway_url(uri: str, gateway: str) -> str:
    """<gateway>/ipfs/<hash> for a content-addressable URI.

    Plain http(s) URLs are returned unchanged.
    """
    if uri.startswith(("http://", "https://")):
        return uri
    return f"{gateway.rstrip('/')}/ipfs/{strip_scheme(uri)}"


class MetadataResolver:
    """Resolves metadata URIs to parsed JSON documents with one GET each"""

    def __init__(
        self,
        gateway: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        current = get_settings()
        self.gateway = (gateway or current.ipfs_gateway).rstrip('/')
        self._timeout = aiohttp.ClientTimeout(total=timeout if timeout is not None else current.metadata_timeout)
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "MetadataResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def gateway_url(self, uri: str) -> str:
        return to_gateway_url(uri, self.gateway)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def resolve(self, uri: str) -> Dict[str, Any]:
        """Fetch and parse the document behind uri.

        Raises MetadataUnavailable on network errors, non-2xx responses,
        bodies that are not JSON, and JSON that is not an object.
        """
        if not uri or not strip_scheme(uri):
            raise MetadataUnavailable("Empty metadata URI")
        url = self.gateway_url(uri)
        session = self._get_session()
        try:
            async with session.get(url) as response:
                response.raise_for_status()
                document = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Metadata fetch failed for {url}: {e}")
            raise MetadataUnavailable(f"Failed to fetch metadata from {url}: {e}", url) from e
        except ValueError as e:
            logger.warning(f"Metadata at {url} is not JSON: {e}")
            raise MetadataUnavailable(f"Metadata at {url} is not valid JSON", url) from e

        if not isinstance(document, dict):
            raise MetadataUnavailable(f"Metadata at {url} is not a JSON object", url)
        logger.debug(f"Resolved metadata from {url}")
        return document
