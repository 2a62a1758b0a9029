"""
FiveM server list client

Fetches the single-server snapshot (metadata + connected players) by CFX code
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from fivem_bot_detection.core.types import Entity, ServerMetadata
from fivem_bot_detection.utils.logger_setup import get_logger

logger = get_logger(__name__)


class ServerDataError(RuntimeError):
    """Server snapshot could not be fetched or is malformed"""


def parse_server_payload(payload: Any) -> Tuple[ServerMetadata, List[Entity]]:
    """
    Split a server-list response into metadata and the player snapshot

    Raises:
        ServerDataError: If the payload lacks Data.players
    """
    data = payload.get('Data') if isinstance(payload, dict) else None
    if not isinstance(data, dict) or not isinstance(data.get('players'), list):
        raise ServerDataError("Invalid server data structure")

    entities = [Entity.from_raw(player) for player in data['players'] if isinstance(player, dict)]
    return ServerMetadata.from_raw(data), entities


class FiveMClient:
    """Minimal aiohttp client for the FiveM servers frontend API"""

    def __init__(self, api_url: str, request_timeout_s: float = 30.0):
        """
        Args:
            api_url: Base URL, the CFX code is appended
            request_timeout_s: Total request timeout in seconds
        """
        self.api_url = api_url
        self.request_timeout_s = request_timeout_s
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        """Initialize aiohttp session"""
        if not self.session:
            self.session = aiohttp.ClientSession(headers={"Accept": "application/json"})

    async def stop(self):
        """Close aiohttp session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> 'FiveMClient':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _get_json(self, url: str) -> Any:
        if not self.session:
            await self.start()

        async with self.session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=self.request_timeout_s)
        ) as response:
            if response.status != 200:
                raise ServerDataError(f"Server list returned HTTP {response.status}")
            return await response.json(content_type=None)

    async def fetch_server(self, cfxcode: str) -> Dict[str, Any]:
        """
        Download the raw server snapshot

        Raises:
            ServerDataError: On HTTP/transport errors, timeouts or an invalid payload
        """
        url = f"{self.api_url}{cfxcode}"
        logger.debug("fetching_server_data", url=url)

        try:
            payload = await self._get_json(url)
        except asyncio.TimeoutError:
            raise ServerDataError(f"Timed out fetching server data for {cfxcode}")
        except aiohttp.ClientError as e:
            raise ServerDataError(f"Failed to download server data: {e}")
        except ValueError as e:
            raise ServerDataError(f"Failed to parse server data: {e}")

        # Validate before handing it on
        parse_server_payload(payload)
        return payload
