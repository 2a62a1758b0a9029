"""
Steam Web API client for player summaries

Lookups are bounded by a semaphore, spaced by a fixed rate-limit delay and
retried on timeout with linear backoff. Every failure resolves to None.
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from fivem_bot_detection.core.types import IdentityProfile
from fivem_bot_detection.utils.logger_setup import get_logger

logger = get_logger(__name__)


def extract_player(payload: Any) -> Optional[Dict[str, Any]]:
    """First player of a GetPlayerSummaries response, None on API error or no match"""
    if not isinstance(payload, dict):
        return None

    response = payload.get('response')
    if not isinstance(response, dict):
        return None

    if response.get('error'):
        logger.debug("steam_api_error", error=response['error'])
        return None

    players = response.get('players') or []
    return players[0] if players and isinstance(players[0], dict) else None


class SteamClient:
    """Player summary lookups with retry and rate limiting"""

    def __init__(self, api_key: str, api_url: str, request_timeout_s: float = 10.0,
                 max_retries: int = 3, max_concurrent: int = 5,
                 rate_limit_delay_ms: int = 100, retry_backoff_s: float = 1.0):
        """
        Args:
            api_key: Steam Web API key
            api_url: GetPlayerSummaries endpoint
            request_timeout_s: Per-attempt timeout in seconds
            max_retries: Retries after a timed-out attempt
            max_concurrent: Max concurrent lookups
            rate_limit_delay_ms: Pause after each request
            retry_backoff_s: Backoff unit; attempt n waits (n + 1) * unit
        """
        self.api_key = api_key
        self.api_url = api_url
        self.request_timeout_s = request_timeout_s
        self.max_retries = max_retries
        self.rate_limit_delay_s = rate_limit_delay_ms / 1000.0
        self.retry_backoff_s = retry_backoff_s
        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.session: Optional[aiohttp.ClientSession] = None

    async def start(self):
        """Initialize aiohttp session"""
        if not self.session:
            self.session = aiohttp.ClientSession()

    async def stop(self):
        """Close aiohttp session"""
        if self.session:
            await self.session.close()
            self.session = None

    async def __aenter__(self) -> 'SteamClient':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.stop()

    async def _request(self, steam64_id: int) -> Any:
        """Single GetPlayerSummaries call; raises asyncio.TimeoutError on timeout"""
        if not self.session:
            await self.start()

        params = {'key': self.api_key, 'steamids': str(steam64_id)}

        async with self.session.get(
            self.api_url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self.request_timeout_s)
        ) as response:
            if response.status != 200:
                logger.warning("steam_request_failed", steam_id=steam64_id, status=response.status)
                return None
            return await response.json(content_type=None)

    async def get_player_summary(self, steam64_id: int) -> Optional[Dict[str, Any]]:
        """
        Fetch the raw player summary

        Returns:
            Player dict, or None when not found or every attempt failed
        """
        async with self.semaphore:
            for attempt in range(self.max_retries + 1):
                logger.debug("checking_steam_profile", steam_id=steam64_id, attempt=attempt + 1)
                try:
                    payload = await self._request(steam64_id)
                except asyncio.TimeoutError:
                    if attempt < self.max_retries:
                        logger.debug("steam_timeout_retrying", steam_id=steam64_id,
                                     retry=attempt + 1, max_retries=self.max_retries)
                        await asyncio.sleep((attempt + 1) * self.retry_backoff_s)
                        continue
                    logger.warning("steam_max_retries_reached", steam_id=steam64_id)
                    return None
                except aiohttp.ClientError as e:
                    logger.warning("steam_request_error", steam_id=steam64_id, error=str(e))
                    return None
                except ValueError as e:
                    logger.warning("steam_invalid_json", steam_id=steam64_id, error=str(e))
                    return None
                finally:
                    if self.rate_limit_delay_s:
                        await asyncio.sleep(self.rate_limit_delay_s)

                return extract_player(payload)

        return None

    async def get_profile(self, steam64_id: int) -> Optional[IdentityProfile]:
        """Player summary converted to an IdentityProfile"""
        player = await self.get_player_summary(steam64_id)
        if player is None:
            return None
        return IdentityProfile.from_steam_payload(player)
