"""
Server scan orchestration

Fetches one server snapshot, runs the six-layer engine over the frozen
player list, looks up Steam profiles concurrently and folds everything
into a ScanReport.
"""

import asyncio
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from fivem_bot_detection.clients.fivem_client import FiveMClient, parse_server_payload
from fivem_bot_detection.clients.steam_client import SteamClient
from fivem_bot_detection.core.decision import BotDetectionEngine, count_bots
from fivem_bot_detection.core.identity_scorer import extract_steam_id, score_identity
from fivem_bot_detection.core.types import (
    Entity, IdentityAssessment, ScanStatistics, ServerContext, ServerMetadata, Verdict
)
from fivem_bot_detection.utils.logger_setup import get_logger, scan_context

logger = get_logger(__name__)


@dataclass
class ServerSummary:
    """Server details echoed in the report"""
    cfxcode: str
    name: str
    resource_count: int
    max_players: int
    current_players: int
    description: str
    version: str
    tags: List[str]
    game_type: str
    map_name: str
    owner_name: str
    is_private: bool
    scan_time: str
    duration_s: float = 0.0

    @classmethod
    def from_metadata(cls, cfxcode: str, metadata: ServerMetadata, scan_time: str) -> 'ServerSummary':
        return cls(
            cfxcode=cfxcode,
            name=metadata.hostname or 'Unknown Server',
            resource_count=len(metadata.resources),
            max_players=metadata.max_clients,
            current_players=metadata.current_players,
            description=metadata.description or 'No description available',
            version=metadata.server_version or 'Unknown version',
            tags=list(metadata.tags),
            game_type=metadata.game_type or 'Unknown',
            map_name=metadata.map_name or 'Unknown',
            owner_name=metadata.owner_name or 'Unknown',
            is_private=metadata.is_private,
            scan_time=scan_time,
        )


@dataclass
class ScanReport:
    """Everything one scan produced"""
    server: ServerSummary
    context: ServerContext
    verdicts: Tuple[Verdict, ...]
    statistics: ScanStatistics
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def potential_bots(self) -> List[Verdict]:
        return [v for v in self.verdicts if v.is_potential_bot]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'server': asdict(self.server),
            'server_context': asdict(self.context),
            'statistics': self.statistics.to_dict(),
            'players': [v.to_dict() for v in self.verdicts],
            'potential_bots': [v.to_dict() for v in self.potential_bots],
            'errors': list(self.errors),
        }


class BotScanner:
    """Runs a full scan of one server

    Args:
        fivem_client: Server snapshot source
        steam_client: Optional profile lookup; without it players are judged on six layers only
        clock: Local time for context time-of-day rules
        wall_clock: Unix time for identity scoring
    """

    def __init__(self, fivem_client: FiveMClient, steam_client: Optional[SteamClient] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 wall_clock: Callable[[], float] = time.time):
        self.fivem_client = fivem_client
        self.steam_client = steam_client
        self.engine = BotDetectionEngine(clock=clock)
        self.wall_clock = wall_clock

    async def scan(self, cfxcode: str) -> ScanReport:
        """
        Fetch and analyze a server

        Raises:
            ServerDataError: If the server snapshot can't be fetched
        """
        with scan_context(cfxcode):
            logger.info("downloading_server_data")
            payload = await self.fivem_client.fetch_server(cfxcode)
            metadata, entities = parse_server_payload(payload)
            logger.info("server_snapshot_loaded", server=metadata.hostname, players=len(entities))
            return await self.scan_snapshot(cfxcode, metadata, entities)

    async def scan_snapshot(self, cfxcode: str, metadata: ServerMetadata,
                            entities: Sequence[Entity]) -> ScanReport:
        """Analyze an already fetched snapshot"""
        started = time.monotonic()
        snapshot = tuple(entities)
        summary = ServerSummary.from_metadata(
            cfxcode, metadata, datetime.now(timezone.utc).isoformat()
        )

        evaluation = self.engine.evaluate(metadata, snapshot)
        for factor in evaluation.context.context_factors:
            logger.info("context_factor", factor=factor)

        steam_ids = [extract_steam_id(entity.identifiers) for entity in snapshot]
        identities, errors, checked, valid = await self._lookup_identities(snapshot, steam_ids)

        verdicts = tuple(
            verdict.with_identity(identities.get(index))
            for index, verdict in enumerate(evaluation.verdicts)
        )

        statistics = ScanStatistics(
            total_players=len(snapshot),
            analyzed_players=len(verdicts),
            steam_players=sum(1 for steam_id in steam_ids if steam_id is not None),
            checked_profiles=checked,
            valid_profiles=valid,
            errors=len(errors),
            potential_bots=count_bots(verdicts),
            reason_counts=dict(evaluation.reason_counts),
        )

        summary.duration_s = round(time.monotonic() - started, 3)
        logger.info("scan_complete", players=statistics.total_players,
                    potential_bots=statistics.potential_bots, errors=statistics.errors)

        return ScanReport(
            server=summary,
            context=evaluation.context,
            verdicts=verdicts,
            statistics=statistics,
            errors=errors,
        )

    async def _lookup_identities(
        self, entities: Sequence[Entity], steam_ids: Sequence[Optional[int]]
    ) -> Tuple[Dict[int, IdentityAssessment], List[Dict[str, Any]], int, int]:
        """Concurrent profile lookups keyed by entity position"""
        if self.steam_client is None:
            return {}, [], 0, 0

        targets = [(index, steam_id) for index, steam_id in enumerate(steam_ids) if steam_id is not None]
        if not targets:
            logger.info("no_steam_players")
            return {}, [], 0, 0

        logger.info("checking_steam_profiles", count=len(targets))
        evaluated_at = self.wall_clock()

        results = await asyncio.gather(
            *(self.steam_client.get_profile(steam_id) for _, steam_id in targets),
            return_exceptions=True,
        )

        identities: Dict[int, IdentityAssessment] = {}
        errors: List[Dict[str, Any]] = []
        valid = 0

        for (index, steam_id), result in zip(targets, results):
            entity = entities[index]
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning("steam_lookup_failed", player=entity.name, steam_id=steam_id, error=str(result))
                errors.append({
                    'entity_id': entity.id,
                    'player_name': entity.name,
                    'steam_id': steam_id,
                    'error': str(result),
                })
                continue

            if result is None:
                logger.debug("no_steam_profile", player=entity.name, steam_id=steam_id)
                continue

            valid += 1
            assessment = score_identity(result, now=evaluated_at)
            identities[index] = assessment
            logger.debug("steam_profile_scored", player=entity.name, steam_id=steam_id,
                         confidence=assessment.confidence, likely_bot=assessment.is_likely_bot)

        return identities, errors, len(targets), valid
