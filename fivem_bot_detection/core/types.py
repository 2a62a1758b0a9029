"""
Data types for the FiveM bot detection engine
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from enum import Enum


DEFAULT_MAX_CLIENTS = 32
UNKNOWN_ENDPOINT = "Unknown"


class IndicatorKind(str, Enum):
    """Structured tag emitted alongside every suspicious finding"""
    NO_AUTHENTICATION = "no_authentication"
    EMPTY_NAME = "empty_name"
    SHORT_NAME = "short_name"
    NUMERIC_NAME = "numeric_name"
    SPECIAL_CHARACTERS = "special_characters"
    LONG_NAME_PATTERN = "long_name_pattern"
    LOCALHOST = "localhost"
    HIGH_PING = "high_ping"
    DUPLICATE_NAMES = "duplicate_names"
    SHARED_IP = "shared_ip"
    GENERATED_PATTERN = "generated_pattern"
    WHITELIST_NO_IDENTIFIERS = "whitelist_no_identifiers"


class ValidationLayer(str, Enum):
    """The six per-entity validation layers, in evaluation order"""
    IDENTIFIER = "identifier_validation"
    NAME = "name_validation"
    CONNECTION = "connection_validation"
    BEHAVIOR = "behavior_validation"
    PATTERN = "pattern_validation"
    CONTEXT = "context_validation"


class ReasonCategory(str, Enum):
    """Scan-level statistic buckets"""
    NO_IDENTIFIERS = "no_identifiers"
    SUSPICIOUS_NAMES = "suspicious_names"
    HIGH_PING = "high_ping"
    LOCALHOST = "localhost"
    DUPLICATE_NAMES = "duplicate_names"
    SPECIAL_CHARACTERS = "special_characters"
    SUSPICIOUS_PING = "suspicious_ping"  # reserved
    VERY_SHORT_NAMES = "very_short_names"  # reserved
    NUMERIC_NAMES = "numeric_names"  # reserved
    EMPTY_NAMES = "empty_names"  # reserved
    SUSPICIOUS_ENDPOINTS = "suspicious_endpoints"
    BORDERLINE_CASES = "borderline_cases"


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


@dataclass(frozen=True)
class Entity:
    """One connected player as reported by the server list"""
    name: str = ""
    identifiers: Tuple[str, ...] = ()
    ping: int = 0  # round-trip latency in ms
    endpoint: str = UNKNOWN_ENDPOINT  # host[:port]
    id: int = 0

    def __post_init__(self):
        if self.name is None:
            object.__setattr__(self, 'name', "")
        if self.identifiers is None:
            object.__setattr__(self, 'identifiers', ())
        if not self.endpoint:
            object.__setattr__(self, 'endpoint', UNKNOWN_ENDPOINT)

    @property
    def host(self) -> str:
        """Endpoint with the port stripped (whole string if there is no separator)"""
        return self.endpoint.split(':')[0]

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> 'Entity':
        """Normalise a raw player record; never raises on missing or malformed fields"""
        identifiers = raw.get('identifiers')
        if isinstance(identifiers, str):
            identifiers = (identifiers,)
        elif not isinstance(identifiers, (list, tuple)):
            identifiers = ()

        return cls(
            name=_as_text(raw.get('name')),
            identifiers=tuple(i for i in identifiers if isinstance(i, str)),
            ping=max(0, _as_int(raw.get('ping'))),
            endpoint=_as_text(raw.get('endpoint')) or UNKNOWN_ENDPOINT,
            id=_as_int(raw.get('id')),
        )


@dataclass(frozen=True)
class ServerMetadata:
    """Server-level information the context analyzer reads"""
    hostname: str = ""
    game_type: str = ""
    config_vars: Dict[str, str] = field(default_factory=dict)
    is_private: bool = False
    max_clients: int = DEFAULT_MAX_CLIENTS
    resources: Tuple[str, ...] = ()
    owner_name: str = ""

    # Reporting only
    current_players: int = 0
    map_name: str = ""
    server_version: str = ""

    def __post_init__(self):
        if self.max_clients <= 0:
            object.__setattr__(self, 'max_clients', DEFAULT_MAX_CLIENTS)

    @property
    def tags(self) -> Tuple[str, ...]:
        raw_tags = self.config_vars.get('tags') or ""
        return tuple(tag.strip() for tag in raw_tags.split(',') if tag.strip())

    @property
    def description(self) -> str:
        return self.config_vars.get('sv_projectDesc') or ""

    @property
    def whitelist_enabled(self) -> bool:
        return (self.config_vars.get('sv_whitelist') == 'true' or
                self.config_vars.get('whitelist') == 'true')

    @property
    def password_set(self) -> bool:
        return bool(self.config_vars.get('sv_password') or self.config_vars.get('password'))

    @classmethod
    def from_raw(cls, data: Mapping[str, Any]) -> 'ServerMetadata':
        """Build metadata from the server-list `Data` object"""
        raw_vars = data.get('vars') or {}
        config_vars = {str(k): _as_text(v) for k, v in raw_vars.items()} if isinstance(raw_vars, Mapping) else {}

        max_clients = _as_int(
            data.get('svMaxclients') or data.get('sv_maxclients') or config_vars.get('sv_maxclients'),
            DEFAULT_MAX_CLIENTS,
        )

        resources = data.get('resources') or ()

        return cls(
            hostname=_as_text(data.get('hostname')),
            game_type=_as_text(data.get('gametype')),
            config_vars=config_vars,
            is_private=data.get('private') is True,
            max_clients=max_clients,
            resources=tuple(_as_text(r) for r in resources),
            owner_name=_as_text(data.get('ownerName')),
            current_players=_as_int(data.get('clients') or data.get('selfReportedClients')),
            map_name=_as_text(data.get('mapname')),
            server_version=_as_text(data.get('server')),
        )


@dataclass(frozen=True)
class PenaltyAdjustments:
    """Named penalty deltas derived from server context (reporting only)"""
    no_identifiers: int = 0
    localhost: int = 0
    suspicious_names: int = 0
    high_ping: int = 0
    duplicate_names: int = 0


@dataclass(frozen=True)
class ServerContext:
    """Population-wide adjustments, built once per scan and never mutated"""
    is_development_server: bool = False
    is_low_population: bool = False
    is_test_server: bool = False
    is_roleplay_server: bool = False
    is_freeroam_server: bool = False
    has_whitelist: bool = False
    is_private_server: bool = False
    server_reputation: str = "unknown"
    expected_bot_threshold: float = 0.3
    context_factors: Tuple[str, ...] = ()
    total_players: int = 0
    adjustments: PenaltyAdjustments = field(default_factory=PenaltyAdjustments)


@dataclass(frozen=True)
class LayerResult:
    """Output of one validation layer for one entity"""
    is_suspicious: bool = False
    reasons: Tuple[str, ...] = ()
    score: int = 0
    indicators: Tuple[IndicatorKind, ...] = ()


@dataclass(frozen=True)
class LayerResults:
    """Fixed set of the six layer outputs for one entity"""
    identifier: LayerResult
    name: LayerResult
    connection: LayerResult
    behavior: LayerResult
    pattern: LayerResult
    context: LayerResult

    def items(self) -> Iterator[Tuple[ValidationLayer, LayerResult]]:
        yield ValidationLayer.IDENTIFIER, self.identifier
        yield ValidationLayer.NAME, self.name
        yield ValidationLayer.CONNECTION, self.connection
        yield ValidationLayer.BEHAVIOR, self.behavior
        yield ValidationLayer.PATTERN, self.pattern
        yield ValidationLayer.CONTEXT, self.context

    def passed(self) -> Dict[ValidationLayer, bool]:
        """Layer -> True when the layer reported no suspicion"""
        return {layer: not result.is_suspicious for layer, result in self.items()}


@dataclass(frozen=True)
class IdentityProfile:
    """External identity (Steam player summary) for one entity"""
    steam_id: Optional[int] = None
    persona_name: str = ""
    profile_url: str = ""
    avatar: str = ""
    persona_state: Optional[int] = None  # 1 = online
    visibility_state: Optional[int] = None  # 1 = private, 2 = friends only
    last_logoff: Optional[int] = None  # unix seconds
    time_created: Optional[int] = None  # unix seconds
    real_name: str = ""
    country_code: str = ""
    game_id: str = ""
    game_extra_info: str = ""  # declared activity

    @classmethod
    def from_steam_payload(cls, player: Mapping[str, Any]) -> 'IdentityProfile':
        def optional_int(key: str) -> Optional[int]:
            value = player.get(key)
            return None if value is None else _as_int(value, None)

        return cls(
            steam_id=optional_int('steamid'),
            persona_name=_as_text(player.get('personaname')),
            profile_url=_as_text(player.get('profileurl')),
            avatar=_as_text(player.get('avatar')),
            persona_state=optional_int('personastate'),
            visibility_state=optional_int('communityvisibilitystate'),
            last_logoff=optional_int('lastlogoff'),
            time_created=optional_int('timecreated'),
            real_name=_as_text(player.get('realname')),
            country_code=_as_text(player.get('loccountrycode')),
            game_id=_as_text(player.get('gameid')),
            game_extra_info=_as_text(player.get('gameextrainfo')),
        )


@dataclass(frozen=True)
class IdentityAssessment:
    """Identity Signal Scorer output"""
    indicators: Tuple[str, ...] = ()
    confidence: int = 0
    is_likely_bot: bool = False


@dataclass(frozen=True)
class Verdict:
    """Final per-entity classification"""
    entity_id: int
    entity_name: str
    is_bot: bool
    final_score: int
    strong_indicators: int
    layers_passed: int
    layers: LayerResults
    bot_indicators: Tuple[str, ...] = ()
    human_indicators: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    indicators: Tuple[IndicatorKind, ...] = ()
    identity: Optional[IdentityAssessment] = None

    @property
    def is_potential_bot(self) -> bool:
        """Six-layer verdict or identity assessment flags the entity"""
        return self.is_bot or bool(self.identity and self.identity.is_likely_bot)

    def with_identity(self, identity: Optional[IdentityAssessment]) -> 'Verdict':
        return replace(self, identity=identity)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'entity_id': self.entity_id,
            'name': self.entity_name,
            'is_bot': self.is_bot,
            'is_potential_bot': self.is_potential_bot,
            'final_score': self.final_score,
            'strong_indicators': self.strong_indicators,
            'bot_indicators': list(self.bot_indicators),
            'human_indicators': list(self.human_indicators),
            'warnings': list(self.warnings),
            'validation_layers': {layer.value: ok for layer, ok in self.layers.passed().items()},
        }
        if self.identity is not None:
            result['identity'] = {
                'confidence': self.identity.confidence,
                'is_likely_bot': self.identity.is_likely_bot,
                'indicators': list(self.identity.indicators),
            }
        return result


@dataclass
class ScanStatistics:
    """Aggregate counts over all verdicts of one scan"""
    total_players: int = 0
    analyzed_players: int = 0
    steam_players: int = 0
    checked_profiles: int = 0
    valid_profiles: int = 0
    errors: int = 0
    potential_bots: int = 0
    reason_counts: Dict[ReasonCategory, int] = field(
        default_factory=lambda: {category: 0 for category in ReasonCategory}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_players': self.total_players,
            'analyzed_players': self.analyzed_players,
            'steam_players': self.steam_players,
            'checked_profiles': self.checked_profiles,
            'valid_profiles': self.valid_profiles,
            'errors': self.errors,
            'potential_bots': self.potential_bots,
            'bot_reasons': {category.value: count for category, count in self.reason_counts.items()},
        }


@dataclass(frozen=True)
class PopulationEvaluation:
    """Six-layer evaluation of a whole population"""
    context: ServerContext
    verdicts: Tuple[Verdict, ...]
    reason_counts: Dict[ReasonCategory, int]

    @property
    def bots(self) -> List[Verdict]:
        return [v for v in self.verdicts if v.is_bot]

    def by_entity_id(self) -> Dict[int, Verdict]:
        return {v.entity_id: v for v in self.verdicts}
