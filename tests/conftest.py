"""
Pytest configuration and shared fixtures
These fixtures are available to all test files
"""

import pytest
from datetime import datetime
from typing import Any, Dict, List

from fivem_bot_detection.core.types import Entity, ServerContext, ServerMetadata


# Noon: neither time-of-day rule fires
NOON = datetime(2024, 5, 14, 12, 0, 0)

# Unix time used for identity scoring
EVALUATION_TIME = 1_700_000_000

GENERATED_NAME = "bcdfghjklmnpqrstvwxyz1"  # 22 chars, no vowels


@pytest.fixture
def fixed_clock():
    """Clock pinned to noon so scans are deterministic"""
    return lambda: NOON


@pytest.fixture
def make_entity():
    """Factory for a normal-looking player, overridable per field"""
    def factory(id: int = 1, name: str = "Citizen1", identifiers=("license:abc123",),
                ping: int = 40, endpoint: str = "203.0.113.4:30120") -> Entity:
        return Entity(name=name, identifiers=tuple(identifiers), ping=ping,
                      endpoint=endpoint, id=id)
    return factory


@pytest.fixture
def make_population(make_entity):
    """Factory for n distinct normal players"""
    def factory(count: int) -> List[Entity]:
        return [
            make_entity(id=i, name=f"Citizen{i}", identifiers=(f"license:{i:040x}",),
                        endpoint=f"198.51.100.{i % 250}:30120")
            for i in range(1, count + 1)
        ]
    return factory


@pytest.fixture
def production_metadata() -> ServerMetadata:
    """Plain public production server: no context rule fires at noon"""
    return ServerMetadata(
        hostname="Los Santos Life",
        game_type="Freemode",
        config_vars={},
        is_private=False,
        max_clients=64,
        resources=tuple(f"resource_{i}" for i in range(50)),
        owner_name="Alice",
    )


@pytest.fixture
def production_context() -> ServerContext:
    return ServerContext(total_players=30)


@pytest.fixture
def server_payload() -> Dict[str, Any]:
    """Raw server-list response with five players"""
    return {
        "EndPoint": "abc123",
        "Data": {
            "hostname": "Los Santos Life",
            "gametype": "Freemode",
            "mapname": "San Andreas",
            "clients": 5,
            "svMaxclients": 64,
            "server": "FXServer-master v1.0.0.7290",
            "private": False,
            "ownerName": "Alice",
            "resources": [f"resource_{i}" for i in range(50)],
            "vars": {
                "sv_projectDesc": "Chill community",
                "tags": "default, drift, racing",
            },
            "players": [
                {"name": "Jonathan", "id": 1, "ping": 35, "endpoint": "198.51.100.1:30120",
                 "identifiers": ["license:aaa", "steam:110000100000001"]},
                {"name": "Marcus22", "id": 2, "ping": 50, "endpoint": "198.51.100.2:30120",
                 "identifiers": ["license:bbb", "steam:110000100000002"]},
                {"name": "Lena", "id": 3, "ping": 61, "endpoint": "198.51.100.3:30120",
                 "identifiers": ["license:ccc", "steam:110000100000003"]},
                {"name": GENERATED_NAME, "id": 4, "ping": 20, "endpoint": "198.51.100.4:30120",
                 "identifiers": []},
                {"name": "Sophie", "id": 5, "ping": 44, "endpoint": "198.51.100.5:30120",
                 "identifiers": ["license:eee"]},
            ],
        },
    }
