"""
Pytest Configuration and Fixtures

Shared fixtures for all tests.
"""

import json
import shutil
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

from scriptscope.core.config import (
    ScriptScopeConfig,
    ProviderConfig,
    ChunkingConfig,
    PacingConfig,
    CacheConfig,
)
from scriptscope.core.constants import ProviderKind
from scriptscope.llm.provider import GenerationOptions, ReasoningProvider


class StubProvider(ReasoningProvider):
    """
    Scripted reasoning provider.

    Replies come from `handler(system, user)` when given, otherwise from the
    `responses` queue. Exceptions in either are raised instead of returned.
    A `usage` dict, when given, is reported after every successful call.
    """

    name = "stub"

    def __init__(
        self,
        responses: Optional[List[Any]] = None,
        handler: Optional[Callable[[str, str], Any]] = None,
        is_local: bool = False,
        usage: Optional[Dict[str, Any]] = None
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.is_local = is_local
        self.usage = usage
        self.last_usage = None
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system_instruction: str, user_instruction: str, options: GenerationOptions) -> str:
        self.calls.append({
            "system": system_instruction,
            "user": user_instruction,
            "options": options,
        })
        self.last_usage = None
        if self.handler is not None:
            reply = self.handler(system_instruction, user_instruction)
        else:
            reply = self.responses.pop(0) if self.responses else "{}"
        if isinstance(reply, Exception):
            raise reply
        self.last_usage = dict(self.usage) if self.usage else None
        return reply


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def make_provider():
    """Factory for scripted providers."""
    return StubProvider


@pytest.fixture
def sample_screenplay() -> str:
    """Three short scenes separated by blank lines."""
    return (
        "INT. KITCHEN - NIGHT\n"
        "ALICE pours coffee. The radio crackles.\n"
        "\n"
        "ALICE\n"
        "You're late again.\n"
        "\n"
        "EXT. HARBOR - DAWN\n"
        "BOB runs along the pier. Gulls scatter.\n"
        "\n"
        "INT. KITCHEN - DAY\n"
        "ALICE and BOB sit in silence. Rain on the window."
    )


@pytest.fixture
def breakdown_part_one() -> Dict[str, Any]:
    """Breakdown of the first half of a script."""
    return {
        "scenes": [
            {"number": 1, "header": "INT. KITCHEN - NIGHT", "location": "KITCHEN", "estimatedDuration": 2},
            {"number": 2, "header": "EXT. HARBOR - DAWN", "location": "HARBOR", "estimatedDuration": 1},
        ],
        "locations": [
            {"name": "KITCHEN", "type": "INT", "sceneCount": 1, "estimatedShootingDays": 0.5},
            {"name": "HARBOR", "type": "EXT", "sceneCount": 1, "estimatedShootingDays": 1},
        ],
        "characters": [
            {"name": "Alice", "sceneCount": 2, "description": "Night nurse"},
            {"name": "BOB", "sceneCount": 1, "description": "Dock worker"},
        ],
        "equipment": [{"item": "Rain machine", "scenes": [1], "reason": "Storm"}],
        "summary": {"totalScenes": 2, "estimatedRuntime": 3, "estimatedShootingDays": 1.5},
    }


@pytest.fixture
def breakdown_part_two() -> Dict[str, Any]:
    """Breakdown of the second half; scene numbers restart at 1."""
    return {
        "scenes": [
            {"number": 1, "header": "INT. KITCHEN - DAY", "location": "KITCHEN", "estimatedDuration": 4},
        ],
        "locations": [
            {"name": "kitchen", "type": "INT", "sceneCount": 1, "estimatedShootingDays": 0.5},
        ],
        "characters": [
            {"name": "  ALICE ", "sceneCount": 3, "description": "Night nurse who stopped sleeping"},
        ],
        "equipment": [{"item": "Rain machine", "scenes": [1], "reason": "Window rain"}],
        "summary": {"totalScenes": 1, "estimatedRuntime": 4, "estimatedShootingDays": 0.5},
    }


@pytest.fixture
def breakdown_json(breakdown_part_one) -> str:
    return json.dumps(breakdown_part_one)


@pytest.fixture
def local_config(temp_dir) -> ScriptScopeConfig:
    """Local provider config with small chunks and storage in temp_dir."""
    return ScriptScopeConfig(
        provider=ProviderConfig(kind=ProviderKind.LOCAL),
        chunking=ChunkingConfig(max_chunk_size=60),
        pacing=PacingConfig(inter_request_delay=0),
        cache=CacheConfig(storage_dir=temp_dir / "analysis"),
    )
