"""
ScriptScope Result Reconciler

Merges per-chunk outputs of one analysis type into a single document-level
result. Structured outputs are merged locally; free-text outputs are
combined with one extra provider call.
"""

import copy
import json
import math
import re
from typing import Any, Dict, List, Optional

from scriptscope.core.constants import TEXT_PART_SEPARATOR
from scriptscope.core.logging_config import get_logger
from scriptscope.analysis.catalog import AnalysisTypeSpec, build_combine_request
from scriptscope.analysis.models import ChunkResult
from scriptscope.llm.provider import GenerationOptions, ReasoningProvider

logger = get_logger("analysis.reconciler")

KEYED_COLLECTIONS = ("locations", "characters")

# Per-chunk tallies that add up across chunks; other numbers keep the first value
SUMMED_FIELDS = frozenset({"sceneCount", "estimatedShootingDays", "dialogueCount", "dialogueLines", "lineCount"})
SUMMED_SUFFIXES = ("Count", "Days")
_WHITESPACE = re.compile(r"\s+")


def entity_key(name: Any) -> str:
    """Case-insensitive, whitespace-collapsed merge key for a named entity."""
    return _WHITESPACE.sub(" ", str(name)).strip().casefold()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def is_summed_field(key: str) -> bool:
    return key in SUMMED_FIELDS or key.endswith(SUMMED_SUFFIXES)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _union(existing: List[Any], incoming: List[Any]) -> List[Any]:
    seen = {json.dumps(item, sort_keys=True, default=str) for item in existing}
    merged = list(existing)
    for item in incoming:
        marker = json.dumps(item, sort_keys=True, default=str)
        if marker not in seen:
            seen.add(marker)
            merged.append(copy.deepcopy(item))
    return merged


def merge_entity(existing: Dict[str, Any], incoming: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge two records describing the same location or character.

    Count fields (see is_summed_field) are summed, the longer description
    wins (first seen on a tie), lists are unioned in order and any other
    field keeps the first non-empty value. Returns a new dict.
    """
    merged = copy.deepcopy(existing)
    for key, value in incoming.items():
        if key == "name":
            continue
        current = merged.get(key)
        if key == "description":
            if isinstance(value, str) and len(value.strip()) > len(str(current or "").strip()):
                merged[key] = value
        elif is_summed_field(key) and _is_number(value) and (current is None or _is_number(current)):
            merged[key] = (current or 0) + value
        elif isinstance(value, list) and isinstance(current, list):
            merged[key] = _union(current, value)
        elif _is_empty(current):
            merged[key] = copy.deepcopy(value)
    return merged


def _as_entity(item: Any) -> Optional[Dict[str, Any]]:
    if isinstance(item, dict):
        return item
    if isinstance(item, str) and item.strip():
        return {"name": item.strip()}
    return None


def _sum_numbers(values) -> float:
    total = sum(v for v in values if _is_number(v))
    return int(total) if float(total).is_integer() else round(total, 4)


class ResultReconciler:
    """Pure merge of structured chunk results."""

    def reconcile(self, chunk_results: List[ChunkResult]) -> Dict[str, Any]:
        """
        Reconcile chunk results in chunk order.

        A single chunk's normalized data is returned as-is. Otherwise scenes are
        concatenated and renumbered, locations and characters are
        deduplicated by name, equipment is concatenated and the summary
        block is recomputed. Text-fallback outputs are kept under
        "unparsedText". Inputs are never mutated.
        """
        ordered = sorted(chunk_results, key=lambda r: r.chunk_index)
        parsed = [r for r in ordered if r.error is None and r.normalized is not None and r.normalized.success]
        if len(ordered) == 1 and ordered[0].error is None and ordered[0].normalized is not None:
            return copy.deepcopy(ordered[0].normalized.data)

        failed = [r for r in ordered if r.error is not None or r.normalized is None]
        unparsed = [
            r.normalized.text for r in ordered
            if r.error is None and r.normalized is not None and r.normalized.is_text
        ]

        merged: Dict[str, Any] = {}
        scenes: List[Any] = []
        keyed: Dict[str, Dict[str, Dict[str, Any]]] = {}
        unnamed: Dict[str, List[Any]] = {}
        runtime = 0.0
        has_scenes = False

        for result in parsed:
            data = result.normalized.data
            if isinstance(data, list):
                data = {"items": data}
            if not isinstance(data, dict):
                continue

            chunk_scenes = data.get("scenes")
            if isinstance(chunk_scenes, list):
                has_scenes = True
                scenes.extend(copy.deepcopy(chunk_scenes))
            runtime += self._chunk_runtime(data)

            for collection in KEYED_COLLECTIONS:
                items = data.get(collection)
                if not isinstance(items, list):
                    continue
                bucket = keyed.setdefault(collection, {})
                for item in items:
                    entity = _as_entity(item)
                    if entity is None or _is_empty(entity.get("name")):
                        unnamed.setdefault(collection, []).append(copy.deepcopy(item))
                        continue
                    key = entity_key(entity["name"])
                    if key in bucket:
                        bucket[key] = merge_entity(bucket[key], entity)
                    else:
                        bucket[key] = copy.deepcopy(entity)

            for key, value in data.items():
                if key in ("scenes", "summary") or key in KEYED_COLLECTIONS:
                    continue
                if isinstance(value, list):
                    merged.setdefault(key, [])
                    if isinstance(merged[key], list):
                        merged[key].extend(copy.deepcopy(value))
                elif isinstance(value, dict):
                    target = merged.setdefault(key, {})
                    if isinstance(target, dict):
                        for inner_key, inner_value in value.items():
                            target.setdefault(inner_key, copy.deepcopy(inner_value))
                elif key not in merged:
                    merged[key] = value

        if has_scenes:
            for number, scene in enumerate(scenes, 1):
                if isinstance(scene, dict):
                    scene["number"] = number
            merged["scenes"] = scenes
        for collection in KEYED_COLLECTIONS:
            if collection in keyed or collection in unnamed:
                merged[collection] = list(keyed.get(collection, {}).values()) + unnamed.get(collection, [])
        if unparsed:
            merged["unparsedText"] = unparsed

        locations = merged.get("locations", [])
        merged["summary"] = {
            "totalScenes": len(scenes),
            "estimatedRuntime": _sum_numbers([runtime]),
            "estimatedShootingDays": _sum_numbers(
                loc.get("estimatedShootingDays") for loc in locations if isinstance(loc, dict)
            ),
            "totalCharacters": len(merged.get("characters", [])),
            "totalLocations": len(locations),
            "chunksSucceeded": len(ordered) - len(failed),
            "chunksFailed": len(failed),
        }
        logger.debug(
            f"Reconciled {len(ordered)} chunks: {len(scenes)} scenes, "
            f"{merged['summary']['totalCharacters']} characters, {len(failed)} failed"
        )
        return merged

    @staticmethod
    def _chunk_runtime(data: Dict[str, Any]) -> float:
        summary = data.get("summary")
        if isinstance(summary, dict) and _is_number(summary.get("estimatedRuntime")):
            return summary["estimatedRuntime"]
        scenes = data.get("scenes")
        if isinstance(scenes, list):
            return sum(
                s["estimatedDuration"] for s in scenes
                if isinstance(s, dict) and _is_number(s.get("estimatedDuration"))
            )
        return 0


def join_texts(texts: List[str]) -> str:
    """Join chunk texts with the part separator, dropping empty ones."""
    return TEXT_PART_SEPARATOR.join(t.strip() for t in texts if t and t.strip())


async def synthesize_text(
    spec: AnalysisTypeSpec,
    texts: List[str],
    provider: ReasoningProvider,
    language: str,
    options: Optional[GenerationOptions] = None
) -> str:
    """
    Combine free-text chunk outputs into one narrative.

    A single text is returned unchanged without a provider call. Provider
    failures propagate as ProviderError.
    """
    texts = [t for t in texts if t and t.strip()]
    if not texts:
        return ""
    if len(texts) == 1:
        return texts[0]

    request = build_combine_request(spec, texts, language)
    logger.info(f"Synthesizing {len(texts)} partial results for {spec.id}")
    return await provider.generate(request.system_prompt, request.user_prompt, options or GenerationOptions())
