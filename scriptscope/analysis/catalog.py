"""
ScriptScope Analysis Catalog

Registry of analysis types. Each entry carries its own prompt templates and
output format; templates use plain "{placeholder}" replacement so literal
JSON braces in a schema example survive rendering.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional

from scriptscope.core.constants import TEXT_PART_SEPARATOR
from scriptscope.core.exceptions import UnknownAnalysisTypeError
from scriptscope.utils.chunk_manager import Chunk
from scriptscope.analysis.models import AnalysisRequest


class OutputFormat(Enum):
    TEXT = "text"
    STRUCTURED = "structured"


def render_template(template: str, values: Dict[str, str]) -> str:
    """Replace {key} placeholders without touching any other braces."""
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{" + key + "}", value)
    return rendered


@dataclass(frozen=True)
class AnalysisTypeSpec:
    """A single catalog entry."""
    id: str
    name: str
    system_template: str
    user_template: str
    output_format: OutputFormat = OutputFormat.TEXT
    chunkable: bool = True
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None

    @property
    def structured(self) -> bool:
        return self.output_format is OutputFormat.STRUCTURED

    def build_request(self, chunk: Chunk, chunk_count: int, language: str) -> AnalysisRequest:
        values = {
            "language": language,
            "chunk_number": str(chunk.index + 1),
            "chunk_count": str(chunk_count),
        }
        system_prompt = render_template(self.system_template, values)
        if "{text}" in self.user_template:
            user_prompt = render_template(self.user_template, {**values, "text": chunk.text})
        else:
            user_prompt = render_template(self.user_template, values) + "\n\n" + chunk.text
        return AnalysisRequest(
            chunk_index=chunk.index,
            analysis_type=self.id,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
        )


class AnalysisCatalog:
    """Ordered registry of analysis type specs."""

    def __init__(self, specs: Optional[Iterable[AnalysisTypeSpec]] = None):
        self._specs: Dict[str, AnalysisTypeSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: AnalysisTypeSpec) -> None:
        self._specs[spec.id] = spec

    def get(self, type_id: str) -> AnalysisTypeSpec:
        try:
            return self._specs[type_id]
        except KeyError:
            raise UnknownAnalysisTypeError(type_id) from None

    def resolve(self, type_ids: Iterable[str]) -> List[AnalysisTypeSpec]:
        """Look up every id in caller order; any unknown id raises."""
        return [self.get(type_id) for type_id in type_ids]

    def ids(self) -> List[str]:
        return list(self._specs)

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._specs

    def __iter__(self) -> Iterator[AnalysisTypeSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)


# =============================================================================
# BUILT-IN PROMPTS
# =============================================================================

_CHUNK_NOTE = "This is part {chunk_number} of {chunk_count} of the screenplay."

BREAKDOWN_SYSTEM = """You are an expert screenplay analyst and production coordinator. Analyze the provided screenplay and extract structured information for production planning.

Return a valid JSON object with the following structure:
{
  "scenes": [
    {
      "number": 1,
      "header": "INT. BEDROOM - NIGHT",
      "intExt": "INT",
      "location": "BEDROOM",
      "timeOfDay": "NIGHT",
      "characters": ["CHARACTER1"],
      "estimatedDuration": 2,
      "description": "Brief scene description"
    }
  ],
  "locations": [
    {"name": "BEDROOM", "type": "INT", "sceneCount": 1, "estimatedShootingDays": 0.5}
  ],
  "characters": [
    {"name": "CHARACTER NAME", "sceneCount": 5, "description": "Brief character description"}
  ],
  "equipment": [
    {"item": "Camera crane", "scenes": [1, 5], "reason": "High angle shot mentioned"}
  ],
  "summary": {"totalScenes": 10, "estimatedRuntime": 90, "estimatedShootingDays": 15}
}

Write descriptions in {language}. Return ONLY valid JSON, no additional text or markdown."""

BREAKDOWN_USER = _CHUNK_NOTE + "\nAnalyze this screenplay and provide a detailed breakdown:\n\n{text}"

CHARACTER_SYSTEM = """You are a screenplay analyst. Identify only real characters (people who speak or act on screen) and list them as JSON:
{
  "characters": [
    {"name": "CHARACTER NAME", "sceneCount": 3, "description": "Role, personality and arc", "traits": ["trait"], "relationships": ["OTHER CHARACTER"]}
  ]
}

Write descriptions in {language}. Return ONLY valid JSON."""

CHARACTER_USER = _CHUNK_NOTE + "\nList the characters in this screenplay. JSON ONLY:\n\n{text}"

STRUCTURE_SYSTEM = """You are a professional screenplay analyst. Detect every scene from its heading (INT., EXT., INT/EXT., I/E.) and analyze each one in detail.

Return JSON:
{
  "scenes": [
    {"number": 1, "header": "EXT. STREET - DAY", "location": "STREET", "timeOfDay": "DAY", "characters": ["NAME"], "estimatedDuration": 1, "description": "What happens"}
  ],
  "summary": {"totalScenes": 1, "estimatedRuntime": 1}
}

Write descriptions in {language}. Return ONLY valid JSON."""

STRUCTURE_USER = _CHUNK_NOTE + "\nDetect ALL scenes in this screenplay from their headings:\n\n{text}"

PLOT_SYSTEM = "You are an expert in screenplay structure and plot. Analyze the flow of the story. Answer in {language}."

PLOT_USER = _CHUNK_NOTE + """
Analyze the plot of this text and report under these headings:
1. Premise
2. Main conflict
3. Key turning points
4. Climax and resolution

{text}"""

THEME_SYSTEM = "You are a literature and film analysis expert. Explore themes and subtext. Answer in {language}."

THEME_USER = _CHUNK_NOTE + """
Analyze the themes and messages of this text and report under these headings:
1. Main themes
2. Symbols and motifs
3. Subtext

{text}"""

DIALOGUE_SYSTEM = "You are a dialogue writing expert. Evaluate the dialogue. Answer in {language}."

DIALOGUE_USER = _CHUNK_NOTE + """
Analyze the dialogue in this text and report under these headings:
1. Character voices
2. Subtext and tension
3. Weak or expository lines

{text}"""

PRODUCTION_SYSTEM = "You are a film production expert. Assess the practical aspects of shooting this material. Answer in {language}."

PRODUCTION_USER = _CHUNK_NOTE + """
Analyze the production aspects of this text and report under these headings:
1. Locations and sets
2. Special equipment and effects
3. Cast requirements
4. Scheduling risks

{text}"""

OVERVIEW_SYSTEM = "You are a script reader writing coverage for a producer. Answer in {language}."

OVERVIEW_USER = """Write a one-page coverage of this complete screenplay: logline, synopsis, strengths, weaknesses and a recommendation.

{text}"""

COMBINE_SYSTEM_TEMPLATE = """You are combining partial analyses of a single screenplay into one report.
The screenplay was analyzed in {part_count} consecutive parts for: {analysis_name}.
Merge the parts into one coherent analysis that keeps the same headings, removes repetition and covers the whole story. Answer in {language}."""

COMBINE_USER_TEMPLATE = "Partial analyses, in story order:\n\n{parts}"


def default_catalog() -> AnalysisCatalog:
    """Catalog with the built-in screenplay analysis types."""
    return AnalysisCatalog([
        AnalysisTypeSpec("breakdown", "Production Breakdown", BREAKDOWN_SYSTEM, BREAKDOWN_USER,
                         OutputFormat.STRUCTURED, temperature=0.2),
        AnalysisTypeSpec("character", "Character Analysis", CHARACTER_SYSTEM, CHARACTER_USER,
                         OutputFormat.STRUCTURED, temperature=0.2),
        AnalysisTypeSpec("structure", "Scene Structure", STRUCTURE_SYSTEM, STRUCTURE_USER,
                         OutputFormat.STRUCTURED, temperature=0.2),
        AnalysisTypeSpec("plot", "Plot Analysis", PLOT_SYSTEM, PLOT_USER),
        AnalysisTypeSpec("theme", "Theme Analysis", THEME_SYSTEM, THEME_USER),
        AnalysisTypeSpec("dialogue", "Dialogue Analysis", DIALOGUE_SYSTEM, DIALOGUE_USER),
        AnalysisTypeSpec("production", "Production Notes", PRODUCTION_SYSTEM, PRODUCTION_USER),
        AnalysisTypeSpec("overview", "Script Coverage", OVERVIEW_SYSTEM, OVERVIEW_USER,
                         chunkable=False),
    ])


def build_combine_request(spec: AnalysisTypeSpec, texts: List[str], language: str) -> AnalysisRequest:
    """Request that merges several free-text chunk outputs into one."""
    parts = TEXT_PART_SEPARATOR.join(
        f"[Part {i}]\n{text.strip()}" for i, text in enumerate(texts, 1)
    )
    system_prompt = render_template(COMBINE_SYSTEM_TEMPLATE, {
        "part_count": str(len(texts)),
        "analysis_name": spec.name,
        "language": language,
    })
    return AnalysisRequest(
        chunk_index=-1,
        analysis_type=spec.id,
        system_prompt=system_prompt,
        user_prompt=render_template(COMBINE_USER_TEMPLATE, {"parts": parts}),
    )
