"""
Tests for Analysis Catalog

Tests for scriptscope/analysis/catalog.py
"""

import pytest

from scriptscope.analysis.catalog import (
    AnalysisCatalog,
    AnalysisTypeSpec,
    OutputFormat,
    build_combine_request,
    default_catalog,
    render_template,
)
from scriptscope.core.exceptions import UnknownAnalysisTypeError
from scriptscope.utils.chunk_manager import Chunk


@pytest.fixture
def chunk():
    return Chunk(1, "INT. HOUSE - DAY\nAlice waits.", 8)


class TestAnalysisTypeSpec:

    def test_build_request_renders_placeholders(self, chunk):
        spec = AnalysisTypeSpec(
            "demo", "Demo",
            system_template='Answer in {language}. Schema: {"name": "..."}',
            user_template="Part {chunk_number} of {chunk_count}:\n{text}",
            output_format=OutputFormat.STRUCTURED,
        )
        request = spec.build_request(chunk, 3, "Spanish")

        assert request.chunk_index == 1
        assert request.analysis_type == "demo"
        assert request.system_prompt == 'Answer in Spanish. Schema: {"name": "..."}'
        assert request.user_prompt == "Part 2 of 3:\nINT. HOUSE - DAY\nAlice waits."

    def test_text_appended_without_placeholder(self, chunk):
        spec = AnalysisTypeSpec("demo", "Demo", "sys", "Analyze this:")

        assert spec.build_request(chunk, 1, "English").user_prompt == "Analyze this:\n\nINT. HOUSE - DAY\nAlice waits."

    def test_placeholders_in_document_text_not_rendered(self):
        spec = AnalysisTypeSpec("demo", "Demo", "sys", "{text}")
        request = spec.build_request(Chunk(0, "say {language}", 4), 1, "German")

        assert request.user_prompt == "say {language}"

    def test_render_template_leaves_other_braces(self):
        assert render_template('{"a": {x}}', {"x": "1"}) == '{"a": 1}'


class TestAnalysisCatalog:

    def test_default_types(self):
        catalog = default_catalog()

        assert catalog.ids() == [
            "breakdown", "character", "structure", "plot", "theme", "dialogue", "production", "overview",
        ]
        assert catalog.get("breakdown").structured
        assert not catalog.get("plot").structured
        assert catalog.get("overview").chunkable is False

    def test_unknown_type(self):
        with pytest.raises(UnknownAnalysisTypeError):
            default_catalog().get("astrology")

    def test_resolve_preserves_order(self):
        specs = default_catalog().resolve(["theme", "breakdown"])

        assert [s.id for s in specs] == ["theme", "breakdown"]

    def test_resolve_rejects_any_unknown(self):
        with pytest.raises(UnknownAnalysisTypeError):
            default_catalog().resolve(["plot", "nope"])

    def test_register(self):
        catalog = AnalysisCatalog()
        catalog.register(AnalysisTypeSpec("tone", "Tone", "s", "u"))

        assert "tone" in catalog
        assert len(catalog) == 1

    def test_builtin_prompts_render(self, chunk):
        for spec in default_catalog():
            request = spec.build_request(chunk, 2, "French")

            assert "{language}" not in request.system_prompt
            assert "{chunk_number}" not in request.user_prompt
            assert "Alice waits." in request.user_prompt


def test_combine_request():
    spec = default_catalog().get("dialogue")
    request = build_combine_request(spec, ["first", "second"], "Turkish")

    assert request.analysis_type == "dialogue"
    assert "Turkish" in request.system_prompt
    assert "2 consecutive parts" in request.system_prompt
    assert "[Part 1]\nfirst" in request.user_prompt
    assert "[Part 2]\nsecond" in request.user_prompt
