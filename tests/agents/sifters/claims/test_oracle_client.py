"""Tests for ClassificationOracleClient.

Tests cover:
- Key and category normalization across oracle spellings
- Per-call fallbacks (generator errors, malformed JSON, missing ids)
- Rewrite and disambiguation result semantics
- Implicit claim extraction
- Opinion polarity labels and their Other fallback
- Hindi language note in the system instruction

All tests use a mocked generator - no actual API calls.
"""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from factcheck_system.agents.sifters.claims.oracle_client import (
    FAILED_REASONING,
    ClassificationOracleClient,
    parse_ambiguity_type,
    parse_category,
    parse_opinion_label,
)
from factcheck_system.config.prompts import HINDI_LANGUAGE_NOTE, OPINION_SYSTEM_PROMPT
from factcheck_system.data_management.schemas import (
    AmbiguityType,
    OpinionLabel,
    Sentence,
    SentenceCategory,
)


# ── Fixtures ──────────────────────────────────────────────────────────────


def make_client(response=None, side_effect=None) -> tuple[ClassificationOracleClient, MagicMock]:
    generator = MagicMock()
    generator.generate_json = AsyncMock(return_value=response, side_effect=side_effect)
    return ClassificationOracleClient(generator=generator, model_name="test-model"), generator


@pytest.fixture
def sentences() -> list[Sentence]:
    return [
        Sentence(text="Apple released the iPhone in 2007.", index=0),
        Sentence(text="I think the amazing phone changed everything.", index=1),
        Sentence(text="Phones are the best invention ever.", index=2),
    ]


# ── Normalization ─────────────────────────────────────────────────────────


class TestNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Verifiable", SentenceCategory.VERIFIABLE),
            ("Partially Verifiable", SentenceCategory.PARTIALLY_VERIFIABLE),
            ("PartiallyVerifiable", SentenceCategory.PARTIALLY_VERIFIABLE),
            ("partially_verifiable", SentenceCategory.PARTIALLY_VERIFIABLE),
            ("NOT VERIFIABLE", SentenceCategory.NOT_VERIFIABLE),
            ("not-verifiable", SentenceCategory.NOT_VERIFIABLE),
        ],
    )
    def test_parse_category(self, raw, expected):
        assert parse_category(raw) == expected

    def test_parse_category_unknown(self):
        assert parse_category("maybe") is None
        assert parse_category(None) is None

    def test_parse_ambiguity_type(self):
        assert parse_ambiguity_type("Referential") == AmbiguityType.REFERENTIAL
        assert parse_ambiguity_type("STRUCTURAL") == AmbiguityType.STRUCTURAL
        assert parse_ambiguity_type("lexical") is None


# ── Categorize ────────────────────────────────────────────────────────────


class TestCategorize:
    @pytest.mark.asyncio
    async def test_mixed_key_casing(self, sentences):
        response = json.dumps([
            {"ID": 0, "Category": "Verifiable", "Reasoning": "Specific date and entity"},
            {"id": "1", "category": "partially_verifiable", "reason": "Opinion marker"},
            {"sentenceId": 2, "classification": "NotVerifiable"},
        ])
        client, _ = make_client(response)

        classified = await client.categorize(sentences)

        assert [c.category for c in classified] == [
            SentenceCategory.VERIFIABLE,
            SentenceCategory.PARTIALLY_VERIFIABLE,
            SentenceCategory.NOT_VERIFIABLE,
        ]
        assert classified[0].reasoning == "Specific date and entity"
        assert [c.sentence for c in classified] == sentences

    @pytest.mark.asyncio
    async def test_generator_failure_defaults_every_sentence(self, sentences):
        client, _ = make_client(side_effect=RuntimeError("boom"))

        classified = await client.categorize(sentences)

        assert len(classified) == 3
        assert all(c.category == SentenceCategory.NOT_VERIFIABLE for c in classified)
        assert all(c.reasoning == FAILED_REASONING for c in classified)

    @pytest.mark.asyncio
    async def test_malformed_json_defaults_every_sentence(self, sentences):
        client, _ = make_client("I cannot answer that.")

        classified = await client.categorize(sentences)

        assert all(c.category == SentenceCategory.NOT_VERIFIABLE for c in classified)

    @pytest.mark.asyncio
    async def test_missing_id_degrades_only_that_sentence(self, sentences):
        response = json.dumps([
            {"id": 2, "category": "Not Verifiable"},
            {"id": 0, "category": "Verifiable"},
        ])
        client, _ = make_client(response)

        classified = await client.categorize(sentences)

        assert classified[0].category == SentenceCategory.VERIFIABLE
        assert classified[1].category == SentenceCategory.NOT_VERIFIABLE
        assert classified[1].reasoning == FAILED_REASONING
        assert classified[2].reasoning != FAILED_REASONING

    @pytest.mark.asyncio
    async def test_markdown_fenced_response(self, sentences):
        response = '```json\n[{"id": 0, "category": "Verifiable"}]\n```'
        client, _ = make_client(response)

        classified = await client.categorize(sentences[:1])

        assert classified[0].category == SentenceCategory.VERIFIABLE

    @pytest.mark.asyncio
    async def test_empty_input_skips_call(self):
        client, generator = make_client("[]")
        assert await client.categorize([]) == []
        generator.generate_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hindi_sentences_add_language_note(self):
        client, generator = make_client('[{"id": 0, "category": "Verifiable"}]')

        await client.categorize([Sentence(text="भारत की राजधानी नई दिल्ली है।", index=0)])

        kwargs = generator.generate_json.await_args.kwargs
        assert kwargs["system_instruction"].endswith(HINDI_LANGUAGE_NOTE)
        assert kwargs["model_name"] == "test-model"


# ── Implicit claims ───────────────────────────────────────────────────────


class TestImplicitClaims:
    @pytest.mark.asyncio
    async def test_extracts_claims(self):
        sentence = Sentence(
            text="Why did the government spend $2 billion on a stadium nobody uses?", index=0
        )
        response = json.dumps([
            {"id": 0, "implicitClaims": ["The government spent $2 billion on a stadium", " "]},
        ])
        client, _ = make_client(response)

        result = await client.extract_implicit_claims([sentence])

        assert result[0].claims == ["The government spent $2 billion on a stadium"]

    @pytest.mark.asyncio
    async def test_failure_returns_no_claims(self):
        client, _ = make_client(side_effect=TimeoutError())
        result = await client.extract_implicit_claims([Sentence(text="Really?", index=0)])
        assert result == {}

    @pytest.mark.asyncio
    async def test_ignores_unknown_ids(self):
        client, _ = make_client('[{"id": 7, "claims": ["Invented claim"]}]')
        result = await client.extract_implicit_claims([Sentence(text="Really?", index=0)])
        assert result == {}


# ── Rewrite ───────────────────────────────────────────────────────────────


class TestRewrite:
    @pytest.mark.asyncio
    async def test_rewrite_semantics(self):
        sentences = [
            Sentence(text="The incredibly successful company was founded in 2010.", index=0),
            Sentence(text="This seems like an important development.", index=1),
            Sentence(text="Sources say the deal allegedly closed.", index=2),
        ]
        response = json.dumps([
            {"id": 0, "rewrittenSentence": "The company was founded in 2010."},
            {"id": 1, "rewritten": ""},
        ])
        client, _ = make_client(response)

        result = await client.rewrite(sentences)

        assert result[0].rewritten_text == "The company was founded in 2010."
        assert result[0].has_residue is True
        assert result[1].rewritten_text == ""
        assert result[1].has_residue is False
        assert result[2].rewritten_text is None

    @pytest.mark.asyncio
    async def test_failure_marks_rewrite_unavailable(self):
        client, _ = make_client(side_effect=RuntimeError("boom"))
        result = await client.rewrite([Sentence(text="Some say it rained.", index=4)])
        assert result[4].rewritten_text is None


# ── Disambiguate ──────────────────────────────────────────────────────────


class TestDisambiguate:
    @pytest.mark.asyncio
    async def test_results_per_candidate(self):
        candidates = [
            (Sentence(text="Apple released the iPhone in 2007.", index=0), "Apple released the iPhone in 2007."),
            (Sentence(text="He announced it yesterday.", index=1), "He announced it yesterday."),
            (Sentence(text="It was sold out.", index=2), "It was sold out."),
        ]
        response = json.dumps([
            {"id": 0, "isAmbiguous": False, "reasoning": "Clear"},
            {
                "id": 1,
                "is_ambiguous": "true",
                "ambiguityType": "Referential",
                "disambiguatedText": "Steve Jobs announced the iPhone on January 9, 2007.",
            },
            {"id": 2, "is_ambiguous": True, "ambiguity_type": "structural", "disambiguated": None},
        ])
        client, generator = make_client(response)

        result = await client.disambiguate(candidates, context=["Steve Jobs spoke.", "He announced it yesterday."])

        assert result[0].is_ambiguous is False
        assert result[0].ambiguity_type is None
        assert result[1].is_resolved is True
        assert result[1].ambiguity_type == AmbiguityType.REFERENTIAL
        assert result[2].is_ambiguous is True
        assert result[2].ambiguity_type == AmbiguityType.STRUCTURAL
        assert result[2].is_resolved is False

        prompt = generator.generate_json.await_args.args[0]
        assert "1. Steve Jobs spoke." in prompt

    @pytest.mark.asyncio
    async def test_ambiguous_without_type_defaults_to_referential(self):
        client, _ = make_client('[{"id": 0, "is_ambiguous": true}]')
        result = await client.disambiguate([(Sentence(text="It fell.", index=0), "It fell.")], context=[])
        assert result[0].ambiguity_type == AmbiguityType.REFERENTIAL

    @pytest.mark.asyncio
    async def test_failure_withholds_replacement(self):
        client, _ = make_client(side_effect=RuntimeError("boom"))
        result = await client.disambiguate([(Sentence(text="It fell.", index=3), "It fell.")], context=[])
        assert result[3].is_ambiguous is True
        assert result[3].disambiguated_text is None


# ── Opinion polarity ──────────────────────────────────────────────────────


class TestClassifyOpinions:
    @pytest.mark.asyncio
    async def test_labels_each_sentence(self, sentences):
        response = json.dumps([
            {"id": 1, "label": "Positive", "rationale": "Praises the phone."},
            {"id": 2, "label": "positive", "rationale": "Strong approval."},
        ])
        client, generator = make_client(response)

        results = await client.classify_opinions(sentences[1:])

        assert results[1].label == OpinionLabel.POSITIVE
        assert results[1].rationale == "Praises the phone."
        assert results[2].text == "Phones are the best invention ever."
        kwargs = generator.generate_json.await_args.kwargs
        assert kwargs["system_instruction"] == OPINION_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_alternate_keys_and_spellings(self, sentences):
        response = json.dumps([{"id": 2, "Sentiment": "NEGATIVE", "reason": "Dismissive."}])
        client, _ = make_client(response)

        results = await client.classify_opinions(sentences[2:])

        assert results[2].label == OpinionLabel.NEGATIVE

    @pytest.mark.asyncio
    async def test_missing_and_unknown_labels_fall_back_to_other(self, sentences):
        response = json.dumps([{"id": 1, "label": "Sarcastic"}])
        client, _ = make_client(response)

        results = await client.classify_opinions(sentences[1:])

        assert set(results) == {1, 2}
        assert results[1].label == OpinionLabel.OTHER
        assert results[2].label == OpinionLabel.OTHER
        assert results[2].rationale == FAILED_REASONING

    @pytest.mark.parametrize("side_effect", [RuntimeError("quota"), None])
    @pytest.mark.asyncio
    async def test_failed_call_labels_everything_other(self, sentences, side_effect):
        client, _ = make_client("not json", side_effect=side_effect)

        results = await client.classify_opinions(sentences)

        assert [r.label for r in results.values()] == [OpinionLabel.OTHER] * 3

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self):
        client, generator = make_client("[]")

        assert await client.classify_opinions([]) == {}
        generator.generate_json.assert_not_awaited()

    def test_label_spellings(self):
        assert parse_opinion_label("Neutral") == OpinionLabel.OTHER
        assert parse_opinion_label(" negative ") == OpinionLabel.NEGATIVE
        assert parse_opinion_label("angry") is None
        assert parse_opinion_label(None) is None
