import asyncio
import json
import logging
import random
from collections import Counter

import pytest

from placement.errors import ConfigurationError, ExternalServiceError
from placement.models import SkillTag
from placement.question_bank import FALLBACK_BANK
from placement.question_source import (
    AIQuestionGenerator,
    FallbackBank,
    FallbackQuestionSource,
    build_question_prompt,
    build_question_source,
)


class FakeClient:
    def __init__(self, reply=None, exc=None, delay=0.0):
        self.reply = reply
        self.exc = exc
        self.delay = delay
        self.prompts = []

    async def generate(self, prompt, *, json_output=False):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.reply


def _payload(**overrides):
    data = {
        "question": "Choose the correct form: 'He ___ to school every day.'",
        "options": ["goes", "go", "going", "gone"],
        "correctAnswer": "goes",
        "skillTag": "grammar",
    }
    data.update(overrides)
    return json.dumps(data)


def _assert_schema(question):
    assert question.question.strip()
    assert len(question.options) >= 2
    assert len(set(question.options)) == len(question.options)
    assert question.correct_answer in question.options
    assert question.skill_tag in (SkillTag.VOCAB, SkillTag.GRAMMAR)


class TestAIQuestionGenerator:
    @pytest.mark.asyncio
    async def test_valid_payload(self):
        client = FakeClient(reply=_payload())
        question = await AIQuestionGenerator(client).generate(7)
        assert question.correct_answer == "goes"
        assert question.options == ["goes", "go", "going", "gone"]
        assert question.skill_tag is SkillTag.GRAMMAR
        assert question.level == "B2"
        assert question.source == "ai"
        assert "CEFR level: B2" in client.prompts[0]

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self):
        client = FakeClient(reply="Here you go:\n```json\n" + _payload() + "\n```")
        question = await AIQuestionGenerator(client).generate(5)
        assert question.correct_answer == "goes"

    @pytest.mark.asyncio
    async def test_unknown_skill_tag_defaults_to_vocab(self):
        client = FakeClient(reply=_payload(skillTag="reading"))
        question = await AIQuestionGenerator(client).generate(5)
        assert question.skill_tag is SkillTag.VOCAB

    @pytest.mark.asyncio
    async def test_options_are_trimmed_and_deduplicated(self):
        client = FakeClient(reply=_payload(options=[" goes ", "go", "goes", "", "gone"]))
        question = await AIQuestionGenerator(client).generate(5)
        assert question.options == ["goes", "go", "gone"]

    @pytest.mark.asyncio
    async def test_unknown_correct_answer_uses_first_option(self, caplog):
        client = FakeClient(reply=_payload(correctAnswer="went"))
        with caplog.at_level(logging.WARNING, logger="placement.question_source"):
            question = await AIQuestionGenerator(client).generate(5)
        assert question.correct_answer == "goes"
        assert "not among options" in caplog.text

    @pytest.mark.asyncio
    async def test_strict_mode_rejects_unknown_correct_answer(self):
        client = FakeClient(reply=_payload(correctAnswer="went"))
        with pytest.raises(ExternalServiceError):
            await AIQuestionGenerator(client, strict_answers=True).generate(5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reply",
        [
            "",
            "   ",
            "not json at all",
            "[1, 2, 3]",
            _payload(question=""),
            _payload(options=["only one"]),
            _payload(options=["same", "same"]),
            _payload(options="goes, go"),
        ],
    )
    async def test_unusable_payloads_raise(self, reply):
        with pytest.raises(ExternalServiceError):
            await AIQuestionGenerator(FakeClient(reply=reply)).generate(5)

    @pytest.mark.asyncio
    async def test_client_error_is_wrapped(self):
        client = FakeClient(exc=RuntimeError("503 from upstream"))
        with pytest.raises(ExternalServiceError):
            await AIQuestionGenerator(client).generate(5)

    @pytest.mark.asyncio
    async def test_timeout(self):
        client = FakeClient(reply=_payload(), delay=1.0)
        with pytest.raises(ExternalServiceError, match="timed out"):
            await AIQuestionGenerator(client, timeout=0.01).generate(5)


def test_prompt_constrains_schema():
    prompt = build_question_prompt("A2")
    assert "CEFR level: A2" in prompt
    assert '"correctAnswer"' in prompt
    assert "STRICT JSON" in prompt


class TestFallbackBank:
    def test_empty_pool_is_a_configuration_error(self):
        with pytest.raises(ConfigurationError):
            FallbackBank([])

    def test_filters_by_level(self):
        bank = FallbackBank(rng=random.Random(7))
        for _ in range(20):
            question = bank.pick("B2")
            assert question.level == "B2"
            assert question.source == "bank"

    def test_unknown_level_uses_whole_pool(self):
        bank = FallbackBank(rng=random.Random(7))
        seen = {bank.pick("C2").question for _ in range(200)}
        assert len(seen) > 5

    @pytest.mark.asyncio
    async def test_every_question_is_well_formed(self):
        bank = FallbackBank(rng=random.Random(11))
        for difficulty in range(1, 10):
            for _ in range(10):
                _assert_schema(await bank.generate(difficulty))

    def test_option_order_varies(self):
        bank = FallbackBank(rng=random.Random(3))
        orders = {tuple(bank.pick("A1").options) for _ in range(50)}
        assert len(orders) > 1

    def test_correct_answer_position_is_uniform(self):
        entry = FALLBACK_BANK[0]
        bank = FallbackBank([entry], rng=random.Random(2024))
        draws = 8000
        positions = Counter(
            bank.pick(entry["level"]).options.index(entry["correct_answer"]) for _ in range(draws)
        )
        expected = draws / len(entry["options"])
        assert set(positions) == set(range(len(entry["options"])))
        # chi-square, 3 degrees of freedom; 16.27 is the 0.001 critical value
        chi_square = sum((count - expected) ** 2 / expected for count in positions.values())
        assert chi_square < 16.27

    def test_bank_entries_are_valid(self):
        for entry in FALLBACK_BANK:
            assert entry["correct_answer"] in entry["options"]
            assert len(entry["options"]) >= 4
            assert len(set(entry["options"])) == len(entry["options"])
            assert entry["skill_tag"] in ("vocab", "grammar")


class TestFallbackQuestionSource:
    @pytest.mark.asyncio
    async def test_ai_success_is_returned(self):
        source = FallbackQuestionSource(
            AIQuestionGenerator(FakeClient(reply=_payload())),
            FallbackBank(rng=random.Random(1)),
        )
        question = await source.generate(5)
        assert question.source == "ai"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "client",
        [
            FakeClient(exc=RuntimeError("boom")),
            FakeClient(reply="<html>bad gateway</html>"),
            FakeClient(reply=_payload(options=[])),
        ],
    )
    async def test_ai_failure_falls_back_to_bank(self, client):
        source = FallbackQuestionSource(AIQuestionGenerator(client), FallbackBank(rng=random.Random(1)))
        question = await source.generate(9)
        assert question.source == "bank"
        assert question.level == "C1"
        _assert_schema(question)
        # one attempt only, no retry
        assert len(client.prompts) == 1

    @pytest.mark.asyncio
    async def test_build_without_client_is_bank_only(self):
        source = build_question_source(None, rng=random.Random(5))
        assert isinstance(source, FallbackBank)
        assert (await source.generate(1)).level == "A1"

    @pytest.mark.asyncio
    async def test_build_with_client_chains_sources(self):
        source = build_question_source(FakeClient(exc=RuntimeError("down")), rng=random.Random(5))
        assert isinstance(source, FallbackQuestionSource)
        assert (await source.generate(3)).source == "bank"
