"""Tests for the keyword fallback responder."""

import pytest

from chatrelay.core.agent import DEFAULT_REPLY, RULES, local_reply, match_rule
from chatrelay.core.agent.fallback import (
    CANCELLATION,
    GRATITUDE,
    GREETING,
    PRICING,
    PROBLEM,
    TECHNICAL_SUPPORT,
)


class TestMatchRule:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("Oi, bom dia", GREETING),
            ("BOA TARDE!", GREETING),
            ("Muito obrigada", GRATITUDE),
            ("Deu um erro aqui", PROBLEM),
            ("Qual o preço?", PRICING),
            ("cancelar", CANCELLATION),
            ("Preciso de suporte técnico", TECHNICAL_SUPPORT),
        ],
    )
    def test_first_matching_rule_wins(self, message, expected):
        assert match_rule(message) is expected

    def test_earlier_rule_beats_later(self):
        # "plano" (pricing) is checked before "cancelar" (cancellation).
        assert match_rule("Quero cancelar o plano") is PRICING

    def test_no_keyword_returns_none(self):
        assert match_rule("Quando abre a loja?") is None

    def test_rules_order_is_fixed(self):
        assert [r.name for r in RULES] == [
            "greeting",
            "gratitude",
            "problem",
            "pricing",
            "how_to",
            "cancellation",
            "technical_support",
        ]


class TestLocalReply:
    def test_greeting_reply(self):
        assert local_reply("Oi, bom dia") == GREETING.reply

    def test_cancellation_reply(self):
        assert local_reply("cancelar") == CANCELLATION.reply

    def test_default_reply(self):
        assert local_reply("Quando abre a loja?") == DEFAULT_REPLY

    def test_empty_message_gets_default(self):
        assert local_reply("") == DEFAULT_REPLY
