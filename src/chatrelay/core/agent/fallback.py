"""Deterministic keyword responder used when the agent backend is down.

Rules are evaluated top to bottom against the lower-cased message; the
first rule with a keyword contained in the message wins.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class KeywordRule:
    name: str
    keywords: tuple[str, ...]
    reply: str

    def matches(self, normalized: str) -> bool:
        return any(keyword in normalized for keyword in self.keywords)


GREETING = KeywordRule(
    name="greeting",
    keywords=("olá", "oi", "bom dia", "boa tarde", "boa noite"),
    reply="Olá! Bem-vindo ao atendimento Filazero. Como posso ajudá-lo hoje?",
)

GRATITUDE = KeywordRule(
    name="gratitude",
    keywords=("obrigad", "valeu", "brigado"),
    reply=(
        "De nada! Fico feliz em ajudar. "
        "Há mais alguma coisa que posso fazer por você?"
    ),
)

PROBLEM = KeywordRule(
    name="problem",
    keywords=("problema", "erro", "bug", "não funciona"),
    reply=(
        "Entendo que você está enfrentando um problema. Pode me fornecer mais "
        "detalhes sobre o que está acontecendo? Vou verificar na nossa base de "
        "conhecimento e ajudá-lo a resolver."
    ),
)

PRICING = KeywordRule(
    name="pricing",
    keywords=("preço", "valor", "custo", "plano"),
    reply=(
        "Para informações sobre preços e planos, posso conectá-lo com nossa "
        "equipe comercial. Que tipo de solução você está procurando?"
    ),
)

HOW_TO = KeywordRule(
    name="how_to",
    keywords=("como usar", "tutorial", "ajuda", "não sei"),
    reply=(
        "Claro! Ficarei feliz em orientá-lo. Pode me contar especificamente com "
        "o que você precisa de ajuda? Temos documentação e tutoriais disponíveis."
    ),
)

CANCELLATION = KeywordRule(
    name="cancellation",
    keywords=("cancelar", "cancelamento", "sair"),
    reply=(
        "Entendo que você deseja cancelar. Para questões de cancelamento, vou "
        "conectá-lo com um atendente especializado que poderá ajudá-lo com esse "
        "processo."
    ),
)

TECHNICAL_SUPPORT = KeywordRule(
    name="technical_support",
    keywords=("técnico", "suporte técnico", "desenvolvedor"),
    reply=(
        "Para suporte técnico especializado, vou transferir você para nossa "
        "equipe de desenvolvedores. Eles poderão ajudá-lo com questões mais "
        "técnicas."
    ),
)

DEFAULT_REPLY = (
    "Obrigado pela sua mensagem! Estou analisando sua solicitação e em breve "
    "fornecerei uma resposta detalhada. Enquanto isso, você pode me dar mais "
    "informações sobre o que precisa?"
)

RULES: tuple[KeywordRule, ...] = (
    GREETING,
    GRATITUDE,
    PROBLEM,
    PRICING,
    HOW_TO,
    CANCELLATION,
    TECHNICAL_SUPPORT,
)


def match_rule(message: str) -> KeywordRule | None:
    """Return the first matching rule, or ``None`` for the default reply."""
    normalized = message.lower()
    return next((rule for rule in RULES if rule.matches(normalized)), None)


def local_reply(message: str) -> str:
    rule = match_rule(message)
    return rule.reply if rule is not None else DEFAULT_REPLY
