"""
Translation Strategy Module

Transaction descriptions and notes are produced through a Translator so an
embedding application can localize them. The default translator yields fixed
English strings.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional


# Message key -> English template
DEFAULT_MESSAGES: Dict[str, str] = {
    "lent_money_to": "Lent money to {name}",
    "borrowed_money_from": "Borrowed money from {name}",
    "lent_for": "Lent for: {reason}",
    "borrowed_for": "Borrowed for: {reason}",
    "recovered_loan_from": "Recovered loan from {name}",
    "repaid_debt_to": "Repaid debt to {name}",
    "loan_recovery": "Loan recovery",
    "debt_repayment": "Debt repayment",
}


class Translator(ABC):
    """Maps a message key and parameters to a display string"""

    @abstractmethod
    def translate(self, key: str, **params: Any) -> str:
        pass


class DefaultTranslator(Translator):
    """Fixed-format English messages; unknown keys are returned unchanged"""

    def __init__(self, messages: Optional[Dict[str, str]] = None):
        self.messages = dict(DEFAULT_MESSAGES)
        if messages:
            self.messages.update(messages)

    def translate(self, key: str, **params: Any) -> str:
        template = self.messages.get(key)
        if template is None:
            return key
        return template.format(**params)


class CallableTranslator(Translator):
    """Adapts an i18n function called as ``fn(key, params)``"""

    def __init__(self, fn: Callable[[str, Dict[str, Any]], str]):
        self.fn = fn

    def translate(self, key: str, **params: Any) -> str:
        return self.fn(key, params)


def resolve_translator(translator: Any) -> Translator:
    """Accept a Translator, a plain i18n callable, or None"""
    if translator is None:
        return DefaultTranslator()
    if isinstance(translator, Translator):
        return translator
    if callable(translator):
        return CallableTranslator(translator)
    raise TypeError(f"Unsupported translator: {translator!r}")
