"""
Tests for the translation strategy
"""

import pytest

from borrow_ledger.translation import (
    DefaultTranslator, CallableTranslator, resolve_translator, DEFAULT_MESSAGES
)


class TestDefaultTranslator:
    def test_english_messages(self):
        t = DefaultTranslator()
        assert t.translate("lent_money_to", name="Alex") == "Lent money to Alex"
        assert t.translate("borrowed_money_from", name="Sam") == "Borrowed money from Sam"
        assert t.translate("lent_for", reason="lunch") == "Lent for: lunch"
        assert t.translate("borrowed_for", reason="rent") == "Borrowed for: rent"
        assert t.translate("recovered_loan_from", name="Alex") == "Recovered loan from Alex"
        assert t.translate("repaid_debt_to", name="Sam") == "Repaid debt to Sam"
        assert t.translate("loan_recovery") == "Loan recovery"
        assert t.translate("debt_repayment") == "Debt repayment"

    def test_unknown_key_returns_key(self):
        assert DefaultTranslator().translate("no_such_key") == "no_such_key"

    def test_overrides(self):
        t = DefaultTranslator({"loan_recovery": "Prêt récupéré"})
        assert t.translate("loan_recovery") == "Prêt récupéré"
        assert "loan_recovery" in DEFAULT_MESSAGES
        assert DEFAULT_MESSAGES["loan_recovery"] == "Loan recovery"


class TestResolveTranslator:
    def test_none_gives_default(self):
        assert isinstance(resolve_translator(None), DefaultTranslator)

    def test_translator_passed_through(self):
        t = DefaultTranslator()
        assert resolve_translator(t) is t

    def test_callable_is_adapted(self):
        t = resolve_translator(lambda key, params: f"{key}:{params.get('name', '')}")
        assert isinstance(t, CallableTranslator)
        assert t.translate("lent_money_to", name="Alex") == "lent_money_to:Alex"

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            resolve_translator(42)
