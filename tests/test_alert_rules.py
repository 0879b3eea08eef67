"""
Unit tests for the medication safety rules
"""

import itertools

import pytest
from app.config import Settings
from app.modules.alert_rules import (
    AlertRulesEngine,
    AllergyMatchRule,
    DrugInteractionRule,
    MedicationRule,
    evaluate_alerts,
)
from app.schemas import AlertCategory, AlertSeverity, Medication


def meds(*names):
    return [Medication(name=name, patient_id=1) for name in names]


def by_category(alerts, category):
    return [a for a in alerts if a.category == category]


class TestAllergyMatchRule:
    """Test allergy conflict detection"""

    def test_penicillin_allergy_flags_amoxicillin_once(self):
        """Cross-reactive medication raises exactly one allergy alert"""
        alerts = evaluate_alerts(["penicillin"], meds("Amoxicillin"))

        allergy_alerts = by_category(alerts, AlertCategory.ALLERGY_RISK)
        assert len(allergy_alerts) == 1
        assert allergy_alerts[0].severity == AlertSeverity.HIGH
        assert "penicillin" in allergy_alerts[0].message
        assert "Amoxicillin" in allergy_alerts[0].message

    def test_substring_match_is_case_insensitive(self):
        """Allergy contained in the medication name"""
        rule = AllergyMatchRule()
        assert rule.matches("ASPIRIN", "aspirin 81 mg")
        assert rule.matches("Ibuprofen", "Children's IBUPROFEN suspension") is True

    def test_first_word_of_medication_in_allergy(self):
        """Free-text allergy notes still match the medication"""
        rule = AllergyMatchRule()
        assert rule.matches("aspirin (hives)", "Aspirin 81mg")

    def test_blank_values_never_match(self):
        """Empty allergy strings would otherwise match everything"""
        rule = AllergyMatchRule()
        assert not rule.matches("", "Aspirin")
        assert not rule.matches("   ", "Aspirin")
        assert not rule.matches("aspirin", "")

    def test_unrelated_allergy(self):
        """No overlap, no alert"""
        alerts = evaluate_alerts(["latex"], meds("Paracetamol"))
        assert alerts == []

    def test_one_alert_per_allergy_medication_pair(self):
        """Duplicates are not collapsed"""
        alerts = evaluate_alerts(["penicillin", "amoxicillin"], meds("Amoxicillin"))
        assert len(by_category(alerts, AlertCategory.ALLERGY_RISK)) == 2


class TestDrugInteractionRule:
    """Test pairwise interaction detection"""

    def test_aspirin_amlodipine(self):
        """Known risky pair raises exactly one interaction alert"""
        alerts = evaluate_alerts([], meds("Aspirin", "Amlodipine"))

        interactions = by_category(alerts, AlertCategory.DRUG_INTERACTION)
        assert len(interactions) == 1
        assert interactions[0].severity == AlertSeverity.HIGH
        assert interactions[0].medications == ["aspirin", "amlodipine"]

    def test_single_safe_medication(self):
        """Paracetamol alone is not flagged"""
        assert evaluate_alerts([], meds("Paracetamol")) == []

    def test_pair_requires_distinct_entries(self):
        """A single entry naming both drugs does not interact with itself"""
        rule = DrugInteractionRule()
        assert rule.evaluate([], meds("Aspirin/Ibuprofen combination")) == []

    def test_repeated_medication_still_one_alert(self):
        """Each table pair fires at most once"""
        alerts = DrugInteractionRule().evaluate([], meds("Aspirin", "Aspirin 81mg", "Amlodipine"))
        assert len(alerts) == 1

    def test_multiple_pairs(self):
        """Aspirin + ibuprofen + warfarin hits two pairs"""
        alerts = DrugInteractionRule().evaluate([], meds("Aspirin", "Ibuprofen", "Warfarin"))
        pairs = {tuple(a.medications) for a in alerts}
        assert pairs == {("aspirin", "ibuprofen"), ("ibuprofen", "warfarin")}


class TestWatchlistRule:
    """Test single-drug watchlist"""

    def test_warfarin_warning(self):
        alerts = evaluate_alerts([], meds("Warfarin 5mg"))

        assert len(alerts) == 1
        assert alerts[0].category == AlertCategory.PHARMACOVIGILANCE
        assert alerts[0].severity == AlertSeverity.MEDIUM

    def test_watchlist_can_be_disabled(self):
        config = Settings(environment="test", rules_watchlist=False)
        assert evaluate_alerts([], meds("Warfarin"), config) == []


class TestAlertRulesEngine:
    """Test the complete engine"""

    @pytest.fixture
    def medication_names(self):
        return ["Aspirin", "Ibuprofen", "Amlodipine", "Codeine", "Paracetamol"]

    def test_invariant_under_reordering(self, medication_names):
        """Pairing is commutative: any order gives the same multiset of alerts"""
        allergies = ["aspirin", "penicillin"]

        def signature(names):
            alerts = evaluate_alerts(allergies, meds(*names))
            return sorted((a.category.value, a.severity.value, a.message) for a in alerts)

        expected = signature(medication_names)
        assert expected
        for order in itertools.permutations(medication_names):
            assert signature(list(order)) == expected

    def test_rules_follow_settings(self):
        """Disabled rules are not loaded"""
        config = Settings(environment="test", rules_allergy_match=False, rules_drug_interactions=False)
        engine = AlertRulesEngine(config)

        assert len(engine.rules) == 1
        assert engine.get_rules_by_category(AlertCategory.ALLERGY_RISK) == []

    def test_failing_rule_is_skipped(self):
        """One broken rule does not abort evaluation"""

        class BrokenRule(MedicationRule):
            def __init__(self):
                super().__init__("BROKEN", "Broken", AlertCategory.DRUG_INTERACTION)

            def evaluate(self, allergies, medications):
                raise RuntimeError("boom")

        engine = AlertRulesEngine(Settings(environment="test"))
        engine.rules.insert(0, BrokenRule())

        alerts = engine.evaluate_all_rules([], meds("Aspirin", "Amlodipine"))
        assert len(by_category(alerts, AlertCategory.DRUG_INTERACTION)) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
