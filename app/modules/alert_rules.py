"""
SafeMed Medication Safety Rules
Allergy conflicts, drug-drug interactions and watch-listed medications
"""

import logging
from typing import List, Dict, Optional, Tuple, Iterable

from app.schemas import Alert, AlertCategory, AlertSeverity, Medication
from app.config import Settings, settings

logger = logging.getLogger(__name__)


# =============================================================================
# Rule Tables
# =============================================================================

# Allergen -> medications that cross-react with it
ALLERGY_CROSS_REACTIVITY: Dict[str, Tuple[str, ...]] = {
    "penicillin": ("amoxicillin", "ampicillin", "piperacillin", "flucloxacillin"),
    "aspirin": ("ibuprofen", "naproxen", "diclofenac"),
    "nsaid": ("ibuprofen", "naproxen", "diclofenac", "aspirin"),
    "sulfa": ("sulfamethoxazole", "co-trimoxazole"),
    "codeine": ("morphine", "tramadol"),
}

# Unordered risky pairs: (drug_a, drug_b, severity, clinical effect)
INTERACTION_TABLE: List[Tuple[str, str, AlertSeverity, str]] = [
    ("aspirin", "amlodipine", AlertSeverity.HIGH, "blood pressure spike"),
    ("ibuprofen", "warfarin", AlertSeverity.HIGH, "bleeding"),
    ("amoxicillin", "penicillin", AlertSeverity.MEDIUM, "duplicate beta-lactam therapy"),
    ("paracetamol", "codeine", AlertSeverity.MEDIUM, "additive hepatotoxicity and sedation"),
    ("aspirin", "ibuprofen", AlertSeverity.MEDIUM, "GI bleeding, reduced antiplatelet effect"),
]

# Single high-risk medications: name -> reason
WATCHLIST: Dict[str, str] = {
    "warfarin": "narrow therapeutic index, monitor INR",
    "codeine": "opioid, risk of respiratory depression",
    "amoxicillin": "frequent hypersensitivity reactions",
}


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


# =============================================================================
# Rule Base Class
# =============================================================================

class MedicationRule:
    """Base class for medication safety rules"""

    def __init__(self, rule_id: str, rule_name: str, category: AlertCategory):
        self.rule_id = rule_id
        self.rule_name = rule_name
        self.category = category

    def evaluate(
        self,
        allergies: List[str],
        medications: List[Medication]
    ) -> List[Alert]:
        """
        Evaluate rule against a patient's allergies and medications

        Args:
            allergies: Free-text allergy strings
            medications: Current medications

        Returns:
            List of alerts if rule is triggered
        """
        raise NotImplementedError("Subclasses must implement evaluate()")

    def _create_alert(
        self,
        severity: AlertSeverity,
        message: str,
        medications: Iterable[str]
    ) -> Alert:
        """Helper method to create an alert"""
        return Alert(
            category=self.category,
            severity=severity,
            message=message,
            rule_name=self.rule_name,
            medications=list(medications)
        )


# =============================================================================
# Rules
# =============================================================================

class AllergyMatchRule(MedicationRule):
    """
    Rule: A medication whose name overlaps a recorded allergy is an allergy risk.
    Matches on substring, on the medication's first word, or on the allergen's
    cross-reactivity group.
    """

    def __init__(self, cross_reactivity: Optional[Dict[str, Tuple[str, ...]]] = None):
        super().__init__(
            rule_id="ALLERGY_001",
            rule_name="Allergy Substring Match",
            category=AlertCategory.ALLERGY_RISK
        )
        self.cross_reactivity = cross_reactivity if cross_reactivity is not None else ALLERGY_CROSS_REACTIVITY

    def matches(self, allergy: str, medication_name: str) -> bool:
        allergy = _normalize(allergy)
        name = _normalize(medication_name)
        if not allergy or not name:
            return False

        if allergy in name:
            return True

        first_word = name.split()[0]
        if first_word in allergy:
            return True

        related = self.cross_reactivity.get(allergy, ())
        return any(drug in name for drug in related)

    def evaluate(self, allergies: List[str], medications: List[Medication]) -> List[Alert]:
        alerts = []

        for allergy in allergies:
            for med in medications:
                if self.matches(allergy, med.name):
                    alerts.append(self._create_alert(
                        severity=AlertSeverity.HIGH,
                        message=f"Patient is allergic to {allergy.strip()}! {med.name} was prescribed.",
                        medications=[med.name]
                    ))

        return alerts


class DrugInteractionRule(MedicationRule):
    """
    Rule: Two distinct medications forming a known risky pair interact.
    One alert per pair in the table, however many entries match.
    """

    def __init__(self, table: Optional[List[Tuple[str, str, AlertSeverity, str]]] = None):
        super().__init__(
            rule_id="INTERACTION_001",
            rule_name="Pairwise Drug Interaction",
            category=AlertCategory.DRUG_INTERACTION
        )
        self.table = table if table is not None else INTERACTION_TABLE

    def evaluate(self, allergies: List[str], medications: List[Medication]) -> List[Alert]:
        alerts = []
        names = [_normalize(m.name) for m in medications]

        for drug_a, drug_b, severity, effect in self.table:
            holders_a = {i for i, name in enumerate(names) if drug_a in name}
            holders_b = {i for i, name in enumerate(names) if drug_b in name}

            # Both must be present on different medication entries
            if any(i != j for i in holders_a for j in holders_b):
                alerts.append(self._create_alert(
                    severity=severity,
                    message=f"{drug_a.capitalize()} + {drug_b.capitalize()} = Serious risk ({effect})",
                    medications=[drug_a, drug_b]
                ))

        return alerts


class WatchlistRule(MedicationRule):
    """
    Rule: Watch-listed high-risk medications always raise a warning,
    independent of interactions.
    """

    def __init__(self, watchlist: Optional[Dict[str, str]] = None):
        super().__init__(
            rule_id="WATCHLIST_001",
            rule_name="High-Risk Medication Watchlist",
            category=AlertCategory.PHARMACOVIGILANCE
        )
        self.watchlist = watchlist if watchlist is not None else WATCHLIST

    def evaluate(self, allergies: List[str], medications: List[Medication]) -> List[Alert]:
        alerts = []

        for med in medications:
            name = _normalize(med.name)
            for drug, reason in self.watchlist.items():
                if drug in name:
                    alerts.append(self._create_alert(
                        severity=AlertSeverity.MEDIUM,
                        message=f"{med.name} is on the high-risk watchlist: {reason}",
                        medications=[med.name]
                    ))

        return alerts


# =============================================================================
# Rules Engine
# =============================================================================

class AlertRulesEngine:
    """
    Medication safety rules engine
    Evaluates all enabled rules and collects alerts
    """

    def __init__(self, config: Optional[Settings] = None):
        """Initialize rules engine with the enabled rules"""
        config = config or settings
        self.rules: List[MedicationRule] = []

        if config.rules_allergy_match:
            self.rules.append(AllergyMatchRule())

        if config.rules_drug_interactions:
            self.rules.append(DrugInteractionRule())

        if config.rules_watchlist:
            self.rules.append(WatchlistRule())

        logger.debug(f"Initialized alert rules engine with {len(self.rules)} rules")

    def evaluate_all_rules(
        self,
        allergies: List[str],
        medications: List[Medication]
    ) -> List[Alert]:
        """
        Evaluate all rules against a patient's allergies and medications

        Args:
            allergies: Free-text allergy strings
            medications: Current medications

        Returns:
            Alerts from triggered rules, not deduplicated
        """
        all_alerts = []

        for rule in self.rules:
            try:
                alerts = rule.evaluate(allergies, medications)
                if alerts:
                    logger.info(f"Rule {rule.rule_id} triggered {len(alerts)} alerts")
                    all_alerts.extend(alerts)
            except Exception as e:
                logger.error(f"Error evaluating rule {rule.rule_id}: {e}", exc_info=True)

        return all_alerts

    def get_rules_by_category(self, category: AlertCategory) -> List[MedicationRule]:
        """Get all rules in a specific category"""
        return [r for r in self.rules if r.category == category]


# =============================================================================
# Public API
# =============================================================================

def evaluate_alerts(
    allergies: List[str],
    medications: List[Medication],
    config: Optional[Settings] = None
) -> List[Alert]:
    """
    Evaluate all medication safety rules and generate alerts

    Args:
        allergies: Patient allergy list
        medications: Patient's current medications
        config: Settings controlling which rules are enabled

    Returns:
        List of alerts
    """
    engine = AlertRulesEngine(config)
    return engine.evaluate_all_rules(allergies, medications)
