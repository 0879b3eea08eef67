"""
Unit tests for prompt parsing
"""

import pytest
from app.modules.prompt_parser import (
    parse_patient_prompt,
    parse_encounter_prompt,
    extract_allergies,
    extract_medications,
    summarize,
)
from app.schemas import ParseOutcome


class TestPatientPrompt:
    """Test patient-creation prompts"""

    def test_leading_name_with_allergy(self):
        """Name at the start of the prompt"""
        result = parse_patient_prompt("Jane Doe, 45, allergic to penicillin")

        assert result.outcome == ParseOutcome.PARSED
        assert result.full_name == "Jane Doe"
        assert result.allergies == ["penicillin"]

    def test_named_patient_with_several_allergies(self):
        """Labeled name and an allergy list"""
        result = parse_patient_prompt(
            "Create a new patient named John Smith who is allergic to aspirin and ibuprofen"
        )

        assert result.parsed
        assert result.full_name == "John Smith"
        assert result.allergies == ["aspirin", "ibuprofen"]

    def test_name_and_allergies_labels(self):
        """Form-style prompt"""
        result = parse_patient_prompt("Name: Ali Khan. Allergies: Penicillin, Sulfa.")

        assert result.full_name == "Ali Khan"
        assert result.allergies == ["penicillin", "sulfa"]

    def test_no_known_allergies(self):
        """NKDA yields an explicit empty list"""
        result = parse_patient_prompt("New patient: Maria Garcia. No known allergies.")

        assert result.full_name == "Maria Garcia"
        assert result.allergies == []

    def test_missing_name_is_unparsed(self):
        """No placeholder name is ever invented"""
        result = parse_patient_prompt("45 year old with chest pain, allergic to latex")

        assert result.outcome == ParseOutcome.UNPARSED
        assert result.full_name is None
        assert result.reason
        assert result.allergies == ["latex"]

    def test_empty_prompt(self):
        result = parse_patient_prompt("   ")
        assert result.outcome == ParseOutcome.UNPARSED

    def test_allergen_before_keyword(self):
        """'<drug> allergy' names the drug, not the next clause"""
        result = parse_patient_prompt("Tom Baker, penicillin allergy, diabetic")

        assert result.full_name == "Tom Baker"
        assert result.allergies == ["penicillin"]

    def test_bare_keyword_captures_nothing(self):
        result = parse_patient_prompt("Tom Baker, allergy, diabetic")
        assert result.allergies == []

    def test_negation_keeps_stated_allergies(self):
        """A later 'no allergies to X' does not erase earlier allergies"""
        result = parse_patient_prompt("Tom Baker, allergic to penicillin; no allergies to food")
        assert result.allergies == ["penicillin"]

    def test_no_known_allergies_alongside_allergen(self):
        result = parse_patient_prompt("Tom Baker. No known allergies except a sulfa allergy")
        assert result.allergies == ["sulfa"]

    def test_title_case_name_stops_at_allergy(self):
        result = parse_patient_prompt("Jane Doe Allergic To Penicillin")

        assert result.full_name == "Jane Doe"
        assert result.allergies == ["penicillin"]


class TestEncounterPrompt:
    """Test encounter prompts"""

    def test_diagnosis_and_medications_with_doses(self):
        """Medications come back in order of mention"""
        result = parse_encounter_prompt(
            "Diagnosed with hypertension, started Amlodipine 5mg daily and Aspirin 81 mg"
        )

        assert result.parsed
        assert result.diagnosis == "hypertension"
        assert [(m.name, m.dose) for m in result.medications] == [
            ("Amlodipine", "5 mg"),
            ("Aspirin", "81 mg"),
        ]

    def test_allergen_is_not_a_prescription(self):
        """Drugs named in an allergy clause are skipped"""
        meds = extract_medications("Patient allergic to penicillin, prescribed amoxicillin 500mg")

        assert [(m.name, m.dose) for m in meds] == [("Amoxicillin", "500 mg")]

    def test_prescription_after_allergy_in_same_sentence(self):
        """The allergy list ends where the medication clause starts"""
        text = "Allergy to aspirin and on warfarin 5mg"

        assert [(m.name, m.dose) for m in extract_medications(text)] == [("Warfarin", "5 mg")]
        assert extract_allergies(text) == ["aspirin"]

    def test_allergen_before_keyword_is_not_a_prescription(self):
        meds = extract_medications("Penicillin allergy, given amoxicillin 250mg")
        assert [m.name for m in meds] == ["Amoxicillin"]

    def test_brand_names_map_to_generic(self):
        meds = extract_medications("Took Tylenol 500mg for headache")
        assert [m.name for m in meds] == ["Paracetamol"]

    def test_medication_mentioned_twice(self):
        meds = extract_medications("Aspirin 81mg daily. Continue aspirin.")
        assert len(meds) == 1

    def test_free_text_only_is_unparsed(self):
        """Encounter still gets a summary"""
        result = parse_encounter_prompt("Routine follow-up, feeling well")

        assert result.outcome == ParseOutcome.UNPARSED
        assert result.summary == "Routine follow-up, feeling well"
        assert result.medications == []


class TestSummary:
    """Test encounter summaries"""

    def test_long_prompt_is_truncated(self):
        text = "Patient seen for review " * 10
        summary = summarize(text)

        assert summary.endswith("...")
        assert len(summary) <= 63

    def test_short_prompt_kept(self):
        assert summarize("Cough for 3 days") == "Cough for 3 days"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
