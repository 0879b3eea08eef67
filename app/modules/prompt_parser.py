"""
SafeMed Prompt Parsing
Rule-based extraction of patient and encounter details from free-text prompts
"""

import re
import logging
from typing import List, Optional, Tuple

from app.schemas import (
    ParseOutcome, ParsedMedication, PatientPromptResult, EncounterPromptResult
)

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 60


# =============================================================================
# Clinical Patterns
# =============================================================================

class PromptPatterns:
    """Regular expression patterns for prompt parsing"""

    _NAME = r"([A-Z][a-zA-Z'\-]+(?:\s+[A-Z][a-zA-Z'\-]+){0,3})"

    # "named Jane Doe", "called Jane", "name: Jane Doe", "name is Jane Doe"
    LABELED_NAME = re.compile(
        r"\b(?i:named|called|name\s*(?:is|:))\s+" + _NAME
    )

    # "patient John Smith" (needs at least two capitalised words)
    PATIENT_NAME = re.compile(
        r"\b(?i:patient)\s*:?\s+([A-Z][a-zA-Z'\-]+(?:\s+[A-Z][a-zA-Z'\-]+){1,3})"
    )

    # Leading capitalised words: "Jane Doe, 45, allergic to penicillin"
    LEADING_NAME = re.compile(
        r"^\s*([A-Z][a-zA-Z'\-\.]*(?:\s+[A-Z][a-zA-Z'\-]+){1,4})"
    )

    NO_ALLERGIES = re.compile(
        r"\b(no known (?:drug )?allergies|no allergies|nkda|nka)\b",
        re.IGNORECASE
    )

    # "allergic to X", "allergies: X", "allergies include X"
    ALLERGY_PHRASE = re.compile(
        r"\ballerg(?:ic|y|ies)\b\s*(?:include[sd]?\s*:?|to\b|:|-)\s*([^.;\n]+)",
        re.IGNORECASE
    )

    # "penicillin allergy", "sulfa allergies"
    ALLERGEN_BEFORE_KEYWORD = re.compile(
        r"\b([A-Za-z][A-Za-z\-]+)\s+allerg(?:y|ies)\b",
        re.IGNORECASE
    )

    ALLERGY_CLAUSE_END = re.compile(
        r"\b(?:since|but|with|who|which|presents?|presenting|started|starting|prescribed|"
        r"diagnosed|on|taking|takes|given|continues?|continued|currently)\b",
        re.IGNORECASE
    )

    LIST_SEPARATOR = re.compile(r",|/|\band\b|\bor\b", re.IGNORECASE)

    DIAGNOSIS = re.compile(
        r"\b(?:diagnosed with|diagnosis(?:\s+of)?\s*:?|dx\s*:?|presents with|presenting with)\s+([^.;\n,]+)",
        re.IGNORECASE
    )

    DIAGNOSIS_END = re.compile(
        r"\s+(?:and\s+)?(?:was\s+|is\s+)?(?:started|prescribed|treated|given|on|taking)\b.*$",
        re.IGNORECASE
    )

    # Dose immediately following a medication mention
    MEDICATION_DOSE = re.compile(
        r"^\s*(\d+(?:\.\d+)?)\s*(mg|g|mcg|μg|units?|ml|l)\b",
        re.IGNORECASE
    )


# Words that can start a prompt but are never part of a name
NAME_STOPWORDS = {
    "create", "add", "new", "register", "patient", "a", "the", "please",
    "mr", "mr.", "mrs", "mrs.", "ms", "ms.", "dr", "dr.", "allergic", "no",
}

# A name never runs past these
NAME_BREAKS = {"allergic", "allergy", "allergies", "with", "nkda"}

# Words before "allergy" that qualify it rather than name an allergen
ALLERGY_QUALIFIERS = {
    "no", "known", "drug", "drugs", "food", "severe", "mild", "seasonal",
    "an", "a", "any", "the", "has", "have", "with", "and", "or", "of", "medication",
}


# =============================================================================
# Formulary
# =============================================================================

# generic name -> synonyms and brand names recognised in prompts
FORMULARY = {
    "aspirin": ("acetylsalicylic acid",),
    "amlodipine": ("norvasc",),
    "amoxicillin": ("amoxil",),
    "ampicillin": (),
    "penicillin": (),
    "ibuprofen": ("advil", "motrin"),
    "naproxen": ("aleve",),
    "diclofenac": ("voltaren",),
    "warfarin": ("coumadin",),
    "paracetamol": ("acetaminophen", "tylenol", "panadol"),
    "codeine": (),
    "morphine": (),
    "tramadol": (),
    "clopidogrel": ("plavix",),
    "metformin": ("glucophage",),
    "lisinopril": ("zestril",),
    "atorvastatin": ("lipitor",),
    "omeprazole": ("prilosec",),
    "salbutamol": ("albuterol", "ventolin"),
}


def summarize(text: str, length: int = SUMMARY_LENGTH) -> str:
    """Short encounter summary derived from the prompt"""
    text = " ".join(text.split())
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


# =============================================================================
# Patient Prompts
# =============================================================================

def _clean_name(candidate: str, min_words: int = 1) -> Optional[str]:
    words = candidate.split()
    while words and words[0].lower() in NAME_STOPWORDS:
        words.pop(0)
    for i, word in enumerate(words):
        if word.lower().strip(",.") in NAME_BREAKS:
            words = words[:i]
            break
    if len(words) < min_words:
        return None
    # Trailing words swallowed from the rest of the sentence
    while words and words[-1].lower() in NAME_STOPWORDS:
        words.pop()
    return " ".join(words) or None


def extract_name(text: str) -> Optional[str]:
    """Find the patient's display name in a prompt"""
    match = PromptPatterns.LABELED_NAME.search(text)
    if match:
        name = _clean_name(match.group(1))
        if name:
            return name

    match = PromptPatterns.PATIENT_NAME.search(text)
    if match:
        name = _clean_name(match.group(1), min_words=2)
        if name:
            return name

    match = PromptPatterns.LEADING_NAME.match(text)
    if match:
        return _clean_name(match.group(1), min_words=2)

    return None


def _allergy_clauses(text: str) -> List[Tuple[int, str]]:
    """
    (offset, clause) for every positive allergy mention, in order of mention

    Clauses after the keyword are cut at the next unrelated clause. Negated
    mentions ("no known allergies", "no allergies to food") yield nothing.
    """
    negated = [m.span() for m in PromptPatterns.NO_ALLERGIES.finditer(text)]

    def is_negated(pos: int) -> bool:
        return any(start <= pos < end for start, end in negated)

    clauses = []
    for match in PromptPatterns.ALLERGY_PHRASE.finditer(text):
        if is_negated(match.start()):
            continue
        clause = PromptPatterns.ALLERGY_CLAUSE_END.split(match.group(1))[0]
        clauses.append((match.start(1), clause))

    for match in PromptPatterns.ALLERGEN_BEFORE_KEYWORD.finditer(text):
        allergen = match.group(1)
        if allergen.lower() in ALLERGY_QUALIFIERS or is_negated(match.end() - 1):
            continue
        if re.search(r"\bno\s+$", text[:match.start()], re.IGNORECASE):
            continue
        clauses.append((match.start(1), allergen))

    clauses.sort(key=lambda clause: clause[0])
    return clauses


def extract_allergies(text: str) -> List[str]:
    """
    Find allergy strings in a prompt, lower-cased, in order of mention

    An NKDA statement only yields an empty list when no positive allergy
    is stated elsewhere in the prompt.
    """
    allergies: List[str] = []
    for _, clause in _allergy_clauses(text):
        for item in PromptPatterns.LIST_SEPARATOR.split(clause):
            item = item.strip().lower()
            item = re.sub(r"^(?:to|the)\s+", "", item)
            if not item or any(ch.isdigit() for ch in item):
                continue
            if item not in allergies:
                allergies.append(item)

    return allergies


def parse_patient_prompt(text: str) -> PatientPromptResult:
    """
    Parse a patient-creation prompt

    Args:
        text: Free-text prompt, e.g. "Jane Doe, 45, allergic to penicillin"

    Returns:
        Result with an explicit parsed/unparsed outcome
    """
    if not text or not text.strip():
        return PatientPromptResult(outcome=ParseOutcome.UNPARSED, reason="Prompt is empty")

    full_name = extract_name(text)
    allergies = extract_allergies(text)

    if not full_name:
        logger.info("Patient prompt did not contain a recognisable name")
        return PatientPromptResult(
            outcome=ParseOutcome.UNPARSED,
            allergies=allergies,
            reason="No patient name found in prompt"
        )

    return PatientPromptResult(
        outcome=ParseOutcome.PARSED,
        full_name=full_name,
        allergies=allergies
    )


# =============================================================================
# Encounter Prompts
# =============================================================================

def extract_medications(text: str) -> List[ParsedMedication]:
    """Recognise formulary medications, with dose when one follows the name"""
    found = []
    # "allergic to penicillin" names an allergen, not a prescription
    allergy_spans = [(start, start + len(clause)) for start, clause in _allergy_clauses(text)]

    for generic, synonyms in FORMULARY.items():
        for term in (generic,) + synonyms:
            pattern = re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)
            match = next(
                (m for m in pattern.finditer(text)
                 if not any(start <= m.start() < end for start, end in allergy_spans)),
                None
            )
            if not match:
                continue

            dose = None
            dose_match = PromptPatterns.MEDICATION_DOSE.search(text[match.end():match.end() + 20])
            if dose_match:
                dose = f"{dose_match.group(1)} {dose_match.group(2).lower()}"

            found.append((match.start(), ParsedMedication(name=generic.capitalize(), dose=dose)))
            break

    found.sort(key=lambda item: item[0])
    return [med for _, med in found]


def extract_diagnosis(text: str) -> Optional[str]:
    match = PromptPatterns.DIAGNOSIS.search(text)
    if not match:
        return None
    diagnosis = PromptPatterns.DIAGNOSIS_END.sub("", match.group(1)).strip()
    return diagnosis or None


def parse_encounter_prompt(text: str) -> EncounterPromptResult:
    """
    Parse an encounter prompt into summary, diagnosis and medications

    The encounter is recorded either way; the outcome is UNPARSED when
    neither a diagnosis nor a medication could be recognised.
    """
    if not text or not text.strip():
        return EncounterPromptResult(outcome=ParseOutcome.UNPARSED, summary="", reason="Prompt is empty")

    diagnosis = extract_diagnosis(text)
    medications = extract_medications(text)

    if diagnosis is None and not medications:
        return EncounterPromptResult(
            outcome=ParseOutcome.UNPARSED,
            summary=summarize(text),
            reason="No diagnosis or known medication found in prompt"
        )

    return EncounterPromptResult(
        outcome=ParseOutcome.PARSED,
        summary=summarize(text),
        diagnosis=diagnosis,
        medications=medications
    )
