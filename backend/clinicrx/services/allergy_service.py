"""
Allergy cross-reference for the prescription form.

Advisory only: the patient's recorded allergies are shown next to the
medication lines for the clinician to review. Nothing here matches drug
names against allergies or blocks a prescription.
"""
import logging
from typing import Callable, List, Optional

from clinicrx.core.exceptions import NotFound

logger = logging.getLogger(__name__)

NO_ALLERGIES_BANNER = "None recorded"


def list_allergies(patient) -> List[str]:
    """Recorded allergies in their stored order, blank entries dropped."""
    if patient is None:
        return []
    allergies = getattr(patient, "allergies", None) or []
    return [a.strip() for a in allergies if isinstance(a, str) and a.strip()]


def allergy_banner(allergies: List[str]) -> str:
    """Text for the "Allergies:" line of the patient card."""
    if not allergies:
        return NO_ALLERGIES_BANNER
    return ", ".join(allergies)


def has_allergy(patient, allergen: str) -> bool:
    """Case-insensitive exact match against the recorded list."""
    if not allergen or not allergen.strip():
        return False
    needle = allergen.strip().lower()
    return any(a.lower() == needle for a in list_allergies(patient))


def known_allergies(lookup: Callable[[int], object], patient_id: Optional[int]) -> List[str]:
    """
    Fetch a patient through the directory lookup and list their allergies.

    A missing patient is not an error here: the banner is non-critical, so
    the lookup failure is logged and an empty list is returned.
    """
    if not patient_id:
        return []
    try:
        patient = lookup(patient_id)
    except NotFound:
        logger.warning(f"Allergy lookup: patient {patient_id} not found, showing none recorded")
        return []
    return list_allergies(patient)
