"""
Validation des relevés avant ingestion.
Fonctions pures : aucun accès BDD, aucun effet de bord.
"""

from typing import Any, List, Mapping

REQUIRED_FIELDS = ("sample", "well_name", "block", "type")


def missing_fields(record: Any) -> List[str]:
    """Retourne les champs obligatoires absents ou vides (après strip) du relevé."""
    if not isinstance(record, Mapping):
        return list(REQUIRED_FIELDS)
    missing = []
    for field in REQUIRED_FIELDS:
        value = record.get(field)
        if not isinstance(value, str) or not value.strip():
            missing.append(field)
    return missing


def is_valid_record(record: Any) -> bool:
    """
    Un relevé est valide si sample, well_name, block et type sont présents et non vides.
    device_id, local_id et scanned_at ne sont pas vérifiés : ils prennent une valeur par défaut.
    """
    return not missing_fields(record)
