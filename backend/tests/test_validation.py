"""
Tests unitaires de la validation des relevés (fonctions pures).
"""

import pytest

from app.services.validation import REQUIRED_FIELDS, is_valid_record, missing_fields


def make_record(**overrides) -> dict:
    record = {"sample": "S1", "well_name": "W1", "block": "B1", "type": "T1"}
    record.update(overrides)
    return record


def test_releve_complet_valide():
    assert is_valid_record(make_record()) is True
    assert missing_fields(make_record()) == []


@pytest.mark.parametrize("field", REQUIRED_FIELDS)
def test_champ_obligatoire_absent(field):
    record = make_record()
    del record[field]
    assert is_valid_record(record) is False
    assert missing_fields(record) == [field]


@pytest.mark.parametrize("value", ["", "   ", "\t\n", None])
def test_champ_vide_ou_blanc_invalide(value):
    assert is_valid_record(make_record(well_name=value)) is False


def test_champ_non_texte_invalide():
    """Un code-barres numérique non converti en texte est refusé."""
    assert is_valid_record(make_record(sample=12345)) is False


def test_champs_optionnels_non_verifies():
    """device_id, local_id et scanned_at absents ou farfelus n'invalident pas le relevé."""
    record = make_record(device_id=None, local_id="abc", scanned_at="hier")
    assert is_valid_record(record) is True


def test_releve_qui_nest_pas_un_objet():
    assert is_valid_record(["S1", "W1", "B1", "T1"]) is False
    assert is_valid_record(None) is False
    assert missing_fields("S1") == list(REQUIRED_FIELDS)


def test_blancs_entourant_acceptes():
    assert is_valid_record(make_record(block="  B1  ")) is True
