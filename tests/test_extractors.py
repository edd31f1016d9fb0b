from elitespeed_api.api.extractors import STATUS_EXTRACTORS, extract_status, field_extractor


def test_statut_has_priority_over_other_fields():
    payload = {
        "statut": "Livré",
        "last_status": "En cours de livraison",
        "message": "ok",
        "data": [{"status": "Expédié"}],
    }
    assert extract_status(payload) == "Livré"


def test_last_status_before_message():
    assert extract_status({"last_status": "Hors zone", "message": "Annuler"}) == "Hors zone"


def test_message_field():
    assert extract_status({"message": "Refusé"}) == "Refusé"


def test_timeline_newest_first():
    payload = {"data": [{"status": "Livré", "date": "2026-01-21"}, {"status": "En cours de livraison"}]}
    assert extract_status(payload) == "Livré"


def test_blank_fields_fall_through_to_timeline():
    payload = {"statut": "  ", "last_status": None, "data": [{"status": " En voyage "}]}
    assert extract_status(payload) == "En voyage"


def test_no_data_shapes():
    assert extract_status({}) is None
    assert extract_status({"data": []}) is None
    assert extract_status({"data": [{"date": "2026-01-21"}]}) is None
    assert extract_status({"data": ["Livré"]}) is None
    assert extract_status({"data": {"status": "Livré"}}) is None
    assert extract_status(["Livré"]) is None
    assert extract_status(None) is None


def test_custom_strategy_list():
    extractors = (field_extractor("etat"),) + STATUS_EXTRACTORS
    assert extract_status({"etat": "Annuler", "statut": "Livré"}, extractors) == "Annuler"
