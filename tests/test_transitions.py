from order_sync.services.transitions import plan_transition


def test_first_delivery_is_an_edge():
    transition = plan_transition("En cours de livraison", True, "Livré")
    assert transition.status_changed
    assert transition.delivered_edge
    assert not transition.reshipping_revoked
    assert transition.changed


def test_repeated_delivery_is_not_an_edge():
    transition = plan_transition("Livré", True, "Livré")
    assert not transition.status_changed
    assert not transition.delivered_edge
    assert not transition.changed


def test_delivered_variant_after_delivered_is_not_an_edge():
    transition = plan_transition("Livré", True, "Livre")
    assert transition.status_changed
    assert not transition.delivered_edge


def test_return_status_revokes_reshipping():
    transition = plan_transition("En cours de livraison", True, "Annuler")
    assert transition.status_changed
    assert transition.reshipping_revoked
    assert not transition.delivered_edge


def test_unchanged_return_status_still_revokes_reshipping():
    transition = plan_transition("Hors zone", True, "Hors zone")
    assert not transition.status_changed
    assert transition.reshipping_revoked
    assert transition.changed


def test_reshipping_already_revoked_is_no_change():
    transition = plan_transition("Refusé", False, "Refusé")
    assert not transition.changed


def test_placeholder_status_to_carrier_status():
    transition = plan_transition("PRINTED", True, "Expédié")
    assert transition.old_status == "PRINTED"
    assert transition.new_status == "Expédié"
    assert transition.status_changed
    assert not transition.delivered_edge
    assert not transition.reshipping_revoked
