# tests/test_intervention_service.py
"""
Tests de l'orchestrateur du cycle de vie des interventions
Exécuter: pytest tests/test_intervention_service.py -v
"""
import pytest
from datetime import datetime, timezone

from app.core.errors import ErrorKind, ValidationException, handle_error
from app.models import AssignmentRole, InterventionFilters, InterventionStatus

S = InterventionStatus

NEW_REQUEST = {
    "title": "Radiateur froid",
    "description": "Le radiateur de la chambre ne chauffe plus",
    "urgency": "haute",
    "type": "chauffage",
    "team_id": "team-1",
}


def ok(result):
    assert result.success, result.error
    return result.data


def status_of(db, intervention_id):
    return db.rows("interventions", id=intervention_id)[0]["status"]


# ========================================
# Cycle complet
# ========================================

def test_full_lifecycle(service, users, db):
    """Test demande, planification, travaux et clôture"""
    intervention = ok(service.request_intervention(NEW_REQUEST, users.tenant.id))
    assert intervention.status == S.demande
    assert intervention.reference.startswith("INT-")

    iid = intervention.id
    assert ok(service.approve(iid, users.manager.id, "OK pour intervention")).status == S.approuvee
    ok(service.assign_user(iid, users.manager.id, users.provider.id, AssignmentRole.prestataire))
    assert ok(service.start_planning(iid, users.manager.id)).status == S.planification

    first, second = ok(service.time_slots.propose(iid, [
        {"slot_date": "2026-11-02", "start_time": "09:00", "end_time": "11:00"},
        {"slot_date": "2026-11-03", "start_time": "14:00", "end_time": "16:00"},
    ], users.manager.id))
    ok(service.time_slots.record_response(first.id, users.tenant.id, True))
    ok(service.time_slots.record_response(first.id, users.provider.id, True))
    assert ok(service.time_slots.can_finalize(first.id)) is True

    scheduled = ok(service.confirm_schedule(iid, users.manager.id, first.id))
    assert scheduled.status == S.planifiee
    assert scheduled.scheduled_date == datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)

    started = ok(service.start(iid, users.provider.id))
    assert started.status == S.en_cours
    assert started.started_at is not None

    completed = ok(service.complete_by_provider(iid, users.provider.id, "Purge et remplacement de la vanne"))
    assert completed.provider_comment == "Purge et remplacement de la vanne"

    validated = ok(service.validate_by_tenant(iid, users.tenant.id, satisfaction=5))
    assert validated.status == S.cloturee_par_locataire
    assert validated.tenant_satisfaction == 5

    finalized = ok(service.finalize_by_manager(iid, users.manager.id, final_cost=180))
    assert finalized.status == S.cloturee_par_gestionnaire
    assert finalized.final_cost == 180
    assert finalized.finalized_at is not None

    actions = [entry["action"] for entry in db.rows("activity_logs", intervention_id=iid)]
    assert actions[0] == "intervention_created"
    assert "schedule_confirmed" in actions
    assert actions[-1] == "status_cloturee_par_gestionnaire"


# ========================================
# Création
# ========================================

def test_tenant_request_side_effects(service, users, db):
    """Test affectation, fils de discussion et notification des gestionnaires"""
    intervention = ok(service.request_intervention(NEW_REQUEST, users.tenant.id))

    assignments = db.rows("intervention_assignments", intervention_id=intervention.id)
    assert [(a["user_id"], a["role"]) for a in assignments] == [(users.tenant.id, "locataire")]

    threads = sorted(t["thread_type"] for t in db.rows("conversation_threads", intervention_id=intervention.id))
    assert threads == ["group", "tenant_to_managers"]

    notification = db.rows("notifications", intervention_id=intervention.id)[0]
    assert notification["type"] == "intervention"
    assert notification["target_roles"] == ["gestionnaire"]
    assert notification["target_users"] is None


def test_manager_request_is_preapproved(service, users, db):
    """Test création par un gestionnaire : statut approuvee"""
    intervention = ok(service.request_intervention(NEW_REQUEST, users.manager.id))
    assert intervention.status == S.approuvee
    assignment = db.rows("intervention_assignments", intervention_id=intervention.id)[0]
    assert assignment["role"] == "gestionnaire"
    assert assignment["is_lead"] is True


def test_provider_cannot_request(service, users, db):
    """Test création par un prestataire (doit échouer)"""
    result = service.request_intervention(NEW_REQUEST, users.provider.id)
    assert result.error.kind == ErrorKind.permission_denied
    assert db.rows("interventions") == []


def test_request_for_other_team(service, users):
    """Test création pour une autre équipe (doit échouer)"""
    result = service.request_intervention({**NEW_REQUEST, "team_id": "team-2"}, users.tenant.id)
    assert result.error.kind == ErrorKind.permission_denied


def test_request_invalid_payload(service, users):
    """Test titre trop court (doit échouer)"""
    result = service.request_intervention({**NEW_REQUEST, "title": "AB"}, users.tenant.id)
    assert result.error.kind == ErrorKind.validation_error


def test_request_survives_side_effect_failures(service, users, db):
    """Test journal, fils et notifications en échec sans effet sur la création"""
    db.fail_on("notifications", "insert")
    db.fail_on("activity_logs", "insert")
    db.fail_on("conversation_threads", "insert")

    intervention = ok(service.request_intervention(NEW_REQUEST, users.tenant.id))

    assert status_of(db, intervention.id) == "demande"
    assert db.rows("notifications") == []
    assert db.rows("activity_logs") == []


def test_request_storage_failure(service, users):
    """Test écriture principale en échec : erreur de stockage"""
    service.db.fail_on("interventions", "insert")
    result = service.request_intervention(NEW_REQUEST, users.tenant.id)
    assert result.error.kind == ErrorKind.storage_failure
    assert "connection refused" not in result.error.message


# ========================================
# Transitions
# ========================================

def test_approve_by_tenant_denied(service, make_intervention, users, db):
    """Test approbation par le locataire (doit échouer)"""
    intervention = make_intervention(S.demande)
    result = service.approve(intervention["id"], users.tenant.id)
    assert result.error.kind == ErrorKind.permission_denied
    assert status_of(db, intervention["id"]) == "demande"


def test_illegal_transition_checked_first(service, make_intervention, users):
    """Test transition illégale signalée avant le contrôle de rôle"""
    intervention = make_intervention(S.approuvee)
    result = service.start(intervention["id"], users.tenant.id)
    assert result.error.kind == ErrorKind.validation_error


def test_reject_requires_reason(service, make_intervention, users, db):
    """Test refus sans motif (doit échouer)"""
    intervention = make_intervention(S.demande)
    result = service.reject(intervention["id"], users.manager.id, "")
    assert result.error.kind == ErrorKind.validation_error
    assert status_of(db, intervention["id"]) == "demande"


def test_reject_is_terminal(service, make_intervention, users):
    """Test demande refusée : plus aucune transition"""
    intervention = make_intervention(S.demande)
    rejected = ok(service.reject(intervention["id"], users.manager.id, "Hors périmètre du bail"))
    assert rejected.status == S.rejetee
    assert rejected.manager_comment == "Hors périmètre du bail"
    assert service.approve(intervention["id"], users.manager.id).error.kind == ErrorKind.validation_error


def test_unassigned_provider_cannot_start(service, make_intervention, users, db):
    """Test démarrage par un prestataire non affecté (doit échouer)"""
    intervention = make_intervention(S.planifiee, provider=users.provider)
    result = service.start(intervention["id"], users.other_provider.id)
    assert result.error.kind == ErrorKind.permission_denied
    assert status_of(db, intervention["id"]) == "planifiee"


def test_unassigned_tenant_cannot_validate(service, make_intervention, users, db):
    """Test validation par un locataire non affecté (doit échouer)"""
    intervention = make_intervention(S.cloturee_par_prestataire, provider=users.provider)
    result = service.validate_by_tenant(intervention["id"], users.other_tenant.id)
    assert result.error.kind == ErrorKind.permission_denied
    assert status_of(db, intervention["id"]) == "cloturee_par_prestataire"


@pytest.mark.parametrize("satisfaction", [0, 6])
def test_validate_satisfaction_range(service, make_intervention, users, satisfaction):
    """Test note hors de 1 à 5 (doit échouer)"""
    intervention = make_intervention(S.cloturee_par_prestataire, provider=users.provider)
    result = service.validate_by_tenant(intervention["id"], users.tenant.id, satisfaction=satisfaction)
    assert result.error.kind == ErrorKind.validation_error


def test_finalize_negative_cost(service, make_intervention, users):
    """Test coût final négatif (doit échouer)"""
    intervention = make_intervention(S.cloturee_par_locataire)
    result = service.finalize_by_manager(intervention["id"], users.manager.id, final_cost=-5)
    assert result.error.kind == ErrorKind.validation_error


def test_unknown_intervention(service, users):
    """Test intervention inexistante"""
    result = service.approve("missing", users.manager.id)
    assert result.error.kind == ErrorKind.not_found


def test_concurrent_status_change_is_a_conflict(service, make_intervention, users, db, monkeypatch):
    """Test statut modifié entre la lecture et l'écriture"""
    intervention = make_intervention(S.demande)
    real_update_status = service.interventions.update_status

    def racing(*args, **kwargs):
        db.rows("interventions", id=intervention["id"])[0]["status"] = "rejetee"
        return real_update_status(*args, **kwargs)

    monkeypatch.setattr(service.interventions, "update_status", racing)
    result = service.approve(intervention["id"], users.manager.id)

    assert result.error.kind == ErrorKind.conflict
    assert status_of(db, intervention["id"]) == "rejetee"


def test_transition_survives_notification_failure(service, make_intervention, users, db):
    """Test notification en échec sans effet sur la transition"""
    intervention = make_intervention(S.demande)
    db.fail_on("notifications", "insert")
    assert ok(service.approve(intervention["id"], users.manager.id)).status == S.approuvee
    assert status_of(db, intervention["id"]) == "approuvee"


def test_transition_side_effects_run_independently(service, make_intervention, users, db, monkeypatch, caplog):
    """Test notification en échec : l'email part quand même et l'échec est journalisé"""
    intervention = make_intervention(S.demande)
    sent = []
    monkeypatch.setattr(service.emails, "send_approved", lambda data: sent.append(data) or True)
    db.fail_on("notifications", "insert")

    assert ok(service.approve(intervention["id"], users.manager.id)).status == S.approuvee

    assert [user.id for user in sent[0].recipients] == [users.tenant.id]
    assert "notification:approved" in caplog.text
    assert "effets ignorés ['notification:approved']" in caplog.text


# ========================================
# Annulation
# ========================================

def test_cancel_finalized_intervention(service, make_intervention, users, db):
    """Test annulation d'une intervention clôturée (doit échouer)"""
    intervention = make_intervention(S.cloturee_par_gestionnaire)
    result = service.cancel(intervention["id"], users.manager.id, "Doublon")
    assert result.error.kind == ErrorKind.validation_error
    assert status_of(db, intervention["id"]) == "cloturee_par_gestionnaire"


def test_cancel_by_assigned_tenant(service, make_intervention, users):
    """Test annulation par le locataire affecté"""
    intervention = make_intervention(S.approuvee)
    cancelled = ok(service.cancel(intervention["id"], users.tenant.id, "Problème résolu"))
    assert cancelled.status == S.annulee
    assert cancelled.cancellation_reason == "Problème résolu"


def test_cancel_by_other_tenant(service, make_intervention, users):
    """Test annulation par un locataire non affecté (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.cancel(intervention["id"], users.other_tenant.id, "Problème résolu")
    assert result.error.kind == ErrorKind.permission_denied


def test_cancel_requires_reason(service, make_intervention, users):
    """Test annulation sans motif (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.cancel(intervention["id"], users.manager.id, " ")
    assert result.error.kind == ErrorKind.validation_error


# ========================================
# Demande de devis
# ========================================

def test_request_quote_partial_failure_keeps_assignment(service, make_intervention, users, db):
    """Test échec du changement de statut : l'affectation déjà écrite est conservée"""
    intervention = make_intervention(S.approuvee)
    db.fail_on("interventions", "update")

    result = service.request_quote(intervention["id"], users.manager.id, users.provider.id)

    assert result.error.kind == ErrorKind.storage_failure
    assert db.rows("intervention_assignments", intervention_id=intervention["id"], role="prestataire")
    assert db.rows("intervention_quotes") == []
    assert status_of(db, intervention["id"]) == "approuvee"


def test_request_quote_twice_is_a_conflict(service, make_intervention, users):
    """Test prestataire déjà affecté (doit échouer)"""
    intervention = make_intervention(S.approuvee, provider=users.provider)
    result = service.request_quote(intervention["id"], users.manager.id, users.provider.id)
    assert result.error.kind == ErrorKind.conflict


def test_request_quote_from_non_provider(service, make_intervention, users):
    """Test demande de devis à un locataire (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.request_quote(intervention["id"], users.manager.id, users.other_tenant.id)
    assert result.error.kind == ErrorKind.validation_error


def test_request_quote_opens_provider_thread(service, make_intervention, users, db):
    """Test fil prestataire / gestionnaires ouvert"""
    intervention = make_intervention(S.approuvee)
    ok(service.request_quote(intervention["id"], users.manager.id, users.provider.id))
    thread = db.rows("conversation_threads", intervention_id=intervention["id"])[0]
    assert thread["thread_type"] == "provider_to_managers"
    assert set(thread["participant_ids"]) == {users.provider.id, users.manager.id}


# ========================================
# Affectations
# ========================================

def test_duplicate_assignment_is_a_conflict(service, make_intervention, users):
    """Test double affectation (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    ok(service.assign_user(intervention["id"], users.manager.id, users.provider.id, "prestataire"))
    result = service.assign_user(intervention["id"], users.manager.id, users.provider.id, "prestataire")
    assert result.error.kind == ErrorKind.conflict


def test_assignment_role_must_match(service, make_intervention, users):
    """Test affectation d'un locataire comme prestataire (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.assign_user(intervention["id"], users.manager.id, users.other_tenant.id, "prestataire")
    assert result.error.kind == ErrorKind.validation_error


def test_assign_requires_manager(service, make_intervention, users):
    """Test affectation par un locataire (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.assign_user(intervention["id"], users.tenant.id, users.provider.id, "prestataire")
    assert result.error.kind == ErrorKind.permission_denied


def test_unassign(service, make_intervention, users, db):
    """Test retrait d'une affectation"""
    intervention = make_intervention(S.approuvee, provider=users.provider)
    assert ok(service.unassign_user(intervention["id"], users.manager.id, users.provider.id)) == {"removed": 1}
    assert not db.rows("intervention_assignments", user_id=users.provider.id)
    result = service.unassign_user(intervention["id"], users.manager.id, users.provider.id)
    assert result.error.kind == ErrorKind.not_found


# ========================================
# Lecture, modification et suppression
# ========================================

def test_get_intervention_visibility(service, make_intervention, users):
    """Test intervention invisible pour un non-participant"""
    intervention = make_intervention(S.approuvee)
    assert ok(service.get_intervention(intervention["id"], users.tenant.id)).id == intervention["id"]
    assert ok(service.get_intervention(intervention["id"], users.manager.id)).id == intervention["id"]
    assert service.get_intervention(intervention["id"], users.other_tenant.id).error.kind == ErrorKind.not_found
    assert service.get_intervention(intervention["id"], users.foreign_manager.id).error.kind == ErrorKind.not_found


def test_my_interventions(service, make_intervention, users):
    """Test interventions par affectation et par équipe"""
    mine = make_intervention(S.demande)
    make_intervention(S.demande, tenant=users.other_tenant)

    assert [i.id for i in ok(service.get_my_interventions(users.tenant.id))] == [mine["id"]]
    assert len(ok(service.get_my_interventions(users.manager.id))) == 2


def test_list_with_filters(service, make_intervention, users):
    """Test filtre par statut"""
    make_intervention(S.demande)
    approved = make_intervention(S.approuvee)
    result = ok(service.list_interventions(users.manager.id, InterventionFilters(status=S.approuvee)))
    assert [i.id for i in result] == [approved["id"]]
    assert service.list_interventions(users.tenant.id).error.kind == ErrorKind.permission_denied


def test_tenant_updates_own_request(service, make_intervention, users):
    """Test modification par le locataire tant que la demande est en attente"""
    intervention = make_intervention(S.demande)
    updated = ok(service.update_intervention(intervention["id"], users.tenant.id, {"title": "Fuite importante"}))
    assert updated.title == "Fuite importante"

    result = service.update_intervention(intervention["id"], users.tenant.id, {"estimated_cost": 10})
    assert result.error.kind == ErrorKind.permission_denied


def test_tenant_cannot_update_after_approval(service, make_intervention, users):
    """Test modification par le locataire après approbation (doit échouer)"""
    intervention = make_intervention(S.approuvee)
    result = service.update_intervention(intervention["id"], users.tenant.id, {"title": "Fuite importante"})
    assert result.error.kind == ErrorKind.permission_denied


def test_empty_update_is_a_validation_error(service, make_intervention):
    """Test mise à jour sans champ au niveau CRUD : erreur de validation"""
    intervention = make_intervention(S.approuvee)

    with pytest.raises(ValidationException) as excinfo:
        service.interventions.update(intervention["id"], {})

    assert handle_error(excinfo.value, "interventions:update").kind == ErrorKind.validation_error


def test_soft_delete(service, make_intervention, users, db):
    """Test suppression logique"""
    intervention = make_intervention(S.approuvee)
    ok(service.delete(intervention["id"], users.manager.id))
    assert db.rows("interventions", id=intervention["id"])[0]["deleted_by"] == users.manager.id
    assert service.get_intervention(intervention["id"], users.manager.id).error.kind == ErrorKind.not_found


def test_cannot_delete_during_work(service, make_intervention, users):
    """Test suppression pendant les travaux (doit échouer)"""
    intervention = make_intervention(S.en_cours)
    result = service.delete(intervention["id"], users.manager.id)
    assert result.error.kind == ErrorKind.validation_error


def test_dashboard_stats(service, make_intervention, users):
    """Test statistiques du tableau de bord"""
    make_intervention(S.demande, urgency="urgente")
    make_intervention(S.demande_de_devis)
    stats = ok(service.get_dashboard_stats(users.manager.id))
    assert stats.total == 2
    assert stats.by_status["demande"] == 1
    assert stats.by_urgency["urgente"] == 1
    assert stats.pending_quotes == 1


def test_activity_history(service, make_intervention, users):
    """Test historique visible par les participants"""
    intervention = make_intervention(S.demande)
    ok(service.approve(intervention["id"], users.manager.id))
    entries = ok(service.get_activity(intervention["id"], users.tenant.id))
    assert [e.action for e in entries] == ["status_approuvee"]
    assert entries[0].metadata == {"from": "demande", "to": "approuvee"}
