# tests/test_email_service.py
"""
Tests des emails transactionnels (appels Resend simulés)
Exécuter: pytest tests/test_email_service.py -v
"""
import pytest

from app.models import Intervention, User, UserRole
from app.services import EmailNotificationService, InterventionEmailData, InterventionService
from app.services import email_service

intervention = Intervention(
    id="int-1",
    reference="INT-261102-ABC123",
    title="Fuite <cuisine>",
    description="L'eau coule sous l'évier",
    team_id="team-1",
    status="approuvee",
)
tenant = User(id="tenant-1", email="lucas@example.com", name="Lucas Bernard", role=UserRole.LOCATAIRE)
manager = User(id="manager-1", email="claire@example.com", name="Claire Martin", role=UserRole.GESTIONNAIRE)


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_send(params):
        calls.append(params)
        return {"id": f"email-{len(calls)}"}

    monkeypatch.setattr(email_service.resend, "api_key", None)
    monkeypatch.setattr(email_service.resend.Emails, "send", fake_send)
    return calls


def make_service(api_key="re_test_key"):
    return EmailNotificationService(api_key=api_key, sender="SEIDO <noreply@seido.app>",
                                    app_url="https://app.seido.test/")


def test_send_approved(sent):
    """Test email d'approbation envoyé via Resend"""
    result = make_service().send_approved(InterventionEmailData(
        intervention=intervention, recipients=[tenant], actor=manager
    ))
    assert result is True
    assert email_service.resend.api_key == "re_test_key"
    params = sent[0]
    assert params["from"] == "SEIDO <noreply@seido.app>"
    assert params["to"] == ["lucas@example.com"]
    assert params["subject"] == "Intervention approuvée : Fuite <cuisine>"
    assert "Fuite &lt;cuisine&gt;" in params["html"]
    assert "https://app.seido.test/interventions/int-1" in params["html"]


def test_disabled_without_api_key(sent):
    """Test aucun envoi sans clé API"""
    service = make_service(api_key=None)
    assert not service.enabled
    assert service.send_approved(InterventionEmailData(intervention=intervention, recipients=[tenant])) is False
    assert sent == []


def test_no_recipient_with_email(sent):
    """Test destinataires sans adresse : rien n'est envoyé"""
    no_email = User(id="tenant-2", name="Emma Petit", role=UserRole.LOCATAIRE)
    assert make_service().send_rejected(InterventionEmailData(intervention=intervention, recipients=[no_email])) is False
    assert sent == []


def test_resend_error_is_raised(monkeypatch):
    """Test erreur Resend remontée à l'appelant"""
    def refused(params):
        raise RuntimeError("422 validation_error")

    monkeypatch.setattr(email_service.resend.Emails, "send", refused)
    with pytest.raises(RuntimeError):
        make_service().send_completed(InterventionEmailData(intervention=intervention, recipients=[tenant]))


def test_email_failure_does_not_block_approval(db, users, make_intervention, monkeypatch):
    """Test panne Resend sans effet sur la transition"""
    def down(params):
        raise ConnectionError("resend unreachable")

    monkeypatch.setattr(email_service.resend.Emails, "send", down)
    service = InterventionService(db, emails=make_service())
    row = make_intervention("demande")

    result = service.approve(row["id"], users.manager.id)

    assert result.success
    assert result.data.status.value == "approuvee"
