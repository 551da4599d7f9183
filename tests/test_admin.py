import pytest
from unittest.mock import patch
from conftest import auth_headers
from extensions import db
from models import AuditLog, Nonprofit

# ==========================================
#  1. PENDING REGISTRATIONS
# ==========================================

def test_pending_list_only_shows_undecided(client, admin_headers, nonprofit_factory):
    nonprofit_factory(name="Waiting Pantry")
    nonprofit_factory(name="Approved Bank", approval=True)
    nonprofit_factory(name="Rejected Rescue", approval=False)

    response = client.get('/api/admin/nonprofits/pending', headers=admin_headers)

    assert response.status_code == 200
    assert [n['name'] for n in response.get_json()] == ["Waiting Pantry"]

def test_pending_list_admin_only(client, user_factory):
    response = client.get('/api/admin/nonprofits/pending', headers=auth_headers(user_factory('STAFF')))
    assert response.status_code == 401

# ==========================================
#  2. APPROVE / REJECT
# ==========================================

def test_approve_nonprofit_sends_email(client, admin_headers, admin_user, nonprofit_factory, user_factory):
    pantry = nonprofit_factory()
    user_factory('NONPROFIT', email="member@pantry.org", nonprofit_id=pantry.id)

    with patch('extensions.mail.send') as mock_send:
        response = client.patch(f'/api/admin/nonprofits/{pantry.id}/approval',
                                json={"approved": True}, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['emailSent'] is True

    sent = mock_send.call_args[0][0]
    assert sent.recipients == ["member@pantry.org"]
    assert "APPROVED" in sent.body

    db.session.expire_all()
    assert db.session.get(Nonprofit, pantry.id).nonprofit_document_approval is True
    log = AuditLog.query.filter_by(user_id=admin_user.id).first()
    assert log.action == "NONPROFIT_APPROVED"

def test_reject_survives_mail_failure(client, admin_headers, nonprofit_factory, user_factory):
    """Edge Case: The decision stands even if SMTP is down."""
    pantry = nonprofit_factory()
    user_factory('NONPROFIT', nonprofit_id=pantry.id)

    with patch('extensions.mail.send', side_effect=ConnectionRefusedError("smtp down")):
        response = client.patch(f'/api/admin/nonprofits/{pantry.id}/approval',
                                json={"approved": False}, headers=admin_headers)

    assert response.status_code == 200
    assert response.get_json()['emailSent'] is False
    db.session.expire_all()
    assert db.session.get(Nonprofit, pantry.id).nonprofit_document_approval is False

@pytest.mark.parametrize('payload', [{}, {"approved": "yes"}, None])
def test_approval_flag_required(client, admin_headers, nonprofit_factory, payload):
    pantry = nonprofit_factory()
    response = client.patch(f'/api/admin/nonprofits/{pantry.id}/approval', json=payload, headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json() == {'error': 'Approval status is required'}

def test_approval_unknown_nonprofit(client, admin_headers):
    response = client.patch('/api/admin/nonprofits/nope/approval', json={"approved": True}, headers=admin_headers)
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Nonprofit not found'}

def test_approval_unexpected_failure(client, admin_headers, nonprofit_factory):
    pantry = nonprofit_factory()
    with patch('routes.admin.send_approval_status_email', side_effect=RuntimeError("template blew up")):
        response = client.patch(f'/api/admin/nonprofits/{pantry.id}/approval',
                                json={"approved": True}, headers=admin_headers)
    assert response.status_code == 500
    assert response.get_json() == {'error': 'Failed to process nonprofit approval'}

# ==========================================
#  3. ADMIN SEEDING
# ==========================================

def test_seed_admin_is_idempotent(app):
    from seed import seed_admin, ADMIN_EMAIL
    from models import User

    assert seed_admin() is True
    assert seed_admin() is False
    assert User.query.filter_by(email=ADMIN_EMAIL, role='ADMIN').count() == 1
