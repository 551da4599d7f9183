from flask import Blueprint, request, jsonify, g
from models import db, Nonprofit
from errors import ValidationError, NotFound
from utils import role_required, handle_upstream_errors, log_activity, send_approval_status_email

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/api/admin/nonprofits/pending', methods=['GET'])
@handle_upstream_errors('Failed to fetch pending nonprofits')
@role_required('ADMIN')
def get_pending_nonprofits():
    """
    Called when Admin opens the 'Nonprofits' tab.
    Shows registrations waiting for approval + the document to vet.
    """
    pending = Nonprofit.query.filter(Nonprofit.nonprofit_document_approval.is_(None))\
        .order_by(Nonprofit.created_at.asc()).all()

    results = []
    for n in pending:
        results.append({
            'id': n.id,
            'name': n.name,
            'organizationType': n.organization_type,
            'nonprofitDocumentId': n.nonprofit_document_id,
            'joinedAt': n.created_at.strftime('%Y-%m-%d') if n.created_at else "N/A"
        })

    return jsonify(results), 200


@admin_bp.route('/api/admin/nonprofits/<nonprofit_id>/approval', methods=['PATCH', 'POST'])
@handle_upstream_errors('Failed to process nonprofit approval')
@role_required('ADMIN')
def set_nonprofit_approval(nonprofit_id):
    """
    Approves or rejects a nonprofit registration (Admin only).
    Body: {"approved": true|false}. The nonprofit's users are emailed the decision.
    """
    admin = g.current_user
    data = request.get_json(silent=True) or {}

    approved = data.get('approved')
    if not isinstance(approved, bool):
        raise ValidationError('Approval status is required')

    nonprofit = db.session.get(Nonprofit, nonprofit_id)
    if not nonprofit:
        raise NotFound('Nonprofit not found')

    nonprofit.nonprofit_document_approval = approved
    db.session.commit()

    decision = "APPROVED" if approved else "REJECTED"
    log_activity(admin.id, f"NONPROFIT_{decision}", f"{decision.capitalize()} registration of {nonprofit.name}")

    # Email failure is logged inside; the decision itself already stands
    email_sent = send_approval_status_email(nonprofit, admin, approved)

    return jsonify({
        'message': f'Nonprofit {nonprofit.name} has been {decision.lower()}.',
        'nonprofitId': nonprofit.id,
        'approved': approved,
        'emailSent': email_sent
    }), 200
