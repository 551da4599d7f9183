from datetime import datetime, timedelta, timezone
from flask import Blueprint, request, jsonify, g
from sqlalchemy import func, desc
from models import db, User, Supplier, Nonprofit, ProductRequest, ProductType
from aggregators import (
    CLAIMED_STATUSES,
    aggregate_claims_timeline,
    aggregate_product_distribution,
    aggregate_status_trends,
    aggregate_supplier_activity,
    aggregate_nonprofit_engagement,
    build_system_health,
    build_supplier_metrics,
    build_nonprofit_metrics,
)
from errors import ValidationError, AuthorizationDenied
from utils import role_required, handle_upstream_errors

analytics_bp = Blueprint('analytics', __name__)

DASHBOARD_ROLES = ('ADMIN', 'STAFF')


# ==========================================
#  DATA ACCESS (one snapshot per request)
# ==========================================
def load_claimed_update_times():
    rows = db.session.query(ProductRequest.updated_at)\
        .filter(ProductRequest.claimed_by_id.isnot(None)).all()
    return [updated_at for (updated_at,) in rows]


def load_product_types():
    return ProductType.query.all()


def load_products_by_creation():
    return ProductRequest.query.order_by(ProductRequest.created_at.asc()).all()


def load_supplier_product_counts():
    product_count = func.count(ProductRequest.id).label('product_count')
    return db.session.query(Supplier, product_count)\
        .outerjoin(ProductRequest, ProductRequest.supplier_id == Supplier.id)\
        .group_by(Supplier.id)\
        .order_by(desc(product_count), Supplier.name).all()


def load_nonprofit_claim_counts():
    claimed_count = func.count(ProductRequest.id).label('claimed_count')
    return db.session.query(Nonprofit, claimed_count)\
        .outerjoin(ProductRequest, ProductRequest.claimed_by_id == Nonprofit.id)\
        .group_by(Nonprofit.id)\
        .order_by(desc(claimed_count), Nonprofit.name).all()


# ==========================================
#  1. CLAIMS OVER TIME
# ==========================================
@analytics_bp.route('/api/analytics/claims-over-time', methods=['GET'])
@handle_upstream_errors('Failed to fetch claims over time')
@role_required(*DASHBOARD_ROLES)
def claims_over_time():
    """ Monthly histogram of claimed products (keyed by their last update). """
    timeline = aggregate_claims_timeline(load_claimed_update_times())
    return jsonify({'timeline': timeline}), 200


# ==========================================
#  2. PRODUCT DISTRIBUTION
# ==========================================
@analytics_bp.route('/api/analytics/product-distribution', methods=['GET'])
@handle_upstream_errors('Failed to fetch product distribution')
@role_required(*DASHBOARD_ROLES)
def product_distribution():
    return jsonify(aggregate_product_distribution(load_product_types())), 200


# ==========================================
#  3. PRODUCT STATUS TRENDS
# ==========================================
@analytics_bp.route('/api/analytics/product-status-trends', methods=['GET'])
@handle_upstream_errors('Failed to fetch product status trends')
@role_required(*DASHBOARD_ROLES)
def product_status_trends():
    trends = aggregate_status_trends(load_products_by_creation())
    return jsonify({'trends': trends}), 200


# ==========================================
#  4. SUPPLIER ACTIVITY
# ==========================================
@analytics_bp.route('/api/analytics/supplier-activity', methods=['GET'])
@handle_upstream_errors('Failed to fetch supplier activity')
@role_required(*DASHBOARD_ROLES)
def supplier_activity():
    """ Suppliers ranked by how many products they posted + cadence breakdown. """
    return jsonify(aggregate_supplier_activity(load_supplier_product_counts())), 200


# ==========================================
#  5. NONPROFIT ENGAGEMENT
# ==========================================
@analytics_bp.route('/api/analytics/nonprofit-engagement', methods=['GET'])
@handle_upstream_errors('Failed to fetch nonprofit engagement')
@role_required(*DASHBOARD_ROLES)
def nonprofit_engagement():
    return jsonify(aggregate_nonprofit_engagement(load_nonprofit_claim_counts())), 200


# ==========================================
#  6. SYSTEM HEALTH
# ==========================================
@analytics_bp.route('/api/analytics/system-health', methods=['GET'])
@handle_upstream_errors('Failed to fetch system health')
@role_required(*DASHBOARD_ROLES)
def system_health():
    """ Platform-wide counters for the admin overview tab. """
    user_role_counts = db.session.query(User.role, func.count(User.id)).group_by(User.role).all()
    status_counts = db.session.query(ProductRequest.status, func.count(ProductRequest.id))\
        .group_by(ProductRequest.status).all()

    totals = {
        'users': User.query.count(),
        'suppliers': Supplier.query.count(),
        'nonprofits': Nonprofit.query.count(),
        'products': ProductRequest.query.count(),
    }

    claimed_products = ProductRequest.query.filter(ProductRequest.status.in_(CLAIMED_STATUSES)).all()
    approvals = [a for (a,) in db.session.query(Nonprofit.nonprofit_document_approval).all()]

    return jsonify(build_system_health(user_role_counts, status_counts, totals, claimed_products, approvals)), 200


# ==========================================
#  7. SUPPLIER METRICS (Supplier dashboard)
# ==========================================
@analytics_bp.route('/api/analytics/supplier-metrics', methods=['GET'])
@handle_upstream_errors('Failed to fetch supplier metrics')
@role_required('ADMIN', 'STAFF', 'SUPPLIER')
def supplier_metrics():
    supplier_id = request.args.get('supplierId')
    if not supplier_id:
        raise ValidationError('Supplier ID is required')
    # Suppliers only see their own dashboard
    if g.current_user.role == 'SUPPLIER' and supplier_id != g.current_user.supplier_id:
        raise AuthorizationDenied()

    products = ProductRequest.query.filter_by(supplier_id=supplier_id).all()
    return jsonify(build_supplier_metrics(products, datetime.now(timezone.utc))), 200


# ==========================================
#  8. NONPROFIT METRICS (Nonprofit dashboard)
# ==========================================
@analytics_bp.route('/api/analytics/nonprofit-metrics', methods=['GET'])
@handle_upstream_errors('Failed to fetch nonprofit metrics')
@role_required('ADMIN', 'STAFF', 'NONPROFIT')
def nonprofit_metrics():
    nonprofit_id = request.args.get('nonprofitId')
    if not nonprofit_id:
        raise ValidationError('Nonprofit ID is required')
    if g.current_user.role == 'NONPROFIT' and nonprofit_id != g.current_user.nonprofit_id:
        raise AuthorizationDenied()

    now = datetime.now(timezone.utc)

    claimed_products = ProductRequest.query.filter_by(claimed_by_id=nonprofit_id).all()

    # Interests come from the survey of the nonprofit's first user
    first_user = User.query.filter_by(nonprofit_id=nonprofit_id).order_by(User.created_at.asc()).first()
    interests = first_user.product_survey if first_user else None

    available_types = [p.product_type for p in ProductRequest.query.filter_by(status='AVAILABLE').all()]

    thirty_days_ago = (now - timedelta(days=30)).replace(tzinfo=None)
    recent_available_times = [
        created_at for (created_at,) in db.session.query(ProductRequest.created_at).filter(
            ProductRequest.status == 'AVAILABLE',
            ProductRequest.created_at >= thirty_days_ago,
        ).all()
    ]

    return jsonify(build_nonprofit_metrics(
        claimed_products, interests, available_types, recent_available_times, now
    )), 200
