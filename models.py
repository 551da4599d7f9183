from datetime import datetime, timezone
from sqlalchemy.orm import deferred
from extensions import db
import uuid

# --- ENUMERATIONS (stored as plain strings) ---
ROLES = ('ADMIN', 'STAFF', 'SUPPLIER', 'NONPROFIT')
PRODUCT_STATUSES = ('AVAILABLE', 'RESERVED', 'PENDING')
SUPPLIER_CADENCES = ('DAILY', 'WEEKLY', 'BIWEEKLY', 'MONTHLY', 'TBD')
ORGANIZATION_TYPES = ('FOOD_BANK', 'PANTRY', 'STUDENT_PANTRY', 'FOOD_RESCUE', 'AGRICULTURE', 'OTHER')


def _new_id():
    return uuid.uuid4().hex


def _utcnow():
    return datetime.now(timezone.utc)


# ==========================================
#  1. USER MODEL
# ==========================================
class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    role = db.Column(db.String(20), nullable=True)

    # --- ORGANIZATION LINKS ---
    supplier_id = db.Column(db.String(32), db.ForeignKey('suppliers.id'), nullable=True)
    nonprofit_id = db.Column(db.String(32), db.ForeignKey('nonprofits.id'), nullable=True)
    product_survey_id = db.Column(db.String(32), db.ForeignKey('product_surveys.id'), nullable=True)

    # --- TIMESTAMPS ---
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    product_survey = db.relationship('ProductSurvey')

# ==========================================
#  2. SUPPLIER MODEL
# ==========================================
class Supplier(db.Model):
    __tablename__ = 'suppliers'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    cadence = db.Column(db.String(20), nullable=False, default='TBD')

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    users = db.relationship('User', backref='supplier', lazy=True)
    products = db.relationship('ProductRequest', backref='supplier', lazy=True)

# ==========================================
#  3. NONPROFIT + DOCUMENT MODELS
# ==========================================
class Nonprofit(db.Model):
    __tablename__ = 'nonprofits'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    organization_type = db.Column(db.String(30), nullable=False, default='OTHER')

    nonprofit_document_id = db.Column(db.String(32), db.ForeignKey('nonprofit_documents.id'), nullable=True)
    # True = approved, False = rejected, None = still pending review
    nonprofit_document_approval = db.Column(db.Boolean, nullable=True)

    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    users = db.relationship('User', backref='nonprofit', lazy=True)
    products_claimed = db.relationship('ProductRequest', backref='claimed_by', lazy=True)
    nonprofit_document = db.relationship('NonprofitDocument', backref=db.backref('nonprofit', uselist=False))


class NonprofitDocument(db.Model):
    """
    Registration proof uploaded by a nonprofit.
    New uploads live on disk (file_path); older rows still carry the bytes inline (file_data).
    """
    __tablename__ = 'nonprofit_documents'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    file_name = db.Column(db.String(255), nullable=False)
    file_type = db.Column(db.String(100), nullable=False)
    file_path = db.Column(db.String(500), nullable=True)
    file_data = deferred(db.Column(db.LargeBinary, nullable=True))
    uploaded_at = db.Column(db.DateTime, default=_utcnow)

# ==========================================
#  4. PRODUCT MODELS
# ==========================================
class ProductType(db.Model):
    __tablename__ = 'product_types'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    protein = db.Column(db.Boolean, default=False)
    protein_types = db.Column(db.JSON, default=list)  # e.g. ["POULTRY", "FRESH"]
    produce = db.Column(db.Boolean, default=False)
    shelf_stable = db.Column(db.Boolean, default=False)
    shelf_stable_individual_serving = db.Column(db.Boolean, default=False)
    already_prepared_food = db.Column(db.Boolean, default=False)
    other = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, default=_utcnow)


class ProductSurvey(db.Model):
    """ Which food categories a user is interested in receiving. """
    __tablename__ = 'product_surveys'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    protein = db.Column(db.Boolean, default=False)
    produce = db.Column(db.Boolean, default=False)
    shelf_stable = db.Column(db.Boolean, default=False)
    shelf_stable_individual_serving = db.Column(db.Boolean, default=False)
    already_prepared_food = db.Column(db.Boolean, default=False)
    other = db.Column(db.Boolean, default=False)


class PickupInfo(db.Model):
    __tablename__ = 'pickup_infos'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    pickup_date = db.Column(db.DateTime, nullable=False)
    pickup_location = db.Column(db.String(255))
    contact_name = db.Column(db.String(100))
    contact_phone = db.Column(db.String(20))


class ProductRequest(db.Model):
    __tablename__ = 'product_requests'

    id = db.Column(db.String(32), primary_key=True, default=_new_id)
    name = db.Column(db.String(150), nullable=False)
    unit = db.Column(db.String(20), default='POUNDS')
    quantity = db.Column(db.Float, default=0)
    description = db.Column(db.Text)
    status = db.Column(db.String(20), default='AVAILABLE', index=True)

    supplier_id = db.Column(db.String(32), db.ForeignKey('suppliers.id'), nullable=False, index=True)
    product_type_id = db.Column(db.String(32), db.ForeignKey('product_types.id'), nullable=False)
    pickup_info_id = db.Column(db.String(32), db.ForeignKey('pickup_infos.id'), nullable=True)
    claimed_by_id = db.Column(db.String(32), db.ForeignKey('nonprofits.id'), nullable=True, index=True)

    # --- TIMESTAMPS ---
    created_at = db.Column(db.DateTime, default=_utcnow)
    updated_at = db.Column(db.DateTime, default=_utcnow, onupdate=_utcnow)

    product_type = db.relationship('ProductType')
    pickup_info = db.relationship('PickupInfo')

# ==========================================
#  5. AUDIT LOG MODEL
# ==========================================
class AuditLog(db.Model):
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False)
    action = db.Column(db.String(50), nullable=False)
    details = db.Column(db.String(255))
    timestamp = db.Column(db.DateTime, server_default=db.func.now()) # Acts as Created At

    user = db.relationship('User', backref='logs')
