import sys
import os
import pytest
from flask_jwt_extended import create_access_token

# 1. Add the parent directory to Python's path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# 2. NOW import from app
from app import create_app
from extensions import db
from models import User, Supplier, Nonprofit, ProductRequest, ProductType


@pytest.fixture
def app(tmp_path):
    """Create and configure a new app instance for each test."""
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "JWT_SECRET_KEY": "test-secret",
        "MAIL_DEFAULT_SENDER": "noreply@test.org",
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    return app.test_client()

# ==========================================
#  USERS & TOKENS
# ==========================================

@pytest.fixture
def user_factory(app):
    def _create(role, email=None, **kwargs):
        user = User(role=role, email=email or f"{role.lower()}@test.org", **kwargs)
        db.session.add(user)
        db.session.commit()
        return user
    return _create

def auth_headers(user):
    token = create_access_token(identity=user.id)
    return {'Authorization': f'Bearer {token}'}

@pytest.fixture
def admin_user(user_factory):
    return user_factory('ADMIN', name='Ada Admin')

@pytest.fixture
def admin_headers(admin_user):
    return auth_headers(admin_user)

# ==========================================
#  DOMAIN FACTORIES
# ==========================================

@pytest.fixture
def supplier_factory(app):
    def _create(name="Fresh Market", cadence="WEEKLY"):
        supplier = Supplier(name=name, cadence=cadence)
        db.session.add(supplier)
        db.session.commit()
        return supplier
    return _create

@pytest.fixture
def nonprofit_factory(app):
    def _create(name="Eastside Pantry", organization_type="PANTRY", approval=None):
        nonprofit = Nonprofit(name=name, organization_type=organization_type,
                              nonprofit_document_approval=approval)
        db.session.add(nonprofit)
        db.session.commit()
        return nonprofit
    return _create

@pytest.fixture
def product_factory(supplier_factory):
    default_supplier = {}

    def _create(supplier=None, product_type=None, **kwargs):
        if supplier is None:
            if 'supplier' not in default_supplier:
                default_supplier['supplier'] = supplier_factory()
            supplier = default_supplier['supplier']
        if product_type is None:
            product_type = ProductType(produce=True)
        defaults = {
            "name": "Canned Beans",
            "quantity": 10,
            "status": "AVAILABLE",
        }
        defaults.update(kwargs)
        product = ProductRequest(supplier=supplier, product_type=product_type, **defaults)
        db.session.add(product)
        db.session.commit()
        return product
    return _create
