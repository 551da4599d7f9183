from app import create_app
from extensions import db
from models import User

ADMIN_EMAIL = 'admin@foodconsortium.org'


def seed_admin():
    # 1. Check if Admin exists
    if User.query.filter_by(email=ADMIN_EMAIL).first():
        print("✅ Admin user already exists. Skipping.")
        return False

    # 2. Create Admin if not found
    print("🚀 Creating Admin User...")
    admin = User(
        name='Super Admin',
        email=ADMIN_EMAIL,
        role='ADMIN',
    )
    db.session.add(admin)
    db.session.commit()
    print("✅ Admin Created Successfully!")
    return True


if __name__ == "__main__":
    with create_app().app_context():
        seed_admin()
