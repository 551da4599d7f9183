from app import create_app
from flask_migrate import upgrade
from seed import seed_admin

app = create_app()

def deploy():
    """
    PRODUCTION DEPLOY SCRIPT
    1. Upgrades DB Schema (Safe migration)
    2. Seeds Admin (Only if missing)
    """
    with app.app_context():
        # --- PART 1: RUN MIGRATIONS (Instead of drop_all) ---
        print("🔄 1. Applying Database Migrations...")
        # This is the Python equivalent of running 'flask db upgrade'
        upgrade()
        print("✅ Database schema is up to date.")

        # --- PART 2: SEED ADMIN (Conditional) ---
        print("🌱 2. Checking Admin User...")
        seed_admin()

if __name__ == "__main__":
    deploy()
