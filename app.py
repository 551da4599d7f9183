from flask import Flask
from flask_cors import CORS
import os
from dotenv import load_dotenv
import re
from datetime import timedelta

# 1. IMPORT EXTENSIONS
from extensions import db, migrate, jwt, mail
from errors import register_error_handlers

load_dotenv()

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    re.compile(r"^https://.*\.vercel\.app$")
]


def create_app(test_config=None):
    """
    The Application Factory.
    Creates and configures the app, but does not run it.
    `test_config` overrides are applied before any extension reads the config.
    """
    app = Flask(__name__)

    # --- CONFIGURATION ---
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'default_secret_key')
    # Fix Postgres URL for SQLAlchemy
    database_url = os.getenv('DATABASE_URL', 'sqlite:///food_consortium.db')
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://")
    app.config['SQLALCHEMY_DATABASE_URI'] = database_url

    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'fallback-secret-key')
    app.config['JWT_ACCESS_TOKEN_EXPIRES'] = timedelta(minutes=25)

    # --- DOCUMENT STORAGE ---
    app.config['UPLOAD_FOLDER'] = os.getenv('UPLOAD_FOLDER', os.path.join(app.instance_path, 'uploads'))
    app.config['MAX_DOCUMENT_BYTES'] = 5 * 1024 * 1024
    # Multipart overhead on top of the document itself
    app.config['MAX_CONTENT_LENGTH'] = app.config['MAX_DOCUMENT_BYTES'] + 512 * 1024

    # --- EMAIL CONFIGURATION ---
    app.config['MAIL_SERVER'] = os.getenv('MAIL_SERVER', 'smtp.gmail.com')
    app.config['MAIL_PORT'] = int(os.getenv('MAIL_PORT', 587))
    app.config['MAIL_USE_TLS'] = True
    app.config['MAIL_USERNAME'] = os.getenv('MAIL_USERNAME')
    app.config['MAIL_PASSWORD'] = os.getenv('MAIL_PASSWORD')
    app.config['MAIL_DEFAULT_SENDER'] = os.getenv('MAIL_DEFAULT_SENDER', os.getenv('MAIL_USERNAME'))

    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(app.config['LOG_LEVEL'])

    # --- INITIALIZE EXTENSIONS ---
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    register_error_handlers(app, jwt)

    # --- CORS CONFIGURATION ---
    origins = os.getenv('CORS_ORIGINS')
    CORS(app, resources={
        r"/api/*": {
            "origins": origins.split(',') if origins else DEFAULT_ORIGINS,
            "methods": ["GET", "POST", "PATCH", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization", "X-Requested-With"],
            "expose_headers": ["Content-Disposition"],
            "supports_credentials": True
        }
    })

    # --- REGISTER BLUEPRINTS ---
    # Import inside the function to avoid circular imports
    from routes.analytics import analytics_bp
    from routes.documents import documents_bp
    from routes.admin import admin_bp

    app.register_blueprint(analytics_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(admin_bp)

    return app

# --- ENTRY POINT ---
# This only runs if you type 'python app.py'
if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
