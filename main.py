import os
import logging
from flask import Flask
from models import db

# Configure logging
logging.basicConfig(level=os.environ.get("LOG_LEVEL", "DEBUG").upper(),
                   format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def _env_flag(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Create the Flask app
app = Flask(__name__)

# Configure the app
app.secret_key = os.environ.get("SESSION_SECRET") or "a-development-secret-key"

# Configure the database - use SQLite for development
app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get(
    "SQLALCHEMY_DATABASE_URI", "sqlite:///medical_register.db")
app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
logger.debug(f"Using database URL: {app.config['SQLALCHEMY_DATABASE_URI']}")

# Identity provider (Auth0)
app.config["AUTH0_DOMAIN"] = os.environ.get("AUTH0_DOMAIN", "")
app.config["AUTH0_CLIENT_ID"] = os.environ.get("AUTH0_CLIENT_ID", "")
app.config["AUTH0_CLIENT_SECRET"] = os.environ.get("AUTH0_CLIENT_SECRET", "")

# Record store behaviour
app.config["RECORDS_SOFT_DELETE"] = _env_flag("RECORDS_SOFT_DELETE", default=True)

# Simulated login for end-to-end tests; never enable in production
app.config["ENABLE_TEST_LOGIN"] = _env_flag("ENABLE_TEST_LOGIN")
if app.config["ENABLE_TEST_LOGIN"]:
    logger.warning("ENABLE_TEST_LOGIN is on: /test/login accepts any identity")

# Initialize the database with the app
db.init_app(app)

# Create database tables if they don't exist
with app.app_context():
    # Import models to ensure they're registered
    from models import MedicalRecord
    db.create_all()
    logger.info("Database tables created successfully")

# Register blueprints after initializing the database to avoid circular imports
from medical_records.auth import auth_blueprint
from medical_records.views import home_blueprint, records_blueprint
from medical_records.api import api_blueprint

app.register_blueprint(auth_blueprint)
app.register_blueprint(home_blueprint)
app.register_blueprint(records_blueprint)
app.register_blueprint(api_blueprint)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
