import os

from config import config
from flask import Flask, jsonify
from flask_cors import CORS
from flask_login import LoginManager
from flask_migrate import Migrate


def create_app(config_name=None):
    """Application factory pattern"""
    if config_name is None:
        config_name = os.getenv("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Get allowed origins from environment variable
    ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173").split(",")

    CORS(
        app,
        resources={
            r"/api/*": {"origins": ALLOWED_ORIGINS},
            r"/progress/*": {"origins": ALLOWED_ORIGINS},
            r"/analytics/*": {"origins": ALLOWED_ORIGINS},
        },
        supports_credentials=True,
    )

    # Initialize SQLAlchemy
    from models import db

    db.init_app(app)

    # Initialize Flask-Migrate
    migrate = Migrate(app, db)

    # Initialize Flask-Login
    login_manager = LoginManager()
    login_manager.init_app(app)

    # Import all models to ensure they are registered with SQLAlchemy
    from models.completion_record import CompletionRecord
    from models.confidence_state import ConfidenceState
    from models.learner import Learner
    from models.practice_unit import PracticeUnit
    from models.progress_session import ProgressSession
    from models.pronunciation_state import PronunciationState
    from models.streak_state import StreakState
    from models.unit_assignment import UnitAssignment
    from models.unit_attempt import UnitAttempt

    # Learner loader callback for Flask-Login
    @login_manager.user_loader
    def load_learner(learner_id):
        return db.session.get(Learner, int(learner_id))

    # JSON 401 instead of a login redirect
    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"success": False, "error": "Authentication required"}), 401

    # Register API blueprints
    from routes.analytics import bp as analytics_bp
    from routes.api import bp as api_bp
    from routes.progress import bp as progress_bp

    app.register_blueprint(api_bp)
    app.register_blueprint(progress_bp)
    app.register_blueprint(analytics_bp)

    # Home route
    @app.route("/")
    def home():
        return jsonify({"message": "Welcome to Streakline!", "version": "1.0.0"})

    # Health check route
    @app.route("/health")
    def health_check():
        try:
            db.session.execute(db.text("SELECT 1"))
            return jsonify({"status": "healthy", "database": "connected"}), 200
        except Exception as e:
            app.logger.error(f"Health check failed: {e}")
            return jsonify({"status": "unhealthy", "error": str(e)}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True, port=5001)
