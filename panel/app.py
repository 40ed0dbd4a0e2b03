"""Flask application factory."""
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
import os


def create_app(store=None):
    """Create and configure the Flask application.

    Args:
        store: Optional ShoppingListStore to serve instead of the shared one
    """
    app = Flask(__name__)

    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', os.urandom(24).hex())
    app.json.ensure_ascii = False
    app.config['STORE'] = store

    # Ensure data directory exists
    from config import DATA_DIR
    DATA_DIR.mkdir(exist_ok=True)

    @app.errorhandler(HTTPException)
    def json_http_error(error):
        """Keep error responses JSON for API clients."""
        return jsonify({'error': error.description}), error.code

    # Register blueprints
    from panel.routes import register_blueprints
    register_blueprints(app)

    return app


# For gunicorn: gunicorn -b 0.0.0.0:8080 panel.app:app
app = create_app()
