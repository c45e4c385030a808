import logging

from flask import Flask, jsonify
from flask_cors import CORS

from ..config import Settings
from ..database import SQLAlchemyStore, build_mirror
from .routes.consolidation import init_consolidation_routes
from .routes.paths import init_path_routes

logger = logging.getLogger(__name__)


def create_app(store=None, mirror=None, settings=None) -> Flask:
    """Build the API app; store and mirror are created from settings when not given."""
    settings = settings or Settings.from_env()
    store = store or SQLAlchemyStore(settings.db_url, page_size=settings.page_size)
    mirror = mirror or build_mirror(settings)

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": settings.cors_origins or ["*"]}})
    app.config["RELGRAPH_SETTINGS"] = settings
    app.config["RELGRAPH_STORE"] = store
    app.config["RELGRAPH_MIRROR"] = mirror

    app.register_blueprint(init_path_routes(store, settings))
    app.register_blueprint(init_consolidation_routes(store, mirror, settings))

    @app.get("/api/health")
    def api_health():
        return jsonify({"status": "ok", "mirror": settings.mirror_enabled})

    @app.errorhandler(404)
    def not_found(_e):
        return jsonify({"error": "Not found"}), 404

    logger.info(f"relgraph API ready (db: {settings.db_url}, mirror: {settings.mirror_enabled})")
    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )
    create_app(settings=settings).run(debug=settings.debug)


if __name__ == "__main__":
    main()
