"""Consolidation and store statistics routes."""
import logging
from flask import Blueprint, jsonify, request

from ...consolidation import ConsolidationEngine
from ...exceptions import StoreError

logger = logging.getLogger(__name__)


def init_consolidation_routes(store, mirror, settings):
    """Initialize consolidation routes."""
    bp_consolidation = Blueprint("consolidation", __name__, url_prefix="/api/graph")
    engine = ConsolidationEngine(store, mirror=mirror, page_size=settings.page_size)

    @bp_consolidation.post("/consolidate")
    def api_consolidate():
        """Run garbage removal and duplicate merging."""
        body = request.get_json(silent=True) or {}
        dry_run = bool(body.get("dry_run", False))
        try:
            report = engine.run(dry_run=dry_run)
            return jsonify({**report.summary(), "report": report.to_dict()})
        except StoreError as e:
            logger.error(f"Consolidation aborted: {e}")
            return jsonify({"error": str(e)}), 503
        except Exception as e:
            logger.exception("Consolidation failed")
            return jsonify({"error": str(e)}), 500

    @bp_consolidation.get("/stats")
    def api_stats():
        """Entity and edge counts."""
        try:
            return jsonify(store.stats())
        except StoreError as e:
            logger.error(f"Stats unavailable: {e}")
            return jsonify({"error": str(e)}), 503

    return bp_consolidation
