"""Path finding routes - warm introductions and entity-to-entity routes."""
import logging
from flask import Blueprint, jsonify, request

from ...exceptions import SnapshotLoadError
from ...graph import PathFinder, load_snapshot

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}


def _arg(name, cast):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    if cast is bool:
        return raw.strip().lower() in _TRUE
    return cast(raw)


def init_path_routes(store, settings):
    """Initialize path finding routes."""
    bp_paths = Blueprint("paths", __name__, url_prefix="/api/graph")

    def _finder():
        snapshot = load_snapshot(store, page_size=settings.page_size)
        return PathFinder(snapshot.entities, snapshot.edges)

    @bp_paths.get("/intro-paths/<target_id>")
    def api_intro_paths(target_id):
        """Ranked warm-introduction paths from internal owners to an entity."""
        try:
            options = {
                "max_hops": _arg("max_hops", int),
                "max_paths": _arg("max_paths", int),
                "min_strength": _arg("min_strength", float),
                "prefer_linkedin": _arg("prefer_linkedin", bool),
                "workers": _arg("workers", int),
            }
        except ValueError as e:
            return jsonify({"error": f"Invalid parameter: {e}"}), 400
        for key in ("max_hops", "max_paths", "min_strength"):
            if options[key] is None:
                options[key] = getattr(settings, key)

        try:
            finder = _finder()
        except SnapshotLoadError as e:
            logger.error(f"Graph unavailable: {e}")
            return jsonify({"error": "Graph unavailable", "detail": str(e)}), 503

        try:
            paths = finder.find_intro_paths(target_id, **options)
            body = {"target_id": target_id, "paths": [p.to_dict() for p in paths]}
            if _arg("insights", bool):
                body["insights"] = finder.get_path_insights(paths).to_dict()
            return jsonify(body)
        except Exception as e:
            logger.exception("Intro path search failed")
            return jsonify({"error": str(e)}), 500

    @bp_paths.get("/paths-between")
    def api_paths_between():
        """Paths between two arbitrary entities."""
        source_id = request.args.get("source")
        target_id = request.args.get("target")
        if not source_id or not target_id:
            return jsonify({"error": "source and target are required"}), 400
        try:
            overrides = {
                "max_hops": _arg("max_hops", int),
                "max_paths": _arg("max_paths", int),
                "min_strength": _arg("min_strength", float),
            }
        except ValueError as e:
            return jsonify({"error": f"Invalid parameter: {e}"}), 400

        try:
            finder = _finder()
        except SnapshotLoadError as e:
            logger.error(f"Graph unavailable: {e}")
            return jsonify({"error": "Graph unavailable", "detail": str(e)}), 503

        try:
            paths = finder.find_paths_between(source_id, target_id, **overrides)
            return jsonify({
                "source_id": source_id,
                "target_id": target_id,
                "paths": [p.to_dict() for p in paths],
            })
        except Exception as e:
            logger.exception("Path search failed")
            return jsonify({"error": str(e)}), 500

    return bp_paths
