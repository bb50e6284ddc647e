# Overview: Flask API routes for the staff directory and self profile updates.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_actor
from ..errors import ValidationError
from ..services import worker_service


workers_bp = Blueprint("workers", __name__, url_prefix="/api/workers")


@workers_bp.get("")
@require_actor
def list_workers_route():
    raw = request.args.get("limit")
    limit = None
    if raw:
        try:
            limit = int(raw)
        except ValueError:
            raise ValidationError("limit must be an integer")
    workers = worker_service.list_all_workers(g.current_worker_id, limit=limit)
    return jsonify({"success": True, "data": [worker.to_dict() for worker in workers]}), 200


@workers_bp.get("/branch/<branch_id>")
@require_actor
def list_branch_workers_route(branch_id: str):
    workers = worker_service.list_branch_workers(g.current_worker_id, branch_id)
    return jsonify({"success": True, "data": [worker.to_dict() for worker in workers]}), 200


@workers_bp.patch("/me")
@require_actor
def update_profile_route():
    """Update the caller's own name, email, phone number or address."""
    data = request.get_json(silent=True) or {}
    worker = worker_service.update_own_profile(g.current_worker_id, data)
    return jsonify({"success": True, "data": worker.to_dict()}), 200


@workers_bp.get("/<worker_id>")
@require_actor
def get_worker_route(worker_id: str):
    worker = worker_service.get_worker(g.current_worker_id, worker_id)
    return jsonify({"success": True, "data": worker.to_dict()}), 200
