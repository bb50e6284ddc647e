# Overview: Flask API routes for branch records and invoice list reconciliation.

from flask import Blueprint, jsonify, g

from ..decorators import require_actor
from ..services import branch_service


branches_bp = Blueprint("branches", __name__, url_prefix="/api/branches")


@branches_bp.get("/<branch_id>")
@require_actor
def get_branch_route(branch_id: str):
    branch = branch_service.view_branch(g.current_worker_id, branch_id)
    return jsonify({"success": True, "data": branch.to_dict()}), 200


@branches_bp.post("/<branch_id>/reconcile")
@require_actor
def reconcile_branch_route(branch_id: str):
    """
    Rebuild the branch's invoice id lists from the invoice tables.

    Available to: Admin
    """
    report = branch_service.reconcile_branch_as(g.current_worker_id, branch_id)
    return jsonify({"success": True, "data": report.to_dict()}), 200
