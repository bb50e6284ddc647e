# Overview: Flask API routes for sales receipt and expense invoices; parses input and returns JSON responses.

"""
Invoice API routes.

<kind> is the URL slug of the invoice kind: "sales-receipts" or "expenses".
Errors raised by the service layer (InvoicingError) are turned into JSON by
the app-level error handler.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_actor
from ..errors import NotFoundError, ValidationError
from ..services import invoice_service
from ..services.invoice_service import INVOICE_KINDS_BY_SLUG


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _kind(slug: str):
    kind = INVOICE_KINDS_BY_SLUG.get(slug)
    if kind is None:
        raise NotFoundError(f"Unknown invoice kind: {slug}")
    return kind


def _parse_limit():
    raw = request.args.get("limit")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("limit must be an integer")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be a JSON object")
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@invoices_bp.post("/<kind>/branch/<branch_id>")
@require_actor
def create_invoice_route(kind: str, branch_id: str):
    """
    Create an invoice for a branch.

    Available to: Admin (any branch), Manager (own branch)
    Returns 201 even when the branch link or notice degraded; see
    branch_linked / notification_status in the body.
    """
    invoice_kind = _kind(kind)
    result = invoice_service.create_invoice(invoice_kind, g.current_worker_id, branch_id, _json_body())
    return jsonify({"success": True, "data": result.to_dict()}), 201


@invoices_bp.get("/<kind>/branch/<branch_id>")
@require_actor
def list_branch_invoices_route(kind: str, branch_id: str):
    invoice_kind = _kind(kind)
    invoices = invoice_service.list_branch_invoices(
        invoice_kind, g.current_worker_id, branch_id, limit=_parse_limit()
    )
    return jsonify({"success": True, "data": [invoice.to_dict() for invoice in invoices]}), 200


@invoices_bp.get("/<kind>")
@require_actor
def list_all_invoices_route(kind: str):
    """Cross-branch listing, Admin only."""
    invoice_kind = _kind(kind)
    invoices = invoice_service.list_all_invoices(invoice_kind, g.current_worker_id, limit=_parse_limit())
    return jsonify({"success": True, "data": [invoice.to_dict() for invoice in invoices]}), 200


@invoices_bp.get("/<kind>/<invoice_id>")
@require_actor
def get_invoice_route(kind: str, invoice_id: str):
    invoice_kind = _kind(kind)
    invoice = invoice_service.get_invoice(invoice_kind, g.current_worker_id, invoice_id)
    return jsonify({"success": True, "data": invoice.to_hydrated_dict()}), 200


@invoices_bp.patch("/<kind>/<invoice_id>")
@require_actor
def update_invoice_route(kind: str, invoice_id: str):
    invoice_kind = _kind(kind)
    invoice = invoice_service.update_invoice(invoice_kind, g.current_worker_id, invoice_id, _json_body())
    return jsonify({"success": True, "data": invoice.to_hydrated_dict()}), 200


@invoices_bp.delete("/<kind>/<invoice_id>")
@require_actor
def delete_invoice_route(kind: str, invoice_id: str):
    invoice_kind = _kind(kind)
    result = invoice_service.delete_invoice(invoice_kind, g.current_worker_id, invoice_id)
    return jsonify({"success": True, "data": result.to_dict()}), 200
