# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import InvalidIdentifierError
from .identifiers import is_valid_identifier
from .services import permission_service

ACTOR_HEADER = "X-Worker-Id"


def require_actor(f):
    """
    Require the upstream-authenticated worker id and stash it on g.

    Sets g.current_worker_id. Existence of the worker is checked by the
    service layer (NotFound), not here.

    Returns 401 when the header is absent and 400 InvalidIdentifier when it
    is not a well-formed id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        worker_id = (request.headers.get(ACTOR_HEADER) or "").strip()

        if not worker_id:
            return jsonify({
                "success": False,
                "error": "Unauthenticated",
                "message": "Worker identity required",
            }), 401

        if not is_valid_identifier(worker_id):
            permission_service.log_security_event(
                worker_id=None,
                event_type="ACTOR_HEADER_INVALID",
                success=False,
                action=request.method,
                resource=request.path,
                reason="Malformed worker id header",
            )
            error = InvalidIdentifierError("Invalid actor_id", details={"field": "actor_id"})
            return jsonify(error.to_dict()), error.http_status

        g.current_worker_id = worker_id
        return f(*args, **kwargs)

    return decorated_function
