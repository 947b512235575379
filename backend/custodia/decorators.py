# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app


def require_actor(f):
    """
    Require the actor identity header on write endpoints.

    The authentication collaborator in front of this API sets the header
    (default "X-Actor", see Config.ACTOR_HEADER) after validating the
    session. The value is stored on g.actor and recorded on every ledger row
    and change event the request writes.

    Returns 401 if the header is missing or blank.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("ACTOR_HEADER", "X-Actor")
        actor = (request.headers.get(header) or "").strip()
        if not actor:
            return jsonify({"error": f"Authentication required ({header} header missing)"}), 401
        g.actor = actor
        return f(*args, **kwargs)

    return decorated_function
