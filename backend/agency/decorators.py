# Overview: Authentication gate for API routes.

from functools import wraps
from flask import jsonify, session, g


def require_auth(f):
    """
    Require a logged-in session cookie.

    The login flow that sets session["user_id"] lives outside this service;
    here we only check the signed cookie and expose the id as g.user_id.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user_id = session.get("user_id")
        if not user_id:
            return jsonify({"error": "Authentication required"}), 401
        g.user_id = user_id
        return f(*args, **kwargs)

    return decorated_function
