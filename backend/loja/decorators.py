# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, jsonify

from .extensions import db
from .services.errors import OperationError
from .validation import ConflictError, ValidationError


def json_errors(f):
    """
    Map service failures to JSON error responses.

    - ValidationError -> 400
    - ConflictError -> 409
    - OperationError -> its status_code, with code and details
    - anything else -> logged with traceback, 500

    The session is rolled back on every failure path so the next request
    starts clean.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except ValidationError as e:
            db.session.rollback()
            return jsonify({"error": str(e), "code": "VALIDATION_ERROR"}), 400
        except ConflictError as e:
            db.session.rollback()
            return jsonify({"error": str(e), "code": "CONFLICT"}), 409
        except OperationError as e:
            db.session.rollback()
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Unhandled error in %s", f.__name__)
            return jsonify({"error": "Internal server error"}), 500

    return decorated_function
