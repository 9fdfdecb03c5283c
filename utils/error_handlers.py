import logging
from functools import wraps
from flask import jsonify

from utils.exceptions import MergeNoOpError, RecordNotFoundError

logger = logging.getLogger(__name__)


def handle_errors(f):
    """Map import and lookup errors of an API endpoint to JSON responses

    RecordNotFoundError -> 404, MergeNoOpError -> 409, other ValueErrors
    (CourseImportError included) -> 400, anything else -> 500.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (FileNotFoundError, RecordNotFoundError) as e:
            logger.warning(f"Not found: {e}")
            return jsonify({"success": False, "error": str(e) or "Not found."}), 404
        except MergeNoOpError as e:
            logger.info(f"Nothing to merge: {e}")
            return jsonify({"success": False, "error": str(e)}), 409
        except ValueError as e:
            logger.warning(f"Rejected request: {e}")
            return jsonify({"success": False, "error": str(e)}), 400
        except Exception as e:
            logger.error(f"Server error: {e}", exc_info=True)
            return jsonify({"success": False, "error": "Internal server error."}), 500
    return decorated
