"""
Course Import - route definitions
"""
import json
import logging
from flask import Blueprint, jsonify, request

from config import Config
from models import ImportMetadata
from services.date_utils import date_sort_key
from services.import_queue import get_queue
from services.record_store import get_storage
from utils.error_handlers import handle_errors
from utils.exceptions import MergeNoOpError

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)
api_bp = Blueprint('api', __name__, url_prefix='/api')


def _allowed_file(filename):
    ext = filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    return ext in Config.ALLOWED_EXTENSIONS


def _course_summary(course):
    return {
        "id": course.get("id"),
        "name": course.get("name"),
        "level": course.get("level"),
        "mode": course.get("mode"),
        "color": course.get("color"),
        "status": course.get("status"),
        "start_date": course.get("start_date"),
        "end_date": course.get("end_date"),
        "session_count": len(course.get("session_ids") or []),
        "student_count": len(course.get("student_ids") or []),
        "last_updated": course.get("last_updated"),
    }


# ===== Page routes =====

@main_bp.route('/')
def index():
    return jsonify({"service": "course-import", "storage": "cosmos" if Config.use_cosmos_db() else "local"})


# ===== Import routes =====

@api_bp.route('/import', methods=['POST'])
@handle_errors
def import_file():
    """Upload a workbook, queue it and run the queue"""
    if 'file' not in request.files:
        return jsonify({"success": False, "error": "No file in the request."}), 400

    file = request.files['file']
    if file.filename == '':
        return jsonify({"success": False, "error": "No file selected."}), 400
    if not _allowed_file(file.filename):
        return jsonify({"success": False, "error": "Only xlsx or xlsm files can be imported."}), 400

    metadata = None
    raw_metadata = request.form.get('metadata')
    if raw_metadata:
        try:
            parsed = json.loads(raw_metadata)
        except json.JSONDecodeError:
            parsed = None
        if not isinstance(parsed, dict):
            return jsonify({"success": False, "error": "metadata must be a JSON object."}), 400
        metadata = ImportMetadata.from_dict(parsed)

    queue = get_queue()
    job = queue.enqueue(file.filename, file.read(), metadata)
    status = queue.run()
    if isinstance(job.error, MergeNoOpError):
        raise job.error
    return jsonify({"success": True, "job_id": job.id, "queue": status})


@api_bp.route('/sheets', methods=['POST'])
@handle_errors
def get_sheets():
    """Sheet names of an uploaded workbook, for multi-sheet imports via metadata.sheet_index"""
    from services.workbook_loader import get_sheet_names
    file = request.files.get('file')
    if file is None or file.filename == '':
        return jsonify({"success": False, "error": "No file selected."}), 400
    if not _allowed_file(file.filename):
        return jsonify({"success": False, "error": "Only xlsx or xlsm files can be imported."}), 400
    return jsonify({"success": True, "sheets": get_sheet_names(file.read())})


@api_bp.route('/import/resume', methods=['POST'])
@handle_errors
def resume_import():
    """Confirm or cancel the import waiting on missing time columns"""
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('confirmed'), bool):
        return jsonify({"success": False, "error": "confirmed (true/false) is required."}), 400
    status = get_queue().resume(data['confirmed'])
    return jsonify({"success": True, "queue": status})


@api_bp.route('/import/status', methods=['GET'])
def import_status():
    return jsonify({"success": True, "queue": get_queue().status()})


# ===== Read routes =====

@api_bp.route('/courses', methods=['GET'])
def get_courses():
    """All courses without their sessions"""
    courses = get_storage().get_all_records('courses')
    return jsonify({"success": True, "courses": [_course_summary(c) for c in courses]})


@api_bp.route('/courses/<course_id>', methods=['GET'])
def get_course(course_id):
    """One course with its sessions in date order"""
    storage = get_storage()
    course = storage.get_record_by_id('courses', course_id)
    if not course:
        return jsonify({"success": False, "error": "Course not found."}), 404
    sessions = storage.query_by_field('sessions', 'course_id', course_id)
    sessions.sort(key=lambda s: (date_sort_key(s.get('date')), s.get('session_order', 0)))
    return jsonify({"success": True, "course": course, "sessions": sessions})


@api_bp.route('/events', methods=['GET'])
def get_events():
    """FullCalendar event JSON"""
    from services.calendar_service import format_events
    storage = get_storage()
    events = format_events(
        storage.get_all_records('courses'),
        storage.get_all_records('sessions'),
        storage.get_all_records('teachers'),
        request.args.get('course_id'),
    )
    return jsonify(events)


@api_bp.route('/stats', methods=['GET'])
def get_stats():
    """Per-course statistics"""
    from services.calendar_service import get_course_stats
    storage = get_storage()
    stats = get_course_stats(
        storage.get_all_records('courses'),
        storage.get_all_records('sessions'),
        storage.get_all_records('teachers'),
    )
    return jsonify({"success": True, "stats": stats})


# ===== Maintenance routes =====

@api_bp.route('/students/merge', methods=['POST'])
@handle_errors
def merge_duplicate_students():
    """Fold a duplicate student into another one"""
    from services.student_service import merge_students
    data = request.get_json(silent=True)
    if not data or not data.get('primary_id') or not data.get('secondary_id'):
        return jsonify({"success": False, "error": "primary_id and secondary_id are required."}), 400
    student = merge_students(get_storage(), data['primary_id'], data['secondary_id'])
    return jsonify({"success": True, "student": student})
