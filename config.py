import os


class Config:
    """Application settings"""

    # Security
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'course-import-secret-key'

    # File upload
    UPLOAD_FOLDER = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'uploads')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024  # 16MB
    ALLOWED_EXTENSIONS = {'xlsx', 'xlsm'}

    # Local JSON record store (Cosmos DB fallback)
    DATA_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data')
    RECORDS_FILE = os.environ.get('RECORDS_FILE') or os.path.join(DATA_DIR, 'records.json')

    # Azure Cosmos DB
    COSMOS_DB_ENDPOINT = os.environ.get('COSMOS_DB_ENDPOINT')
    COSMOS_DB_KEY = os.environ.get('COSMOS_DB_KEY')
    COSMOS_DATABASE_NAME = os.environ.get('COSMOS_DATABASE_NAME', 'CourseImportDB')
    COSMOS_CONTAINER_NAME = os.environ.get('COSMOS_CONTAINER_NAME', 'SchoolRecords')

    # Spreadsheet convention
    HEADER_SCAN_ROWS = 30
    HEADER_ANCHORS = ('Folien', 'Canva')
    STUDENT_COLUMN_OFFSET = 10  # column K
    ROSTER_SENTINELS = ('Anwesenheitsliste', 'Nachrichten von/ für')

    # Date sanity window
    MIN_SESSION_YEAR = 2020
    MAX_SESSION_YEAR = 2030

    # Session analysis
    LONG_SESSION_MINUTES = 110
    PATTERN_MIN_RATE = 0.6
    PATTERN_MIN_OCCURRENCES = 2

    # Import queue
    IMPORT_HISTORY_LIMIT = int(os.environ.get('IMPORT_HISTORY_LIMIT', 200))

    # Course color presets
    COURSE_COLORS = [
        '#911DD2',  # Purple
        '#7310A8',  # Purple Dark
        '#FF5F68',  # Coral
        '#D94D54',  # Coral Dark
        '#4DBEFF',  # Sky Blue
        '#3A9BD4',  # Sky Dark
        '#18BF69',  # Emerald
        '#139954',  # Emerald Dark
        '#FBC14E',  # Golden
        '#D9A53F',  # Golden Dark
        '#D21D91',  # Purple Complement
        '#5FFFC8',  # Coral Complement
        '#FF944D',  # Sky Complement
        '#BF181D',  # Emerald Complement
        '#4E9CFB',  # Golden Complement
    ]

    # Group color presets
    GROUP_COLORS = COURSE_COLORS + [
        '#A94FE0',  # Purple Light
        '#FF8389',  # Coral Light
        '#80D2FF',  # Sky Light
        '#46D28B',  # Emerald Light
        '#FDD278',  # Golden Light
    ]

    # Logging
    LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'logs')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Server
    HOST = '0.0.0.0'
    PORT = int(os.environ.get('PORT', 5000))
    DEBUG = os.environ.get('FLASK_ENV') == 'development'

    @classmethod
    def use_cosmos_db(cls):
        """Whether the Cosmos DB backend is configured"""
        return bool(cls.COSMOS_DB_ENDPOINT and cls.COSMOS_DB_KEY)
