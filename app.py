"""
Course Import - spreadsheet import service for course timetables and attendance
"""
import os
import logging
from logging.handlers import RotatingFileHandler
from dotenv import load_dotenv

load_dotenv()

from flask import Flask
from config import Config
from routes import main_bp, api_bp

logger = logging.getLogger(__name__)


def configure_logging():
    """Console plus rotating file log under LOG_DIR"""
    root = logging.getLogger()
    if root.handlers:
        return
    formatter = logging.Formatter('%(asctime)s %(levelname)s [%(name)s] %(message)s')

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    root.addHandler(stream)

    os.makedirs(Config.LOG_DIR, exist_ok=True)
    file_handler = RotatingFileHandler(
        os.path.join(Config.LOG_DIR, 'course_import.log'),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding='utf-8',
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    root.setLevel(Config.LOG_LEVEL)


def create_app():
    """Flask application factory"""
    configure_logging()
    app = Flask(__name__)
    app.config.from_object(Config)

    os.makedirs(Config.UPLOAD_FOLDER, exist_ok=True)
    os.makedirs(Config.DATA_DIR, exist_ok=True)

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)

    @app.after_request
    def set_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        return response

    return app


# module-level instance for Azure WebApp and waitress-serve
app = create_app()


def main():
    storage = "Azure Cosmos DB" if Config.use_cosmos_db() else "local JSON file"
    logger.info(f"Course Import on http://localhost:{Config.PORT}/ (storage: {storage})")

    if Config.DEBUG:
        app.run(debug=True, host=Config.HOST, port=Config.PORT)
    else:
        from waitress import serve
        logger.info(f"Starting waitress (port {Config.PORT})")
        serve(app, host=Config.HOST, port=Config.PORT)


if __name__ == '__main__':
    main()
