"""
Development server
Run with: python run.py (or: flask --app run run)
"""
import os

from app import create_app

app = create_app()

if __name__ == '__main__':
    host = os.getenv('FLASK_HOST', '0.0.0.0')
    port = int(os.getenv('FLASK_PORT', 5000))
    debug = app.config.get('DEBUG', False)

    app.logger.info(
        f"X-ray report API on {host}:{port} (debug={debug}, "
        f"executor={app.config['ANALYSIS_EXECUTOR']}, classifier={app.config['CLASSIFIER_API_URL']})"
    )
    if app.config['ANALYSIS_EXECUTOR'] == 'celery' and not app.config['CELERY_TASK_ALWAYS_EAGER']:
        app.logger.info("Analyses are queued; start a worker with: celery -A celery_worker.celery worker")

    app.run(host=host, port=port, debug=debug, threaded=True)
