#!/usr/bin/env python3
"""
Celery worker for image analysis and the stale-report sweeper.

    celery -A celery_worker.celery worker --loglevel=info
    celery -A celery_worker.celery beat --loglevel=info

or `python celery_worker.py` to run a worker with an embedded beat.
"""
from app import create_app
from app.extensions import celery

# Binds the task base class to this app
app = create_app()

import tasks  # noqa: E402,F401  registers tasks.analyze_image, tasks.expire_stale_reports

if __name__ == '__main__':
    celery.worker_main([
        'worker',
        '--beat',
        '--loglevel=info',
        '--concurrency=4',
    ])
