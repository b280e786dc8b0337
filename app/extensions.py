from celery import Celery, Task
from flask import current_app, has_app_context
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_bcrypt import Bcrypt
from flask_jwt_extended import JWTManager


class FlaskAppContextTask(Task):
    """Run every Celery task inside a Flask app context."""
    # Set by create_app(); used by workers that have no active context
    flask_app = None

    def __call__(self, *args, **kwargs):
        app = current_app._get_current_object() if has_app_context() else self.flask_app
        with app.app_context():
            return self.run(*args, **kwargs)


# Shared extension instances
db = SQLAlchemy()
migrate = Migrate()
bcrypt = Bcrypt()
jwt = JWTManager()
celery = Celery(__name__, task_cls=FlaskAppContextTask)
