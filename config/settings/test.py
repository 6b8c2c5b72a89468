from .base import *  # noqa

DEBUG = False
SECRET_KEY = "test-secret-key"
SIMPLE_JWT["SIGNING_KEY"] = SECRET_KEY

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

NOTIFICATIONS_EMAIL_ENABLED = True
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    "api": "10000/hour",
    "auth": "10000/hour",
    "project_create": "10000/hour",
    "proposal_submit": "10000/hour",
}

LOGGING["root"]["level"] = "WARNING"
