from .base import *  # noqa

DEBUG = True
ALLOWED_HOSTS = ["*"]

# Without a broker running locally, execute notification tasks in-process.
CELERY_TASK_ALWAYS_EAGER = os.environ.get("CELERY_TASK_ALWAYS_EAGER", "True").lower() in ("1", "true", "yes")

# In local, make email backend console
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
