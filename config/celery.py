# config/celery.py
import os

from celery import Celery

# manage.py / wsgi.py pick the concrete settings module; workers default to local
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.local")

app = Celery("skillbridge")

# CELERY_* names in Django settings configure the app (broker, eager mode, serializers)
app.config_from_object("django.conf:settings", namespace="CELERY")
app.conf.broker_connection_retry_on_startup = True

# Picks up apps/notifications/tasks.py
app.autodiscover_tasks()
