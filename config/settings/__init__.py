"""
Settings package. DJANGO_SETTINGS_MODULE may point at a concrete module
(config.settings.local / production / test); pointing it at the package
instead picks one from DJANGO_ENV, defaulting to local.
"""
import os

_env = os.environ.get("DJANGO_ENV", "local").lower()

if _env == "production":
    from .production import *  # noqa
elif _env == "test":
    from .test import *  # noqa
else:
    from .local import *  # noqa
