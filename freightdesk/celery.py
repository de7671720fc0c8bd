"""
Celery application.
Beat runs the quote and payment-link expiry sweeps; dev settings run tasks eagerly.
"""

import os
from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "freightdesk.settings_dev")

app = Celery("freightdesk")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
