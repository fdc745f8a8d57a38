# config/celery.py

import os
from celery import Celery

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

app = Celery('jradiance')

# Celery settings live in Django settings under the CELERY_ namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Pick up tasks.py from every installed app
app.autodiscover_tasks()
