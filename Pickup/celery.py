import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'Pickup.settings')

app = Celery('Pickup')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'purge-expired-notifications': {
        'task': 'notifications.tasks.purge_expired_notifications',
        'schedule': 600.0,  # Every 10 minutes (in seconds)
    },
    'expire-stale-change-requests': {
        'task': 'orders.tasks.expire_stale_proposals',
        'schedule': 300.0,
    },
    'cleanup-read-notifications': {
        'task': 'notifications.tasks.cleanup_read_notifications',
        'schedule': crontab(hour=3, minute=0),  # Runs daily at 3 AM
    },
}
