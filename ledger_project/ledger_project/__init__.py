# Celery instance is defined in ledger_project/celery.py
# and becomes the task queue app for the whole project
from .celery import celery_app

__all__ = ("celery_app",)

""" Run workers with "celery -A ledger_project worker -l info":
    -A ledger_project imports this package, which exposes celery_app. """
