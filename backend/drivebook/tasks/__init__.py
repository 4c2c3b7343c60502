"""Celery app and periodic tasks."""
