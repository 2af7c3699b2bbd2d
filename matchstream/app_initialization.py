"""Utilities for deciding which process owns one-time startup work."""

import sys
import os
import psutil
import logging

logger = logging.getLogger(__name__)

SKIP_COMMANDS = [
    'migrate', 'makemigrations', 'shell', 'dbshell',
    'collectstatic', 'loaddata', 'test',
]


def _is_worker_process():
    """Check if this process is a worker spawned by uwsgi/gunicorn."""
    try:
        parent = psutil.Process(os.getppid())
        return parent.name() in ['uwsgi', 'gunicorn']
    except (psutil.Error, OSError):
        return False


def should_skip_initialization(argv=None):
    """
    Determine if startup events should be skipped in this process.

    Returns True for management commands, the autoreloader parent of
    runserver, and pre-forked uwsgi/gunicorn workers (the master already
    announced startup).
    """
    argv = sys.argv if argv is None else argv

    if any(cmd in argv for cmd in SKIP_COMMANDS):
        logger.debug(f"Skipping initialization due to command: {argv}")
        return True

    if 'runserver' in argv and os.environ.get('RUN_MAIN') != 'true':
        logger.debug("Skipping initialization in runserver autoreload parent")
        return True

    if _is_worker_process():
        logger.debug(f"Skipping initialization in worker process. Command: {argv}")
        return True

    return False
