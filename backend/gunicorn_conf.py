# gunicorn_conf.py
# gunicorn -c gunicorn_conf.py agenciaos.main:app
import multiprocessing

from agenciaos.core.config import settings

bind = settings.GUNICORN_BIND
workers = settings.GUNICORN_WORKERS or multiprocessing.cpu_count() * 2 + 1
worker_class = settings.GUNICORN_WORKER_CLASS
loglevel = settings.LOG_LEVEL.lower()
accesslog = "-"
errorlog = "-"
# Geração de copy pode levar dezenas de segundos
timeout = 120
keepalive = 5
