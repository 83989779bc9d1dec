# gunicorn -c gunicorn.conf.py wsgi:app
from ocr_gateway.settings import settings

bind = f"{settings.OCR_SERVICE_HOST}:{settings.OCR_SERVICE_PORT}"
workers = settings.OCR_WEB_SERVICE_WORKERS
worker_class = "sync"

# each worker loads its own OCR engine and serves one request at a time
threads = 1

# a worker silent for longer than a full read + write cycle is restarted
timeout = settings.OCR_SERVICE_READ_TIMEOUT + settings.OCR_SERVICE_WRITE_TIMEOUT
graceful_timeout = settings.OCR_SERVICE_WRITE_TIMEOUT
keepalive = 5

loglevel = "info" if settings.LOG_LEVEL >= 20 else "debug"
