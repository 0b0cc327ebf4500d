import os
import sys
import logging
import pathlib
import contextvars
from logging.handlers import RotatingFileHandler
from pythonjsonlogger import jsonlogger

_request_ctx_var = contextvars.ContextVar('request_ctx', default={})


def set_request_context(request_id: str, user_id: str = None):
    _request_ctx_var.set({'request_id': request_id, 'user_id': user_id})


def get_request_context():
    return _request_ctx_var.get()


def _inject_request_context(record):
    ctx = get_request_context()
    record.request_id = ctx.get('request_id')
    record.user_id = ctx.get('user_id')
    return True


def get_logger(name: str = 'lazynotes'):
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')
    # file output is opt-in; console only by default
    LOG_FILE_PATH = os.getenv('LOG_FILE_PATH')
    LOG_MAX_SIZE = int(os.getenv('LOG_MAX_SIZE', str(10 * 1024 * 1024)))
    LOG_MAX_FILES = int(os.getenv('LOG_MAX_FILES', '7'))

    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVEL.upper())

    # Console handler
    ch = logging.StreamHandler(sys.stdout)
    if LOG_FORMAT == 'json':
        fmt = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s')
    else:
        fmt = logging.Formatter('%(asctime)s %(levelname)s %(name)s %(message)s')
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if LOG_FILE_PATH:
        # resolve relative paths against current working directory for local dev
        log_path = pathlib.Path(LOG_FILE_PATH)
        if not log_path.is_absolute():
            log_path = pathlib.Path(os.getcwd()) / log_path
        log_path.mkdir(parents=True, exist_ok=True)

        combined = RotatingFileHandler(log_path / 'combined.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
        combined.setFormatter(fmt)
        logger.addHandler(combined)

        errors = RotatingFileHandler(log_path / 'error.log', maxBytes=LOG_MAX_SIZE, backupCount=LOG_MAX_FILES)
        errors.setLevel(logging.ERROR)
        errors.setFormatter(fmt)
        logger.addHandler(errors)

    # inject context
    f = logging.Filter()
    f.filter = _inject_request_context
    logger.addFilter(f)

    logging.captureWarnings(True)

    return logger


def log_request(request_id: str, method: str, path: str, status_code: int, duration_ms: float, ip: str = None):
    logger = get_logger()
    logger.info('http_request', extra={'request_id': request_id, 'method': method, 'path': path, 'status_code': status_code, 'duration_ms': duration_ms, 'ip': ip})


def log_error(error: Exception, context: dict = None):
    logger = get_logger()
    logger.exception('error', exc_info=error, extra=context or {})


def log_llm_call(request_id: str, model: str, prompt_tokens: int, completion_tokens: int, duration_ms: float, purpose: str = None):
    logger = get_logger()
    logger.info('llm_call', extra={'request_id': request_id, 'model': model, 'prompt_tokens': prompt_tokens, 'completion_tokens': completion_tokens, 'duration_ms': duration_ms, 'purpose': purpose})


def log_transcription_submit(job_reference: str, title: str, success: bool, duration_ms: float, detail: str = None):
    logger = get_logger()
    logger.info('transcription_submit', extra={
        'job_reference': job_reference,
        'title': title,
        'success': success,
        'duration_ms': duration_ms,
        'detail': detail,
    })


def log_poll_attempt(job_reference: str, attempt: int, outcome: str, duration_ms: float):
    logger = get_logger()
    logger.info('poll_attempt', extra={
        'job_reference': job_reference,
        'attempt': attempt,
        'outcome': outcome,
        'duration_ms': duration_ms,
    })


def log_polling_outcome(job_reference: str, state: str, attempts: int, detail: str = None):
    logger = get_logger()
    level = logging.INFO if state == 'success' else logging.WARNING
    logger.log(level, 'polling_finished', extra={
        'job_reference': job_reference,
        'state': state,
        'attempts': attempts,
        'detail': detail,
    })


def log_flashcard_generation(source_key: str, flashcard_count: int, duration_ms: float, cache_hit: bool = False):
    logger = get_logger()
    logger.info('flashcard_generation', extra={
        'source_key': source_key,
        'flashcard_count': flashcard_count,
        'duration_ms': duration_ms,
        'cache_hit': cache_hit,
    })


def log_summarization(request_id: str, input_length: int, summary_length: int, duration_ms: float):
    logger = get_logger()
    logger.info('summarization', extra={
        'request_id': request_id,
        'input_length': input_length,
        'summary_word_count': summary_length,
        'duration_ms': duration_ms,
    })
