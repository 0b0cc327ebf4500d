import os
import json
import time
from typing import Optional, Dict, Any

import redis

from lazynotes.utils.logger import get_logger

LOG = get_logger()

SESSION_TTL_SECONDS = int(os.getenv('SESSION_TTL_SECONDS', '86400'))
REDIS_URL = os.getenv('REDIS_URL', None)


class PollingSessionStore:
    """Latest known state of each polling session, keyed by job reference.

    Redis-backed when reachable so a status request served by any worker sees
    the same session; falls back to a process-local dict otherwise.
    """

    def __init__(self, client=None, redis_url: Optional[str] = REDIS_URL, ttl_seconds: int = SESSION_TTL_SECONDS):
        self._use_redis = False
        self._client = None
        self._in_memory: Dict[str, Dict[str, Any]] = {}
        self.ttl = ttl_seconds
        try:
            if client is not None:
                self._client = client
                self._client.ping()
                self._use_redis = True
            elif redis_url:
                self._client = redis.from_url(redis_url, decode_responses=True)
                self._client.ping()
                self._use_redis = True
                LOG.info('PollingSessionStore using Redis', extra={'redis_url': redis_url})
            elif os.getenv('REDIS_HOST'):
                self._client = redis.Redis(host=os.getenv('REDIS_HOST'), port=int(os.getenv('REDIS_PORT', '6379')), password=os.getenv('REDIS_PASSWORD') or None, decode_responses=True)
                self._client.ping()
                self._use_redis = True
                LOG.info('PollingSessionStore using Redis host', extra={'host': os.getenv('REDIS_HOST')})
            else:
                LOG.info('PollingSessionStore using in-memory store')
        except Exception as e:
            LOG.warning('Redis not available for PollingSessionStore, using in-memory store', extra={'error': str(e)})
            self._use_redis = False
            self._client = None

    @property
    def uses_redis(self) -> bool:
        return self._use_redis

    def _key(self, job_reference: str) -> str:
        return f'polling:{job_reference}'

    def _save(self, job_reference: str, obj: Dict[str, Any]):
        obj['updated_at'] = int(time.time())
        try:
            if self._use_redis and self._client:
                self._client.set(self._key(job_reference), json.dumps(obj))
                self._client.expire(self._key(job_reference), self.ttl)
            else:
                self._in_memory[job_reference] = obj
        except Exception as e:
            LOG.warning('session_save_failed', extra={'job_reference': job_reference, 'error': str(e)})
            self._in_memory[job_reference] = obj

    def create_session(self, job_reference: str, title: Optional[str] = None) -> Dict[str, Any]:
        now = int(time.time())
        obj = {
            'job_reference': job_reference,
            'title': title,
            'state': {'status': 'idle'},
            'created_at': now,
            'updated_at': now,
        }
        self._save(job_reference, obj)
        LOG.info('session_created', extra={'job_reference': job_reference})
        return obj

    def get_session(self, job_reference: str) -> Optional[Dict[str, Any]]:
        try:
            if self._use_redis and self._client:
                raw = self._client.get(self._key(job_reference))
                if not raw:
                    return self._in_memory.get(job_reference)
                return json.loads(raw)
            return self._in_memory.get(job_reference)
        except Exception as e:
            LOG.warning('session_get_failed', extra={'job_reference': job_reference, 'error': str(e)})
            return self._in_memory.get(job_reference)

    def set_title(self, job_reference: str, title: Optional[str]) -> Dict[str, Any]:
        session = self.get_session(job_reference)
        if not session:
            return self.create_session(job_reference, title)
        session['title'] = title
        self._save(job_reference, session)
        return session

    def record_state(self, job_reference: str, state: Dict[str, Any]) -> Dict[str, Any]:
        session = self.get_session(job_reference)
        if not session:
            session = self.create_session(job_reference)
        session['state'] = state
        self._save(job_reference, session)
        LOG.info('session_state_recorded', extra={'job_reference': job_reference, 'status': state.get('status')})
        return session
