import os
import time
import shutil
import asyncio
import pathlib
import tempfile
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, File, Form, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from lazynotes.flashcards import FlashcardCache, FlashcardGenerator, FlashcardService, FlashcardTimeoutError
from lazynotes.notes import NoteRepository, note_from_transcript
from lazynotes.semantic import Summarizer, TextGenerationClient
from lazynotes.storage import S3StorageService
from lazynotes.transcription import (
    FirefliesClient,
    PollingState,
    PollingStatus,
    TranscriptPoller,
    TranscriptResult,
    UploadCoordinator,
    title_for_reference,
)
from lazynotes.utils import Failure, PollingSessionStore, get_logger, log_error, log_request, set_request_context

LOG = get_logger()

AUDIO_TEMP_DIR = os.getenv('AUDIO_TEMP_DIR') or None


class Settings(BaseSettings):
    HOST: str = os.getenv('HOST', '0.0.0.0')
    PORT: int = int(os.getenv('PORT', '8000'))
    ENVIRONMENT: str = os.getenv('ENVIRONMENT', 'development')
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO')
    CORS_ORIGIN: str = os.getenv('CORS_ORIGIN', '*')
    REDIS_REQUIRED_FOR_READY: bool = os.getenv('REDIS_REQUIRED_FOR_READY', 'false').lower() in ('1', 'true', 'yes')
    PROVIDER_KEYS_REQUIRED_FOR_READY: bool = os.getenv('PROVIDER_KEYS_REQUIRED_FOR_READY', 'true').lower() in ('1', 'true', 'yes')


settings = Settings()


class ServiceContainer:
    """Process-wide collaborators, built on first use.

    Anything passed to the constructor is used as-is, which is how tests swap
    in fakes. One poller per process keeps a single polling session active.
    """

    def __init__(
        self,
        fireflies: Optional[FirefliesClient] = None,
        storage=None,
        poller: Optional[TranscriptPoller] = None,
        session_store: Optional[PollingSessionStore] = None,
        text_client: Optional[TextGenerationClient] = None,
        flashcards: Optional[FlashcardService] = None,
        summarizer: Optional[Summarizer] = None,
        notes: Optional[NoteRepository] = None,
    ):
        self._fireflies = fireflies
        self._storage = storage
        self._poller = poller
        self._session_store = session_store
        self._text_client = text_client
        self._flashcards = flashcards
        self._summarizer = summarizer
        self._notes = notes
        self._coordinator: Optional[UploadCoordinator] = None
        self._listening = False

    @property
    def fireflies(self) -> FirefliesClient:
        if self._fireflies is None:
            self._fireflies = FirefliesClient()
        return self._fireflies

    @property
    def storage(self):
        if self._storage is None:
            self._storage = S3StorageService()
        return self._storage

    @property
    def coordinator(self) -> UploadCoordinator:
        if self._coordinator is None:
            self._coordinator = UploadCoordinator(self.storage, self.fireflies)
        return self._coordinator

    @property
    def session_store(self) -> PollingSessionStore:
        if self._session_store is None:
            self._session_store = PollingSessionStore()
        return self._session_store

    @property
    def poller(self) -> TranscriptPoller:
        if self._poller is None:
            self._poller = TranscriptPoller(self.fireflies)
        if not self._listening:
            self._poller.add_listener(self._record_state)
            self._listening = True
        return self._poller

    @property
    def text_client(self) -> TextGenerationClient:
        if self._text_client is None:
            self._text_client = TextGenerationClient()
        return self._text_client

    @property
    def flashcards(self) -> FlashcardService:
        if self._flashcards is None:
            self._flashcards = FlashcardService(FlashcardGenerator(self.text_client), FlashcardCache())
        return self._flashcards

    @property
    def summarizer(self) -> Summarizer:
        if self._summarizer is None:
            self._summarizer = Summarizer(self.text_client)
        return self._summarizer

    @property
    def notes(self) -> NoteRepository:
        if self._notes is None:
            self._notes = NoteRepository()
        return self._notes

    def _record_state(self, job_reference: str, state: PollingState):
        self.session_store.record_state(job_reference, state.to_dict())

    async def aclose(self):
        if self._poller is not None:
            await self._poller.cancel()
        if self._fireflies is not None:
            await self._fireflies.aclose()
        if self._text_client is not None:
            await self._text_client.aclose()


container = ServiceContainer()

app = FastAPI(title='LazyNotes Service', version='1.0.0', description='Lecture recording transcription, summaries and flashcards')

# CORS config
origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        log_error(exc, {'request_id': request_id, 'path': request.url.path})
        body = {'success': False, 'error': 'Internal server error', 'details': None, 'request_id': request_id}
        response = JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


def _error(status_code: int, error: str, details: Optional[str], request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'error': error, 'details': details, 'request_id': request_id})


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat(), 'service': 'lazynotes'}


def _check_redis():
    return 'ok' if container.session_store.uses_redis else 'warn: using in-memory session store'


def _check_s3():
    try:
        import boto3
        bucket = os.getenv('AWS_S3_BUCKET')
        if not bucket:
            return 'error: no bucket configured'
        s3 = boto3.client('s3', region_name=os.getenv('AWS_REGION'))
        s3.head_bucket(Bucket=bucket)
        return 'ok'
    except Exception as e:
        return f'error: {str(e)}'


def _check_key(env_name: str):
    if os.getenv(env_name):
        return 'ok'
    if settings.PROVIDER_KEYS_REQUIRED_FOR_READY:
        return f'error: {env_name} not set'
    return f'warn: {env_name} not set'


@app.get('/ready')
async def ready():
    services = {
        'redis': _check_redis(),
        's3': await asyncio.to_thread(_check_s3),
        'fireflies': _check_key('FIREFLIES_API_KEY'),
        'perplexity': _check_key('PERPLEXITY_API_KEY'),
    }
    ready_ok = True
    if settings.REDIS_REQUIRED_FOR_READY and services['redis'] != 'ok':
        ready_ok = False
    if services['s3'].startswith('error'):
        ready_ok = False
    if services['fireflies'].startswith('error') or services['perplexity'].startswith('error'):
        ready_ok = False
    status_code = 200 if ready_ok else 503
    return JSONResponse(status_code=status_code, content={'status': 'ready' if ready_ok else 'not ready', 'services': services})


class CreateNoteRequest(BaseModel):
    job_reference: str = Field(..., min_length=1)
    folder_name: str = Field(..., min_length=1)
    title: Optional[str] = None


class FlashcardsRequest(BaseModel):
    key: str = Field(..., min_length=1, description='Stable key of the source document')
    text: str = Field('', description='Source text, truncated before generation')


class SummaryRequest(BaseModel):
    text: str = Field(..., description='Transcript to summarize')


def _save_upload(upload: UploadFile, target: pathlib.Path):
    with open(target, 'wb') as out:
        shutil.copyfileobj(upload.file, out)


@app.post('/transcriptions')
async def create_transcription(request: Request, file: UploadFile = File(...), title: Optional[str] = Form(None)):
    request_id = _request_id(request)
    filename = pathlib.Path(file.filename or '').name
    if not filename:
        return _error(400, 'Invalid upload', 'file name is required', request_id)

    workdir = tempfile.mkdtemp(prefix='lazynotes_', dir=AUDIO_TEMP_DIR)
    local_path = pathlib.Path(workdir) / filename
    try:
        await asyncio.to_thread(_save_upload, file, local_path)
        result = await container.coordinator.submit(str(local_path), title)
    finally:
        shutil.rmtree(workdir, ignore_errors=True)

    if isinstance(result, Failure):
        return _error(502, 'Transcription submission failed', result.message, request_id)
    job_reference = result.data
    container.session_store.create_session(job_reference, title or title_for_reference(job_reference))
    return {'success': True, 'job_reference': job_reference, 'request_id': request_id}


@app.post('/transcriptions/{job_reference}/poll', status_code=202)
async def start_polling(job_reference: str, request: Request):
    request_id = _request_id(request)
    poller = container.poller
    if not poller.start_polling(job_reference):
        return _error(409, 'Polling already active', f'active job: {poller.job_reference}', request_id)
    # a reference polled without an upload has no title yet
    session = container.session_store.get_session(job_reference)
    if session is None or not session.get('title'):
        container.session_store.set_title(job_reference, title_for_reference(job_reference))
    return {'success': True, 'job_reference': job_reference, 'state': poller.state.to_dict(), 'request_id': request_id}


@app.get('/transcriptions/{job_reference}')
async def get_transcription(job_reference: str, request: Request):
    request_id = _request_id(request)
    session = container.session_store.get_session(job_reference)
    if session is None:
        return _error(404, 'Unknown job reference', job_reference, request_id)
    return {'success': True, 'job_reference': job_reference, 'title': session.get('title'), 'state': session.get('state'), 'request_id': request_id}


@app.delete('/transcriptions/{job_reference}/poll')
async def cancel_polling(job_reference: str, request: Request):
    request_id = _request_id(request)
    poller = container.poller
    if poller.job_reference != job_reference or not poller.is_active:
        return _error(404, 'No active polling session', job_reference, request_id)
    await poller.cancel()
    return {'success': True, 'job_reference': job_reference, 'cancelled': True, 'request_id': request_id}


@app.post('/notes', status_code=201)
async def create_note(req: CreateNoteRequest, request: Request):
    request_id = _request_id(request)
    session = container.session_store.get_session(req.job_reference)
    if session is None:
        return _error(404, 'Unknown job reference', req.job_reference, request_id)
    state = session.get('state') or {}
    if state.get('status') != PollingStatus.SUCCESS.value or not state.get('transcript'):
        return _error(409, 'Transcript not ready', f"status: {state.get('status')}", request_id)
    try:
        transcript = TranscriptResult.model_validate(state['transcript'])
    except ValidationError as e:
        LOG.warning('stored_transcript_invalid', extra={'job_reference': req.job_reference, 'error': str(e)})
        return _error(500, 'Stored transcript is invalid', str(e), request_id)
    note = container.notes.add_note(note_from_transcript(transcript, req.folder_name, req.title or session.get('title')))
    return {'success': True, 'note': note.model_dump(), 'content': note.content, 'request_id': request_id}


@app.get('/folders/{folder_name}/notes')
async def list_folder_notes(folder_name: str, request: Request, alphabetical: bool = False):
    request_id = _request_id(request)
    notes = container.notes.get_notes_for_folder(folder_name, alphabetical=alphabetical)
    return {'success': True, 'folder_name': folder_name, 'notes': [n.model_dump() for n in notes], 'count': len(notes), 'request_id': request_id}


@app.post('/flashcards/generate')
async def flashcards_generate(req: FlashcardsRequest, request: Request):
    request_id = _request_id(request)
    result = await container.flashcards.get_flashcards(req.key, req.text, request_id=request_id)
    if isinstance(result, Failure):
        if isinstance(result.cause, FlashcardTimeoutError):
            return _error(504, 'Flashcard generation timed out', result.message, request_id)
        return _error(502, 'Flashcard generation failed', result.message, request_id)
    cards = result.data
    return {'success': True, 'key': req.key, 'flashcards': [c.model_dump() for c in cards], 'count': len(cards), 'request_id': request_id}


@app.post('/summaries/generate')
async def summaries_generate(req: SummaryRequest, request: Request):
    request_id = _request_id(request)
    result = await container.summarizer.generate_summary(req.text, request_id=request_id)
    if isinstance(result, Failure):
        return _error(502, 'Summary generation failed', result.message, request_id)
    return {'success': True, 'summary': result.data, 'request_id': request_id}


@app.on_event('startup')
async def on_startup():
    LOG.info('LazyNotes service starting', extra={'environment': settings.ENVIRONMENT})


@app.on_event('shutdown')
async def on_shutdown():
    LOG.info('LazyNotes service shutting down')
    try:
        await container.aclose()
    except Exception:
        LOG.exception('container_close_error', exc_info=True)


if __name__ == '__main__':
    import uvicorn

    # polling sessions live in the process, so a single worker is used
    uvicorn.run(
        'lazynotes.main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == 'development',
    )
