import os
import pathlib
import mimetypes
from abc import ABC, abstractmethod
from typing import Optional, Tuple
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

LOG = logging.getLogger(__name__)

MAX_AUDIO_SIZE_MB = int(os.getenv('MAX_AUDIO_SIZE_MB', '200'))
MAX_AUDIO_SIZE_BYTES = MAX_AUDIO_SIZE_MB * 1024 * 1024
SUPPORTED_AUDIO_FORMATS = os.getenv('SUPPORTED_AUDIO_FORMATS', 'm4a,mp3,wav,aac,ogg,flac,mp4,webm').split(',')
AWS_S3_BUCKET = os.getenv('AWS_S3_BUCKET')
AUDIO_KEY_PREFIX = os.getenv('AUDIO_KEY_PREFIX', 'audio_recordings')
AUDIO_URL_EXPIRY_SECONDS = int(os.getenv('AUDIO_URL_EXPIRY_SECONDS', '86400'))


class StorageUploadError(Exception):
    """Raised when an audio file cannot be stored."""


class StorageService(ABC):
    @abstractmethod
    def upload_audio_file(self, local_file: str) -> Optional[str]:
        """Upload a local audio file and return a publicly fetchable URL, or None on failure."""


def validate_audio_file(file_path: str) -> Tuple[bool, Optional[str]]:
    if not os.path.exists(file_path):
        return False, 'File does not exist'
    size = os.path.getsize(file_path)
    if size == 0:
        return False, 'File is empty'
    if size > MAX_AUDIO_SIZE_BYTES:
        return False, f'File too large (max {MAX_AUDIO_SIZE_MB} MB)'
    ext = pathlib.Path(file_path).suffix.lstrip('.').lower()
    if ext not in SUPPORTED_AUDIO_FORMATS:
        return False, 'Unsupported file extension'
    return True, None


class S3StorageService(StorageService):
    def __init__(self, bucket: Optional[str] = None, key_prefix: str = AUDIO_KEY_PREFIX, url_expiry_seconds: int = AUDIO_URL_EXPIRY_SECONDS, s3_client=None):
        self.bucket = bucket or AWS_S3_BUCKET
        self.key_prefix = key_prefix.strip('/')
        self.url_expiry_seconds = url_expiry_seconds
        self.s3 = s3_client or boto3.client(
            's3',
            region_name=os.getenv('AWS_REGION'),
            aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
            aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY')
        )
        LOG.info('S3StorageService initialized', extra={'bucket': self.bucket, 'prefix': self.key_prefix})

    def object_key(self, local_file: str) -> str:
        name = pathlib.Path(local_file).name
        return f'{self.key_prefix}/{name}' if self.key_prefix else name

    def _store(self, local_file: str) -> str:
        if not self.bucket:
            raise StorageUploadError('AWS_S3_BUCKET not configured')
        valid, err = validate_audio_file(local_file)
        if not valid:
            raise StorageUploadError(err)
        key = self.object_key(local_file)
        mime, _ = mimetypes.guess_type(local_file)
        extra_args = {'ContentType': mime} if mime else None
        try:
            self.s3.upload_file(local_file, self.bucket, key, ExtraArgs=extra_args)
            url = self.s3.generate_presigned_url(
                ClientMethod='get_object',
                Params={'Bucket': self.bucket, 'Key': key},
                ExpiresIn=self.url_expiry_seconds,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageUploadError(f'Failed to upload audio to s3://{self.bucket}/{key}') from e
        LOG.info('Uploaded audio to s3', extra={'bucket': self.bucket, 'key': key, 'size': os.path.getsize(local_file)})
        return url

    def upload_audio_file(self, local_file: str) -> Optional[str]:
        try:
            return self._store(local_file)
        except StorageUploadError as e:
            LOG.warning('Audio upload failed', extra={'file': local_file, 'error': str(e)})
            return None
