"""Blob storage for recorded and uploaded audio."""

from .uploader import (
	StorageService,
	S3StorageService,
	StorageUploadError,
	validate_audio_file,
)

__all__ = [
	'StorageService',
	'S3StorageService',
	'StorageUploadError',
	'validate_audio_file',
]
