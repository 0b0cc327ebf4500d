import os
import re
import sys
import argparse
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

load_dotenv(Path(__file__).parent.parent / '.env')

errors = []
warnings = []

parser = argparse.ArgumentParser(description='Validate LazyNotes service environment')
parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
parser.add_argument('--offline', action='store_true', help='Skip connectivity checks')
args = parser.parse_args()
STRICT = args.strict

required = {
    'server': ['ENVIRONMENT', 'HOST', 'PORT'],
    'aws': ['AWS_REGION', 'AWS_ACCESS_KEY_ID', 'AWS_SECRET_ACCESS_KEY', 'AWS_S3_BUCKET'],
    'fireflies': ['FIREFLIES_API_KEY'],
    'perplexity': ['PERPLEXITY_API_KEY'],
}


def check_presence(cat, keys):
    for k in keys:
        if not os.getenv(k):
            errors.append(f"{cat}: Missing {k}")


def check_int(name, default, low, high):
    try:
        value = int(os.getenv(name, default))
        if value < low or value > high:
            errors.append(f'{name} must be between {low} and {high}')
    except ValueError:
        errors.append(f'{name} must be an integer')


def check_float(name, default, low, high):
    try:
        value = float(os.getenv(name, default))
        if value < low or value > high:
            errors.append(f'{name} must be between {low} and {high}')
    except ValueError:
        errors.append(f'{name} must be a number')


def check_url(name, default):
    parsed = urlparse(os.getenv(name, default))
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        errors.append(f'{name} must be an http(s) URL')


for cat, keys in required.items():
    check_presence(cat, keys)

# Format checks
check_int('PORT', '8000', 1, 65535)
check_url('FIREFLIES_API_URL', 'https://api.fireflies.ai/graphql')
check_url('PERPLEXITY_BASE_URL', 'https://api.perplexity.ai')
check_float('FIREFLIES_TIMEOUT', '30', 1, 600)
check_int('FIREFLIES_SUBMIT_RETRY_ATTEMPTS', '3', 1, 10)
check_int('POLL_MAX_ATTEMPTS', '15', 1, 1000)
check_float('POLL_INTERVAL_SECONDS', '45', 0, 3600)
check_int('POLL_SUMMARY_PATIENCE', '10', 0, 1000)
check_int('FLASHCARD_MAX_TOKENS', '400', 1, 8192)
check_int('FLASHCARD_SOURCE_MAX_CHARS', '2000', 1, 200000)
check_int('FLASHCARD_MAX_COUNT', '5', 1, 50)
check_int('SUMMARY_MAX_TOKENS', '500', 1, 8192)
check_float('SUMMARY_TEMPERATURE', '0.2', 0.0, 2.0)
check_int('MAX_AUDIO_SIZE_MB', '200', 1, 2048)
check_int('AUDIO_URL_EXPIRY_SECONDS', '86400', 60, 604800)
check_int('SESSION_TTL_SECONDS', '86400', 60, 2592000)

try:
    if int(os.getenv('POLL_SUMMARY_PATIENCE', '10')) >= int(os.getenv('POLL_MAX_ATTEMPTS', '15')):
        warnings.append('POLL_SUMMARY_PATIENCE >= POLL_MAX_ATTEMPTS; transcripts without a summary will never be accepted')
except ValueError:
    pass

formats = [f.strip() for f in os.getenv('SUPPORTED_AUDIO_FORMATS', 'm4a,mp3,wav,aac,ogg,flac,mp4,webm').split(',') if f.strip()]
if not formats:
    errors.append('SUPPORTED_AUDIO_FORMATS must list at least one extension')

if os.getenv('LOG_FORMAT', 'json') not in ('json', 'text'):
    warnings.append("LOG_FORMAT should be 'json' or 'text'")

region = os.getenv('AWS_REGION', '')
if region and not re.match(r'^[a-z]{2}-[a-z]+-\d$', region):
    warnings.append('AWS_REGION may not match common region pattern; verify value')

temp_dir = os.getenv('AUDIO_TEMP_DIR')
if temp_dir and not os.access(temp_dir, os.W_OK):
    errors.append(f'AUDIO_TEMP_DIR not writable: {temp_dir}')

if not args.offline:
    # AWS connectivity check (S3 head-bucket) - best effort
    try:
        import boto3
        s3 = boto3.client('s3',
                          region_name=os.getenv('AWS_REGION'),
                          aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                          aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'))
        bucket = os.getenv('AWS_S3_BUCKET')
        if bucket:
            try:
                s3.head_bucket(Bucket=bucket)
                print('S3: bucket accessible')
            except Exception as e:
                errors.append(f'S3 access failed: {e}')
    except Exception as e:
        warnings.append(f'AWS credentials unavailable; skipping S3 check ({e})')

    # Redis check (optional)
    if os.getenv('REDIS_URL') or os.getenv('REDIS_HOST'):
        try:
            import redis
            if os.getenv('REDIS_URL'):
                r = redis.from_url(os.getenv('REDIS_URL'))
            else:
                r = redis.Redis(host=os.getenv('REDIS_HOST'), port=int(os.getenv('REDIS_PORT', '6379')), password=os.getenv('REDIS_PASSWORD') or None)
            if r.ping():
                print('Redis: OK')
        except Exception as e:
            warnings.append(f'Redis check failed: {e}')
    else:
        warnings.append('No Redis configured; polling sessions are kept in process memory')

if errors:
    print('\nENV validation failed:')
    for e in errors:
        print(' -', e)
    sys.exit(1)

if warnings:
    print('\nWarnings:')
    for w in warnings:
        print(' -', w)
    if STRICT:
        print('\nStrict mode enabled: treating warnings as errors')
        sys.exit(1)

print('\nAll critical validations passed')
sys.exit(0)
