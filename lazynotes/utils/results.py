"""Two-variant result type returned by every remote call boundary.

Callers pattern-match on the variant instead of catching exceptions:

    result = await client.create_job(...)
    if isinstance(result, Success):
        ...
    else:
        LOG.warning('create_job_failed', extra={'error': result.message})
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

T = TypeVar('T')


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    cause: Optional[BaseException]
    message: str

    @property
    def ok(self) -> bool:
        return False


NetworkResult = Union[Success[T], Failure]


def failure_from_exception(exc: BaseException, prefix: str = 'An unexpected error occurred') -> Failure:
    return Failure(exc, f'{prefix}: {exc}')
