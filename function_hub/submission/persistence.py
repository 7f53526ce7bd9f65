"""
Persistence collaborators used by the submission controller.

HttpFunctionPersistence talks to the function API with ``requests``;
RepositoryFunctionPersistence calls the database repository in-process.
Both raise PersistenceError subclasses and nothing else for store failures.
"""
import logging
from typing import Any, Callable, List, Optional, Protocol, Sequence, Tuple

import requests
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import (
    FunctionNotFoundError,
    InvalidInputError,
    PersistenceError,
    PersistenceInternalError,
)
from ..db.repository import FunctionRepository, page_count
from ..db.session import SessionLocal
from ..schemas.function import FunctionConfig, FunctionInDB, Pagination, SubmissionIntent

logger = logging.getLogger(__name__)


class FunctionPersistence(Protocol):
    def create(self, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT) -> FunctionInDB:
        ...

    def update(
        self, function_id: str, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT
    ) -> FunctionInDB:
        ...


class HttpFunctionPersistence:
    """Client for the ``/api/functions`` endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        session: Optional[Any] = None,
        timeout: Optional[float] = None,
        api_prefix: Optional[str] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.api_prefix = settings.API_PREFIX if api_prefix is None else api_prefix
        self.session = session if session is not None else requests.Session()
        self.timeout = settings.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout

    def _url(self, path: str = "") -> str:
        return f"{self.base_url}{self.api_prefix}/functions{path}"

    def _request(self, method: str, path: str = "", function_id: Optional[str] = None, **kwargs):
        url = self._url(path)
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise PersistenceInternalError(f"Error connecting to API: {str(e)}") from e
        self._raise_for_status(response, function_id)
        return response

    @staticmethod
    def _raise_for_status(response, function_id: Optional[str]) -> None:
        if response.status_code < 400:
            return
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        message = payload.get("message") or f"Request failed with status {response.status_code}"

        if response.status_code == 404:
            raise FunctionNotFoundError(function_id or "")
        if response.status_code in (400, 422):
            errors = payload.get("errors")
            raise InvalidInputError(
                message=message,
                field_errors=errors if isinstance(errors, dict) else None,
                code=payload.get("code"),
                status_code=response.status_code,
            )
        raise PersistenceInternalError(message, response.status_code)

    @staticmethod
    def _stored(response) -> FunctionInDB:
        try:
            return FunctionInDB.model_validate(response.json())
        except ValueError as e:
            raise PersistenceInternalError(f"Unexpected response from API: {str(e)}") from e

    def create(self, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT) -> FunctionInDB:
        response = self._request("POST", json=config.to_wire(), params={"intent": SubmissionIntent(intent).value})
        return self._stored(response)

    def update(
        self, function_id: str, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT
    ) -> FunctionInDB:
        response = self._request(
            "PUT",
            f"/{function_id}",
            function_id=function_id,
            json=config.to_wire(),
            params={"intent": SubmissionIntent(intent).value},
        )
        return self._stored(response)

    def get(self, function_id: str) -> FunctionInDB:
        return self._stored(self._request("GET", f"/{function_id}", function_id=function_id))

    def list(self, page: int = 1, limit: int = 10, search: str = "") -> Tuple[List[FunctionInDB], Pagination]:
        response = self._request("GET", params={"page": page, "limit": limit, "search": search})
        try:
            payload = response.json()
            functions = [FunctionInDB.model_validate(item) for item in payload["data"]]
            return functions, Pagination.model_validate(payload["pagination"])
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceInternalError(f"Unexpected response from API: {str(e)}") from e

    def delete(self, function_id: str) -> None:
        self._request("DELETE", f"/{function_id}", function_id=function_id)


class RepositoryFunctionPersistence:
    """Runs each call in its own database session."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        supported_runtimes: Optional[Sequence[str]] = None,
    ):
        self.session_factory = session_factory
        self.supported_runtimes = supported_runtimes

    def _run(self, operation: Callable[[FunctionRepository], Any]):
        db = self.session_factory()
        try:
            return operation(FunctionRepository(db, self.supported_runtimes))
        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceInternalError(f"Database error: {str(e)}") from e
        finally:
            db.close()

    def create(self, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT) -> FunctionInDB:
        return self._run(lambda repository: FunctionInDB.model_validate(repository.create(config, intent)))

    def update(
        self, function_id: str, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT
    ) -> FunctionInDB:
        return self._run(
            lambda repository: FunctionInDB.model_validate(repository.update(function_id, config, intent))
        )

    def get(self, function_id: str) -> FunctionInDB:
        return self._run(lambda repository: FunctionInDB.model_validate(repository.get(function_id)))

    def list(self, page: int = 1, limit: int = 10, search: str = "") -> Tuple[List[FunctionInDB], Pagination]:
        def _list(repository: FunctionRepository):
            records, total, page_, limit_ = repository.list(page=page, limit=limit, search=search)
            pagination = Pagination(page=page_, limit=limit_, total=total, total_pages=page_count(total, limit_))
            return [FunctionInDB.model_validate(record) for record in records], pagination

        return self._run(_list)

    def delete(self, function_id: str) -> None:
        self._run(lambda repository: repository.delete(function_id))

