import logging
import traceback
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from ..core.errors import InvalidInputError, PersistenceError, PersistenceInternalError
from ..db.repository import FunctionRepository, page_count
from ..db.session import get_db
from ..schemas.function import (
    FunctionConfig,
    FunctionInDB,
    FunctionListResponse,
    FunctionSummary,
    FunctionSummaryListResponse,
    Pagination,
    SubmissionIntent,
    validate_function_config,
)

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/functions",
    tags=["functions"]
)


def _validated(body: Any) -> FunctionConfig:
    result = validate_function_config(body)
    if not result.valid:
        logger.info(f"Validation errors: {result.errors}")
        raise InvalidInputError(field_errors=result.errors)
    return result.config


def _internal_error(operation: str, error: Exception) -> PersistenceInternalError:
    logger.error(f"Error trying to {operation} function: {str(error)}")
    logger.error(traceback.format_exc())
    return PersistenceInternalError(f"Failed to {operation} function", status.HTTP_500_INTERNAL_SERVER_ERROR)


def _paginate(repository: FunctionRepository, page: int, limit: int, search: str):
    records, total, page, limit = repository.list(page=page, limit=limit, search=search)
    pagination = Pagination(page=page, limit=limit, total=total, total_pages=page_count(total, limit))
    return [FunctionInDB.model_validate(record) for record in records], pagination


@router.get("", response_model=FunctionListResponse)
def list_functions(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    db: Session = Depends(get_db),
):
    try:
        functions, pagination = _paginate(FunctionRepository(db), page, limit, search)
        logger.info(f"Successfully fetched {len(functions)} functions")
        return FunctionListResponse(data=functions, pagination=pagination)
    except PersistenceError:
        raise
    except Exception as e:
        raise _internal_error("fetch", e)


@router.get("/summaries", response_model=FunctionSummaryListResponse)
def list_function_summaries(
    page: int = Query(1),
    limit: int = Query(10),
    search: str = Query(""),
    db: Session = Depends(get_db),
):
    try:
        functions, pagination = _paginate(FunctionRepository(db), page, limit, search)
        summaries = [FunctionSummary.from_function(function) for function in functions]
        return FunctionSummaryListResponse(data=summaries, pagination=pagination)
    except PersistenceError:
        raise
    except Exception as e:
        raise _internal_error("fetch", e)


@router.post("", response_model=FunctionInDB, status_code=status.HTTP_201_CREATED)
def create_function(
    body: Any = Body(...),
    intent: SubmissionIntent = Query(SubmissionIntent.DRAFT),
    db: Session = Depends(get_db),
):
    try:
        config = _validated(body)
        record = FunctionRepository(db).create(config, intent)
        logger.info(f"Successfully created function with ID: {record.id}")
        return FunctionInDB.model_validate(record)
    except (HTTPException, PersistenceError):
        raise
    except Exception as e:
        raise _internal_error("create", e)


@router.get("/{function_id}", response_model=FunctionInDB)
def get_function(function_id: str, db: Session = Depends(get_db)):
    try:
        record = FunctionRepository(db).get(function_id)
        logger.info(f"Successfully fetched function with ID: {function_id}")
        return FunctionInDB.model_validate(record)
    except PersistenceError:
        raise
    except Exception as e:
        raise _internal_error("fetch", e)


@router.put("/{function_id}", response_model=FunctionInDB)
def update_function(
    function_id: str,
    body: Any = Body(...),
    intent: SubmissionIntent = Query(SubmissionIntent.DRAFT),
    db: Session = Depends(get_db),
):
    try:
        repository = FunctionRepository(db)
        # a missing function is reported before any complaint about the body
        record = repository.get(function_id)
        config = _validated(body)
        record = repository.update_record(record, config, intent)
        logger.info(f"Successfully updated function with ID: {function_id}")
        return FunctionInDB.model_validate(record)
    except (HTTPException, PersistenceError):
        raise
    except Exception as e:
        raise _internal_error("update", e)


@router.delete("/{function_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_function(function_id: str, db: Session = Depends(get_db)):
    try:
        FunctionRepository(db).delete(function_id)
        logger.info(f"Successfully deleted function with ID: {function_id}")
        # TODO: trigger cleanup of the deployed function once a deployment service exists
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except PersistenceError:
        raise
    except Exception as e:
        raise _internal_error("delete", e)
