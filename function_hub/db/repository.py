import logging
import math
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.errors import FunctionNotFoundError, InvalidInputError
from ..models.function import FunctionRecord
from ..schemas.function import (
    FunctionConfig,
    FunctionStatus,
    SubmissionIntent,
    validate_function_config,
)
from ..submission.policy import check_intent

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_CONFIG_FIELDS = tuple(FunctionConfig.model_fields)

SAMPLE_FUNCTIONS = [
    {
        "id": "fn-123",
        "name": "MyTestFunction",
        "description": "Does something cool",
        "runtime": "nodejs18.x",
        "handler": "index.handler",
        "timeout": 60,
        "memory": 256,
        "inlineCode": (
            'exports.handler = async (event) => { console.log("Hello from fn-123!"); '
            'return { statusCode: 200, body: "Success" }; };'
        ),
        "inputSchema": '{"type":"object"}',
        "outputSchema": '{"type":"object"}',
    },
    {
        "id": "fn-456",
        "name": "AnotherFunction",
        "description": "",
        "runtime": "nodejs18.x",
        "handler": "index.run",
        "timeout": 10,
        "memory": 128,
        "inlineCode": 'exports.run = async (event) => { return { statusCode: 200, body: "Another one" }; };',
        "inputSchema": "{}",
        "outputSchema": "{}",
    },
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_function_id() -> str:
    return f"fn-{uuid.uuid4().hex[:12]}"


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _revalidate(config: FunctionConfig, supported_runtimes: Optional[Sequence[str]] = None) -> FunctionConfig:
    """The store checks records again; callers are not trusted to have done it."""
    result = validate_function_config(config, supported_runtimes)
    if not result.valid:
        raise InvalidInputError(field_errors=result.errors)
    return result.config


class FunctionRepository:
    """CRUD over stored functions."""

    def __init__(self, db: Session, supported_runtimes: Optional[Sequence[str]] = None):
        self.db = db
        self.supported_runtimes = supported_runtimes

    def list(self, page: int = 1, limit: int = 10, search: str = "") -> Tuple[List[FunctionRecord], int, int, int]:
        """Return ``(records, total, page, limit)`` with page and limit clamped."""
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = self.db.query(FunctionRecord)
        if search:
            query = query.filter(FunctionRecord.name.ilike(f"%{_escape_like(search)}%", escape="\\"))
        total = query.count()
        records = (
            query.order_by(FunctionRecord.created_at, FunctionRecord.id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        logger.debug(f"Fetched {len(records)} of {total} functions (page={page}, limit={limit}, search={search!r})")
        return records, total, page, limit

    def get(self, function_id: str) -> FunctionRecord:
        record = self.db.query(FunctionRecord).filter(FunctionRecord.id == function_id).first()
        if record is None:
            raise FunctionNotFoundError(function_id)
        return record

    def create(
        self,
        config: FunctionConfig,
        intent: SubmissionIntent = SubmissionIntent.DRAFT,
        function_id: Optional[str] = None,
    ) -> FunctionRecord:
        config = _revalidate(config, self.supported_runtimes)
        self._check_policy(config, intent)

        now = _utcnow()
        record = FunctionRecord(
            id=function_id or _new_function_id(),
            status=FunctionStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
        )
        self._assign(record, config)
        self._apply_intent(record, intent, now)
        self.db.add(record)
        self._commit(record)
        logger.info(f"Created function {record.id} ({record.name})")
        return record

    def update(
        self, function_id: str, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT
    ) -> FunctionRecord:
        return self.update_record(self.get(function_id), config, intent)

    def update_record(
        self, record: FunctionRecord, config: FunctionConfig, intent: SubmissionIntent = SubmissionIntent.DRAFT
    ) -> FunctionRecord:
        config = _revalidate(config, self.supported_runtimes)
        self._check_policy(config, intent)

        now = _utcnow()
        self._assign(record, config)
        record.updated_at = now
        self._apply_intent(record, intent, now)
        self._commit(record)
        logger.info(f"Updated function {record.id} ({record.name})")
        return record

    def delete(self, function_id: str) -> None:
        record = self.get(function_id)
        self.db.delete(record)
        self.db.commit()
        logger.info(f"Deleted function {function_id}")

    def seed_sample_functions(self) -> int:
        """Insert the sample functions that are missing; returns how many were added."""
        added = 0
        for sample in SAMPLE_FUNCTIONS:
            if self.db.query(FunctionRecord).filter(FunctionRecord.id == sample["id"]).first():
                continue
            result = validate_function_config(sample, self.supported_runtimes)
            if not result.valid:
                raise InvalidInputError(field_errors=result.errors)
            self.create(result.config, function_id=sample["id"])
            added += 1
        return added

    @staticmethod
    def _check_policy(config: FunctionConfig, intent: SubmissionIntent) -> None:
        violation = check_intent(config, intent)
        if violation is not None:
            raise InvalidInputError(message=violation.message, code=violation.code, status_code=422)

    @staticmethod
    def _assign(record: FunctionRecord, config: FunctionConfig) -> None:
        for field_name in _CONFIG_FIELDS:
            value = getattr(config, field_name)
            setattr(record, field_name, getattr(value, "value", value))

    @staticmethod
    def _apply_intent(record: FunctionRecord, intent: SubmissionIntent, now: datetime) -> None:
        if SubmissionIntent(intent) == SubmissionIntent.DEPLOY:
            record.status = FunctionStatus.DEPLOYING.value
            record.last_deployed_at = now
            # No deployment service is wired in; the status stays at deploying
            logger.info(f"Deployment requested for function {record.id}")

    def _commit(self, record: FunctionRecord) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
