import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from ..core.config import settings

NAME_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
HANDLER_PATTERN = re.compile(r"[a-zA-Z0-9_.-]+")

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 255
TIMEOUT_MIN, TIMEOUT_MAX = 1, 300  # seconds
MEMORY_MIN, MEMORY_MAX = 128, 1024  # MB
MEMORY_STEP = 64

DEFAULT_HANDLER = "index.handler"
DEFAULT_TIMEOUT = 30
DEFAULT_MEMORY = 128
EMPTY_SCHEMA = "{}"

# Error type for runtime failures, kept apart from ordinary field errors
UNSUPPORTED_RUNTIME = "unsupported_runtime"

_REQUIRED_MESSAGES = {
    "name": "Name is required",
    "runtime": "Invalid runtime selected",
}


class SourceType(str, Enum):
    INLINE = "inline"
    GITHUB = "github"


class SubmissionIntent(str, Enum):
    """Why a record is being submitted; never stored."""
    DRAFT = "draft"
    DEPLOY = "deploy"


class FunctionStatus(str, Enum):
    DRAFT = "draft"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    ERROR = "error"


def _invalid(message: str) -> PydanticCustomError:
    return PydanticCustomError("function_config", message)


def _optional_text(value: Any, label: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise _invalid(f"{label} must be a string")
    return value


def _whole_number(value: Any, label: str) -> int:
    # bool is an int subclass but never a valid size or duration
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _invalid(f"{label} must be a number")
    if isinstance(value, float):
        if not value.is_integer():
            raise _invalid(f"{label} must be a whole number")
        return int(value)
    return value


def _json_object_text(value: Any) -> str:
    if value is None:
        return EMPTY_SCHEMA
    if not isinstance(value, str):
        raise _invalid("Must be valid JSON or empty")
    if not value.strip():
        return EMPTY_SCHEMA
    try:
        parsed = json.loads(value)
    except (ValueError, RecursionError):
        raise _invalid("Must be valid JSON or empty")
    if not isinstance(parsed, dict):
        raise _invalid("Must be a JSON object")
    return value


class FunctionBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str
    description: Optional[str] = None
    source_type: SourceType = SourceType.INLINE
    runtime: str
    handler: str = DEFAULT_HANDLER
    timeout: int = DEFAULT_TIMEOUT
    memory: int = DEFAULT_MEMORY
    inline_code: str = Field(default="", validate_default=True)
    repo_url: Optional[str] = None
    branch: Optional[str] = None
    file_path: Optional[str] = None
    input_schema: str = EMPTY_SCHEMA
    output_schema: str = EMPTY_SCHEMA
    credential_id: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Dump with the camelCase keys used by forms and the HTTP API."""
        return self.model_dump(by_alias=True, mode="json")


class FunctionConfig(FunctionBase):
    """
    A normalized function configuration.

    Instances only exist once every field rule and the inline-code rule have
    passed; build them through validate_function_config() to get field-level
    messages instead of a ValidationError.
    """
    model_config = ConfigDict(frozen=True)

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise _invalid("Name must be a string")
        if len(value) < NAME_MIN_LENGTH:
            raise _invalid(f"Name must be at least {NAME_MIN_LENGTH} characters")
        if len(value) > NAME_MAX_LENGTH:
            raise _invalid(f"Name cannot exceed {NAME_MAX_LENGTH} characters")
        if not NAME_PATTERN.fullmatch(value):
            raise _invalid("Name can only contain letters, numbers, underscores, and hyphens")
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _check_description(cls, value: Any) -> Optional[str]:
        value = _optional_text(value, "Description")
        if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
            raise _invalid(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
        return value

    @field_validator("source_type", mode="before")
    @classmethod
    def _check_source_type(cls, value: Any) -> SourceType:
        if value is None:
            return SourceType.INLINE
        try:
            return SourceType(value)
        except ValueError:
            raise _invalid("Source type must be 'inline' or 'github'")

    @field_validator("runtime", mode="before")
    @classmethod
    def _check_runtime(cls, value: Any, info: ValidationInfo) -> str:
        supported = (info.context or {}).get("supported_runtimes")
        if supported is None:
            supported = settings.SUPPORTED_RUNTIMES
        if not isinstance(value, str) or value not in supported:
            raise PydanticCustomError(UNSUPPORTED_RUNTIME, "Invalid runtime selected")
        return value

    @field_validator("handler", mode="before")
    @classmethod
    def _check_handler(cls, value: Any) -> str:
        if value is None:
            return DEFAULT_HANDLER
        if not isinstance(value, str):
            raise _invalid("Handler must be a string")
        if not value:
            raise _invalid("Handler is required")
        if not HANDLER_PATTERN.fullmatch(value):
            raise _invalid("Handler format invalid (e.g., index.handler)")
        return value

    @field_validator("timeout", mode="before")
    @classmethod
    def _check_timeout(cls, value: Any) -> int:
        if value is None:
            return DEFAULT_TIMEOUT
        value = _whole_number(value, "Timeout")
        if value < TIMEOUT_MIN:
            raise _invalid(f"Timeout must be at least {TIMEOUT_MIN} second")
        if value > TIMEOUT_MAX:
            raise _invalid(f"Timeout cannot exceed {TIMEOUT_MAX} seconds")
        return value

    @field_validator("memory", mode="before")
    @classmethod
    def _check_memory(cls, value: Any) -> int:
        if value is None:
            return DEFAULT_MEMORY
        value = _whole_number(value, "Memory")
        if value < MEMORY_MIN:
            raise _invalid(f"Memory must be at least {MEMORY_MIN} MB")
        if value > MEMORY_MAX:
            raise _invalid(f"Memory cannot exceed {MEMORY_MAX} MB")
        if value % MEMORY_STEP != 0:
            raise _invalid(f"Memory must be a multiple of {MEMORY_STEP} MB")
        return value

    @field_validator("inline_code", mode="before")
    @classmethod
    def _check_inline_code(cls, value: Any, info: ValidationInfo) -> str:
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise _invalid("Function code must be a string")
        # source_type is missing from info.data when it failed its own check
        if info.data.get("source_type") == SourceType.INLINE and not value.strip():
            raise _invalid("Function code cannot be empty when using Inline Code source")
        return value

    @field_validator("repo_url", "branch", "file_path", "credential_id", mode="before")
    @classmethod
    def _check_optional_text(cls, value: Any, info: ValidationInfo) -> Optional[str]:
        return _optional_text(value, to_camel(info.field_name))

    @field_validator("input_schema", "output_schema", mode="before")
    @classmethod
    def _check_schema(cls, value: Any) -> str:
        return _json_object_text(value)


_WIRE_NAMES = {name: info.alias or name for name, info in FunctionConfig.model_fields.items()}
_PYTHON_NAMES = {wire: name for name, wire in _WIRE_NAMES.items()}


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating a candidate record.

    ``errors`` maps each violated wire field name to its first message.
    ``configuration_errors`` repeats the entries that point at deployment
    configuration (the runtime set) rather than at something the user typed.
    """
    config: Optional[FunctionConfig] = None
    errors: Dict[str, str] = field(default_factory=dict)
    configuration_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return self.config is not None


def validate_function_config(
    candidate: Any, supported_runtimes: Optional[Sequence[str]] = None
) -> ValidationResult:
    """
    Check a candidate function record and normalize it.

    ``candidate`` may use camelCase or snake_case keys and may come from an
    untrusted source. Unknown keys (``id``, timestamps) are ignored.
    """
    if isinstance(candidate, BaseModel):
        candidate = candidate.model_dump(by_alias=True, mode="json")
    if not isinstance(candidate, Mapping):
        return ValidationResult(errors={"record": "Function configuration must be an object"})

    if supported_runtimes is None:
        supported_runtimes = settings.SUPPORTED_RUNTIMES
    context = {"supported_runtimes": list(supported_runtimes)}
    try:
        config = FunctionConfig.model_validate(dict(candidate), context=context)
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        configuration_errors: Dict[str, str] = {}
        for error in exc.errors():
            if not error["loc"]:
                continue
            field_name = str(error["loc"][0])
            # locations may come back as the python name or the alias
            wire_name = _WIRE_NAMES.get(field_name, field_name)
            if wire_name in errors:
                continue
            snake = _PYTHON_NAMES.get(wire_name, wire_name)
            if error["type"] == "missing":
                message = _REQUIRED_MESSAGES.get(snake, "Required")
            else:
                message = error["msg"]
            errors[wire_name] = message
            if error["type"] == UNSUPPORTED_RUNTIME or snake == "runtime":
                configuration_errors[wire_name] = message
        return ValidationResult(errors=errors, configuration_errors=configuration_errors)
    return ValidationResult(config=config)


class FunctionInDB(FunctionBase):
    """A stored function as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    status: FunctionStatus = FunctionStatus.DRAFT
    created_at: datetime
    updated_at: datetime
    last_deployed_at: Optional[datetime] = None


class FunctionSummary(BaseModel):
    """Row shown in the function dashboard listing."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    source_type: SourceType
    runtime: str
    status: FunctionStatus
    last_deployed: Optional[datetime] = None
    last_modified: datetime

    @classmethod
    def from_function(cls, function: FunctionInDB) -> "FunctionSummary":
        return cls(
            id=function.id,
            name=function.name,
            description=function.description,
            source_type=function.source_type,
            runtime=function.runtime,
            status=function.status,
            last_deployed=function.last_deployed_at,
            last_modified=function.updated_at,
        )


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int


class FunctionListResponse(BaseModel):
    data: List[FunctionInDB]
    pagination: Pagination


class FunctionSummaryListResponse(BaseModel):
    data: List[FunctionSummary]
    pagination: Pagination


class RuntimeOptions(BaseModel):
    """Values a function form needs to populate its selects."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    runtimes: List[str]
    source_types: List[SourceType] = list(SourceType)
    default_handler: str = DEFAULT_HANDLER
    timeout_min: int = TIMEOUT_MIN
    timeout_max: int = TIMEOUT_MAX
    default_timeout: int = DEFAULT_TIMEOUT
    memory_min: int = MEMORY_MIN
    memory_max: int = MEMORY_MAX
    memory_step: int = MEMORY_STEP
    default_memory: int = DEFAULT_MEMORY
