"""
Validated submission of function configurations.

One call to SubmissionController.submit() walks a fresh attempt through
Validating -> GateChecking -> Persisting and ends in exactly one terminal
state. Nothing here logs, retries or swallows a failure: every failure comes
back on the SubmissionOutcome for the caller to handle.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence

from ..core.errors import PersistenceError, SubmissionRejected
from ..schemas.function import FunctionInDB, SubmissionIntent, validate_function_config
from .persistence import FunctionPersistence
from .policy import PolicyViolation, check_intent


class SubmissionState(str, Enum):
    REJECTED = "rejected"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SubmissionOutcome:
    state: SubmissionState
    intent: SubmissionIntent
    record: Optional[FunctionInDB] = None
    field_errors: Dict[str, str] = field(default_factory=dict)
    configuration_errors: Dict[str, str] = field(default_factory=dict)
    policy_violation: Optional[PolicyViolation] = None
    transport_error: Optional[PersistenceError] = None

    @property
    def ok(self) -> bool:
        return self.state == SubmissionState.SUCCEEDED

    @property
    def mark_clean(self) -> bool:
        """Whether the caller should drop its unsaved-changes flag.

        Only successful drafts; after a deploy the caller usually redirects
        or polls, so that decision stays with it.
        """
        return self.ok and self.intent == SubmissionIntent.DRAFT

    def raise_for_outcome(self) -> FunctionInDB:
        """Return the stored record or raise the failure."""
        if self.transport_error is not None:
            raise self.transport_error
        if self.policy_violation is not None:
            raise SubmissionRejected(self.policy_violation.message, code=self.policy_violation.code)
        if self.state == SubmissionState.REJECTED:
            raise SubmissionRejected("Invalid input data", field_errors=self.field_errors)
        return self.record


class SubmissionController:
    """Gates persistence on validation and on the submission intent.

    The controller does not guard against overlapping calls; a caller that
    must not stack submissions has to disable its submit action while one is
    in flight.
    """

    def __init__(self, persistence: FunctionPersistence, supported_runtimes: Optional[Sequence[str]] = None):
        self.persistence = persistence
        self.supported_runtimes = supported_runtimes

    def submit(
        self,
        candidate: Any,
        intent: SubmissionIntent = SubmissionIntent.DRAFT,
        function_id: Optional[str] = None,
    ) -> SubmissionOutcome:
        """
        Validate ``candidate``, apply the gate for ``intent`` and store it.

        With ``function_id`` the stored function is updated, otherwise a new
        one is created. The persistence collaborator is called at most once.
        """
        intent = SubmissionIntent(intent)

        result = validate_function_config(candidate, self.supported_runtimes)
        if not result.valid:
            return SubmissionOutcome(
                state=SubmissionState.REJECTED,
                intent=intent,
                field_errors=dict(result.errors),
                configuration_errors=dict(result.configuration_errors),
            )

        violation = check_intent(result.config, intent)
        if violation is not None:
            return SubmissionOutcome(state=SubmissionState.REJECTED, intent=intent, policy_violation=violation)

        try:
            if function_id is None:
                record = self.persistence.create(result.config, intent)
            else:
                record = self.persistence.update(function_id, result.config, intent)
        except PersistenceError as e:
            return SubmissionOutcome(state=SubmissionState.FAILED, intent=intent, transport_error=e)

        return SubmissionOutcome(state=SubmissionState.SUCCEEDED, intent=intent, record=record)
