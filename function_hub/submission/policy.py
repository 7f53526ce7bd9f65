"""Intent-specific rules applied after field validation has passed."""
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..core.errors import DEPLOY_UNSUPPORTED_SOURCE
from ..schemas.function import FunctionConfig, SourceType, SubmissionIntent


@dataclass(frozen=True)
class PolicyViolation:
    code: str
    message: str


def _no_gate(config: FunctionConfig) -> Optional[PolicyViolation]:
    return None


def _require_inline_source(config: FunctionConfig) -> Optional[PolicyViolation]:
    if config.source_type != SourceType.INLINE:
        return PolicyViolation(
            code=DEPLOY_UNSUPPORTED_SOURCE,
            message=(
                f"Deployment from source type '{config.source_type.value}' is not supported yet. "
                "Save as draft or select Inline Code."
            ),
        )
    return None


INTENT_GATES: Dict[SubmissionIntent, Callable[[FunctionConfig], Optional[PolicyViolation]]] = {
    SubmissionIntent.DRAFT: _no_gate,
    SubmissionIntent.DEPLOY: _require_inline_source,
}


def check_intent(config: FunctionConfig, intent: SubmissionIntent) -> Optional[PolicyViolation]:
    """Return the violation for ``intent``, or None when the record may be submitted."""
    return INTENT_GATES[SubmissionIntent(intent)](config)
