from fastapi import APIRouter

from ..core.config import settings
from ..schemas.function import RuntimeOptions

router = APIRouter(
    prefix="/config",
    tags=["config"]
)


@router.get("/runtimes", response_model=RuntimeOptions)
async def get_runtime_options():
    """
    Supported runtimes and resource limits for function forms.
    """
    return RuntimeOptions(runtimes=list(settings.SUPPORTED_RUNTIMES))
