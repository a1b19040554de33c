"""
Model catalog endpoint.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends

from streamgate.api.deps import get_provider_registry
from streamgate.llm.registry import ProviderRegistry
from streamgate.models.chat import ModelInfo

router = APIRouter()


@router.get("/models", response_model=Dict[str, List[ModelInfo]])
async def list_models(
    providers: ProviderRegistry = Depends(get_provider_registry),  # noqa: B008
) -> Dict[str, List[ModelInfo]]:
    """
    List supported models grouped by provider.

    Returns:
        Provider name to model list
    """
    return providers.catalog()
