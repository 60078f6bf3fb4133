"""
Route handlers for upstream model status.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from models.api_models import ModelStatusResponse
from services.upstream_client import UpstreamClient, get_upstream_client
from utils.logger import app_logger

router = APIRouter()


@router.get("/chat/model-status")
async def model_status(client: UpstreamClient = Depends(get_upstream_client)):
    """Report whether the inference server is reachable, with its model list."""
    try:
        models = await client.list_models()
        return ModelStatusResponse(success=True, status="connected", models=models).model_dump(exclude_none=True)
    except Exception as e:
        app_logger.warning(f"Model status check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ModelStatusResponse(success=False, status="disconnected", error=str(e)).model_dump(exclude_none=True)
        )
