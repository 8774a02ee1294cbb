from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from ..client import HttpPageChannel
from ..config import HighlightConfig
from ..core.background import BackgroundService
from ..core.messages import BACKGROUND_MESSAGES, Message
from ..logging import setup_logger
from .models import TabNavigation, TabRegistration, TabStatus

router = APIRouter()
logger = setup_logger("visited_links.api.routes")


def _service(http_req: Request) -> BackgroundService:
    service = getattr(http_req.app.state, "service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Background service is not initialized")
    return service


@router.post("/messages")
async def post_message(message: Message, http_req: Request, tab_id: Optional[str] = None):
    service = _service(http_req)
    if not isinstance(message, BACKGROUND_MESSAGES):
        raise HTTPException(status_code=400, detail=f"{message.action} is not handled by the background")
    response = await service.router.dispatch(message, tab_id)
    return response.model_dump(mode="json", by_alias=True)


@router.get("/config")
async def get_config(http_req: Request):
    config = await _service(http_req).config_store.load()
    return config.to_wire()


@router.put("/config")
async def put_config(config: HighlightConfig, http_req: Request):
    service = _service(http_req)
    await service.update_config(config)
    logger.info(f"Configuration updated: enabled={config.enabled} ignore_params={config.ignore_params}")
    return config.to_wire()


@router.post("/tabs/{tab_id}", response_model=TabStatus)
async def register_tab(tab_id: str, registration: TabRegistration, http_req: Request) -> TabStatus:
    service = _service(http_req)
    channel = None
    if registration.callback_url:
        channel = HttpPageChannel(registration.callback_url, session=getattr(http_req.app.state, "http_session", None))
    existing = service.tabs.get(tab_id)
    if channel is not None and existing is not None and existing.channel is not None:
        await existing.channel.close()
    tab = service.register_tab(tab_id, url=registration.url, channel=channel)
    return TabStatus.from_tab(tab, cached=tab_id in service.cache)


@router.post("/tabs/{tab_id}/navigate", response_model=TabStatus)
async def navigate_tab(tab_id: str, navigation: TabNavigation, http_req: Request) -> TabStatus:
    service = _service(http_req)
    service.tab_navigated(tab_id, navigation.url)
    return TabStatus.from_tab(service.tabs[tab_id], cached=False)


@router.post("/tabs/{tab_id}/activate", response_model=TabStatus)
async def activate_tab(tab_id: str, http_req: Request) -> TabStatus:
    service = _service(http_req)
    if tab_id not in service.tabs:
        raise HTTPException(status_code=404, detail=f"Unknown tab {tab_id}")
    await service.tab_activated(tab_id)
    return TabStatus.from_tab(service.tabs[tab_id], cached=tab_id in service.cache)


@router.delete("/tabs/{tab_id}")
async def remove_tab(tab_id: str, http_req: Request):
    service = _service(http_req)
    if tab_id not in service.tabs and tab_id not in service.cache:
        raise HTTPException(status_code=404, detail=f"Unknown tab {tab_id}")
    await service.tab_removed(tab_id)
    return {"success": True}


@router.get("/health")
async def health_check(http_req: Request):
    service = getattr(http_req.app.state, "service", None)
    if service is None:
        return {"status": "degraded", "history": "not_initialized"}
    return {
        "status": "ok",
        "history": type(service.matcher.store).__name__,
        "tabs": len(service.tabs),
        "cached_tabs": len(service.cache),
    }
