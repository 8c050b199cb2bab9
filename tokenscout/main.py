# tokenscout/main.py
import logging

from fastapi import FastAPI

from tokenscout.api import api
from tokenscout.config.settings import Settings
from tokenscout.services.token_service import TokenService
from tokenscout.utils.shortname import ShortNameFilter

app = FastAPI(title="tokenscout")

logging.basicConfig(
    level=logging.INFO,
    format="[%(levelname)s] %(shortname)s: %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(ShortNameFilter())
log = logging.getLogger(__name__)

app.include_router(api.router, prefix="/api")


@app.on_event("startup")
async def build_service():
    service = TokenService.build(Settings.from_env())
    app.state.service = service
    if not service.kv.configured:
        log.warning("⚠️ REDIS_URL not set, serving live computations without a cache")
    elif await service.kv.ping_ms() < 0:
        log.error("❌ KV store unreachable, reads will degrade to empty")
    else:
        log.info("✅ KV store connected.")


@app.on_event("shutdown")
async def close_service():
    service = getattr(app.state, "service", None)
    if service is not None:
        await service.close()
