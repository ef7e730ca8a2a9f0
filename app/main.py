import logging

from fastapi import FastAPI

from .config import settings
from .pipeline.routes import router as pipeline_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app = FastAPI(title="La Pública Pipeline", version="0.1.0")
app.include_router(pipeline_router)

@app.get("/health")
async def health():
    return {"ok": True, "service": settings.service_name, "env": settings.env}
