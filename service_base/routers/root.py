"""
Template endpoint

Replace or extend with real business routers.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
import structlog

router = APIRouter(tags=["root"])
logger = structlog.get_logger()


@router.get("/", response_class=PlainTextResponse)
async def root():
    """Hello World"""
    logger.info("Hello World!")
    return "Hello World!"
