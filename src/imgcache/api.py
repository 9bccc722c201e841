"""HTTP surface for the image cache — GET/POST/DELETE under /api/images."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field, ValidationError

from imgcache.cache.eviction import EvictionTrigger
from imgcache.cache.layout import normalize_identifier
from imgcache.cache.store import ImageStore
from imgcache.config.defaults import DEFAULT_CACHE_CONTROL_MAX_AGE
from imgcache.config.schema import CacheSettings
from imgcache.errors.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class CacheImageRequest(BaseModel):
    """Upload body. Accepts snake_case or camelCase keys."""

    base64_data: str | None = Field(
        default=None, validation_alias=AliasChoices("base64_data", "base64Data")
    )
    content_type: str | None = Field(
        default=None, validation_alias=AliasChoices("content_type", "contentType")
    )
    file_name: str | None = Field(
        default=None, validation_alias=AliasChoices("file_name", "fileName")
    )


class ImagesHandler:
    """Binds the image routes to one store."""

    def __init__(
        self,
        store: ImageStore,
        cache_control_max_age: int = DEFAULT_CACHE_CONTROL_MAX_AGE,
    ) -> None:
        self.store = store
        self.cache_control = f"public, max-age={cache_control_max_age}"
        self.router = APIRouter()
        self.router.add_api_route("/images/{image_id}", self.get_image, methods=["GET"])
        self.router.add_api_route("/images", self.cache_image, methods=["POST"])
        self.router.add_api_route(
            "/images/{image_id}", self.delete_image, methods=["DELETE"], status_code=204
        )

    async def get_image(self, image_id: str) -> Response:
        try:
            cached = await self.store.get(image_id)
        except Exception:
            logger.exception("Error serving image %s", image_id)
            return Response(status_code=500)

        if cached is None:
            return Response(status_code=404)

        return Response(
            content=cached.data,
            media_type=cached.content_type,
            headers={
                "Cache-Control": self.cache_control,
                "ETag": f'"{normalize_identifier(image_id)}"',
            },
        )

    async def cache_image(self, request: Request) -> Response:
        # Any body that does not parse as an upload is a 400
        try:
            body = CacheImageRequest.model_validate(await request.json())
        except (ValueError, ValidationError):
            return JSONResponse(
                {"error": "Request body is not a valid image upload"}, status_code=400
            )

        if not body.base64_data or not body.content_type:
            return JSONResponse(
                {"error": "base64_data and content_type are required"}, status_code=400
            )
        try:
            image_bytes = base64.b64decode(body.base64_data, validate=True)
        except (binascii.Error, ValueError):
            return JSONResponse({"error": "base64_data is not valid base64"}, status_code=400)

        try:
            reference = await self.store.put(image_bytes, body.content_type, body.file_name)
        except InvalidInputError as e:
            return JSONResponse({"error": e.message}, status_code=400)
        except Exception:
            logger.exception("Error caching image via API")
            return JSONResponse({"error": "Error caching image"}, status_code=500)

        base_url = str(request.base_url).rstrip("/")
        return JSONResponse({"image_uri": f"{base_url}{reference}"})

    async def delete_image(self, image_id: str) -> Response:
        try:
            await self.store.delete(image_id)
        except Exception:
            logger.exception("Error deleting image %s", image_id)
            return Response(status_code=500)
        return Response(status_code=204)


def create_router(
    store: ImageStore,
    cache_control_max_age: int = DEFAULT_CACHE_CONTROL_MAX_AGE,
) -> APIRouter:
    return ImagesHandler(store, cache_control_max_age).router


def create_app(
    settings: CacheSettings | None = None,
    store: ImageStore | None = None,
) -> FastAPI:
    """Build the FastAPI app; the eviction loop runs for the app's lifetime."""
    settings = settings or CacheSettings()
    store = store or ImageStore.from_config(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        stop_event = asyncio.Event()
        task: asyncio.Task[None] | None = None
        if not settings.cleanup_disabled:
            trigger = EvictionTrigger(
                store,
                interval=settings.cleanup_interval,
                max_age=settings.max_age,
                retry_delay=settings.retry_delay,
            )
            task = asyncio.create_task(trigger.run(stop_event))
        try:
            yield
        finally:
            stop_event.set()
            if task is not None:
                await task
            store.close()

    app = FastAPI(title="imgcache", lifespan=lifespan)
    app.state.store = store
    app.include_router(
        create_router(store, settings.cache_control_max_age), prefix=settings.route_prefix
    )
    return app
