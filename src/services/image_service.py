import logging
import time

from fastapi import UploadFile

from core.exceptions import BlogException, InternalError, ValidationError
from schemas.admin import ImageUploadOut
from schemas.responses import SuccessResponse
from services import telemetry
from services.image_store import ImageStore, unique_object_name

logger = logging.getLogger(__name__)


async def upload_image(
    store: ImageStore, image: UploadFile | None, *, host: str
) -> SuccessResponse[ImageUploadOut]:
    """Validate and upload one image, returning its public URL.

    The type check happens before any bytes are read or sent to storage.
    """
    started = time.perf_counter()
    store_ms: float | None = None
    error: str | None = None
    try:
        if image is None or not image.filename:
            raise ValidationError("No image file provided")
        content_type = image.content_type or ""
        if not content_type.startswith("image/"):
            raise ValidationError("Invalid file type, please upload an image.")

        data = await image.read()
        name = unique_object_name(image.filename, content_type)

        store_started = time.perf_counter()
        try:
            await store.upload(name, data, content_type)
        finally:
            store_ms = (time.perf_counter() - store_started) * 1000

        url = store.public_url(name)
        logger.info("Image uploaded: %s", url)
        return SuccessResponse[ImageUploadOut].ok(ImageUploadOut(url=url))
    except BlogException as e:
        error = e.message
        raise
    except Exception as e:
        logger.exception("Image upload failed")
        error = "Image upload failed"
        raise InternalError("Image upload failed") from e
    finally:
        await telemetry.send_telemetry_event(
            "blog_image_uploaded",
            {
                "domain": host,
                "responseTime": (time.perf_counter() - started) * 1000,
                "storeTime": store_ms,
                "error": error,
            },
        )
