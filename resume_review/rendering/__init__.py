from .engine import (
    RenderEngine,
    RenderEngineLoader,
    RenderEngineUnavailable,
    RenderError,
    get_render_engine_loader,
)
from .rasterizer import (
    RASTER_SCALE,
    ImageArtifact,
    RasterResult,
    UploadedDocument,
    convert_pdf_to_image,
    image_filename_for,
)

__all__ = [
    "RASTER_SCALE",
    "ImageArtifact",
    "RasterResult",
    "RenderEngine",
    "RenderEngineLoader",
    "RenderEngineUnavailable",
    "RenderError",
    "UploadedDocument",
    "convert_pdf_to_image",
    "get_render_engine_loader",
    "image_filename_for",
]
