"""Image processing for embedded widget images.

Turns a local image file into a data:image/jpeg URL: EXIF stripped,
downscaled to fit, re-encoded as JPEG.
"""

import base64
import io
from pathlib import Path

SUPPORTED_FORMATS = ("PNG", "JPEG", "WEBP")

IMAGE_MAX_SIZE = (1200, 1200)
ICON_MAX_SIZE = (512, 512)

# Relays commonly reject events above ~64 KiB
MAX_DATA_URL_LENGTH = 64 * 1024

JPEG_QUALITY = 85


def fit_dimensions(width: int, height: int, max_width: int, max_height: int) -> tuple[int, int]:
    """Scale (width, height) down to fit max_width x max_height, never up.

    Aspect ratio is preserved; each side stays at least 1 pixel.
    """
    scale = min(max_width / width, max_height / height, 1.0)
    return (max(1, int(width * scale)), max(1, int(height * scale)))


def image_file_to_data_url(path: str, max_size: tuple[int, int] = IMAGE_MAX_SIZE) -> str:
    """Encode a local image file as a base64 JPEG data URL.

    CONTRACT:
      Inputs:
        - path: image file path (PNG, JPEG or WebP)
        - max_size: (max_width, max_height) bounding box

      Outputs:
        - "data:image/jpeg;base64,<payload>"

      Invariants:
        - Output has no EXIF metadata
        - Output dimensions fit max_size; smaller images are not upscaled
        - Output length is at most MAX_DATA_URL_LENGTH

      Raises:
        - ImageProcessingError: missing file, unsupported format, processing
          failure, or encoded result too large
    """
    from PIL import Image

    from .errors import ImageProcessingError

    try:
        with Image.open(path) as img:
            format_name = img.format or "unknown"
            if format_name not in SUPPORTED_FORMATS:
                raise ImageProcessingError(f"unsupported image format: {format_name}")

            # Re-encoding from raw pixels drops EXIF and other metadata
            img_rgb = img.convert("RGB")
            target = fit_dimensions(img_rgb.width, img_rgb.height, *max_size)
            if target != img_rgb.size:
                img_rgb = img_rgb.resize(target, Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            img_rgb.save(buffer, format="JPEG", quality=JPEG_QUALITY, exif=b"")
    except ImageProcessingError:
        raise
    except FileNotFoundError as e:
        raise ImageProcessingError(f"input file not found: {path}") from e
    except Exception as e:
        raise ImageProcessingError(f"failed to process image: {str(e)}") from e

    data_url = "data:image/jpeg;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")

    if len(data_url) > MAX_DATA_URL_LENGTH:
        raise ImageProcessingError(
            f"encoded image is {len(data_url)} bytes (maximum {MAX_DATA_URL_LENGTH}), use a smaller image or a URL"
        )

    return data_url


def resolve_image_path(file_path: str, definition_dir: str | None) -> str:
    """Resolve a possibly relative image path against the definition file directory."""
    path = Path(file_path).expanduser()
    if not path.is_absolute() and definition_dir is not None:
        path = Path(definition_dir) / path
    return str(path.resolve())
