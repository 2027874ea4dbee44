import hashlib
import json
from typing import Any, Dict, Optional

# Rendered PNGs keyed by a digest of the render spec and figure size
_PNG_CACHE: Dict[str, str] = {}
MAX_CACHED_IMAGES = 256


def cache_key(option: Dict[str, Any], width: float, height: float) -> str:
    payload = json.dumps(option, sort_keys=True, default=str)
    return hashlib.sha1(f"{width}x{height}:{payload}".encode("utf-8")).hexdigest()


def get_cached_image(key: str) -> Optional[str]:
    return _PNG_CACHE.get(key)


def store_image(key: str, image_base64: str):
    if len(_PNG_CACHE) >= MAX_CACHED_IMAGES:
        # drop the oldest entry
        _PNG_CACHE.pop(next(iter(_PNG_CACHE)))
    _PNG_CACHE[key] = image_base64
