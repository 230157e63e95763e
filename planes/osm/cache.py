"""
Download caching

Raw view-mode responses are kept on disk per bounding box so panning back
over an area does not hit Overpass again. Entries older than max_age_s are
ignored. Editor downloads are never cached: uploads need current versions.
"""

import os
import json
import time
import hashlib
from typing import Dict, Any, Optional, Tuple
from loguru import logger


class OSMCache:
    """Disk cache of raw bbox responses"""

    def __init__(self, cache_dir: Optional[str] = None, max_age_s: Optional[float] = None):
        self.cache_dir = cache_dir
        self.max_age_s = max_age_s

    def get_cache_path(self, bbox: Tuple[float, float, float, float], source: str) -> Optional[str]:
        """Cache file for a bbox download, or None when caching is off"""
        if not self.cache_dir:
            return None
        bbox_key = ",".join(f"{v:.6f}" for v in bbox)
        digest = hashlib.md5(f"{source}:{bbox_key}".encode()).hexdigest()[:12]
        return os.path.join(self.cache_dir, f"{source}_{digest}.json")

    def is_fresh(self, cache_path: str) -> bool:
        if not os.path.exists(cache_path):
            return False
        if self.max_age_s is None:
            return True
        return time.time() - os.path.getmtime(cache_path) <= self.max_age_s

    def load(self, cache_path: str) -> Optional[Dict[str, Any]]:
        """Cached response, or None if missing, expired or unreadable"""
        if not self.is_fresh(cache_path):
            return None
        try:
            with open(cache_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable cache entry {cache_path}: {e}")
            return None
        logger.info(f"Using cached download {cache_path}")
        return data

    def save(self, cache_path: str, data: Dict[str, Any]) -> None:
        try:
            os.makedirs(os.path.dirname(cache_path), exist_ok=True)
            with open(cache_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False)
        except OSError as e:
            logger.warning(f"Could not write cache entry {cache_path}: {e}")
            return
        logger.debug(f"Cached download in {cache_path}")

    def clear(self) -> int:
        """Delete all cache entries, returning how many were removed"""
        if not self.cache_dir or not os.path.isdir(self.cache_dir):
            return 0
        removed = 0
        for name in os.listdir(self.cache_dir):
            if name.endswith(".json"):
                os.remove(os.path.join(self.cache_dir, name))
                removed += 1
        logger.info(f"Cleared {removed} cache entries from {self.cache_dir}")
        return removed
