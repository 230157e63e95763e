"""
Configuration settings for the parking lanes engine
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set


@dataclass
class APIConfig:
    """API endpoints and configuration"""
    # Overpass API is used for read-only viewing, the OSM API for editing
    # (it returns current versions, which uploads require)
    overpass_url: str = "https://overpass-api.de/api/interpreter"
    osm_api_url: str = "https://api.openstreetmap.org/api/0.6"
    overpass_timeout: int = 90

    # Request settings
    request_timeout: int = 30
    max_retries: int = 3
    retry_delay: float = 1.0
    min_request_interval: float = 2.0

    # User agent for API requests
    user_agent: str = "PLanes/0.8.8"

    # Written to the created_by tag of uploaded changesets
    editor_name: str = "PLanes"
    editor_version: str = "0.8.8"

    # OAuth2 bearer token; obtaining it is up to the caller
    access_token: Optional[str] = None


@dataclass
class ZoomStyle:
    """Stroke parameters (pixels) for one zoom level"""
    offset_major: float
    weight_major: float
    offset_minor: float
    weight_minor: float


def _default_zoom_styles() -> Dict[int, ZoomStyle]:
    return {
        12: ZoomStyle(offset_major=0.5, weight_major=0.5, offset_minor=0.5, weight_minor=0.5),
        13: ZoomStyle(offset_major=1, weight_major=1, offset_minor=1, weight_minor=1),
        14: ZoomStyle(offset_major=2, weight_major=1.5, offset_minor=1.5, weight_minor=1),
        15: ZoomStyle(offset_major=3, weight_major=2, offset_minor=2.5, weight_minor=1.5),
        16: ZoomStyle(offset_major=5, weight_major=3, offset_minor=4, weight_minor=2.5),
        17: ZoomStyle(offset_major=7, weight_major=4, offset_minor=5, weight_minor=3),
        18: ZoomStyle(offset_major=12, weight_major=6, offset_minor=9, weight_minor=5),
        19: ZoomStyle(offset_major=20, weight_major=9, offset_minor=15, weight_minor=7),
        20: ZoomStyle(offset_major=35, weight_major=13, offset_minor=25, weight_minor=10),
        21: ZoomStyle(offset_major=60, weight_major=18, offset_minor=45, weight_minor=14),
    }


@dataclass
class LaneConfig:
    """Lane geometry and styling"""
    # Below this zoom two sides of the same category collapse into one lane
    split_zoom: int = 15

    # Below this zoom nothing is downloaded
    view_min_zoom: int = 15

    # Below this zoom lanes sit on the centerline
    min_offset_zoom: int = 12

    # Zoom level -> stroke parameters; zooms outside the table clamp to its ends
    zoom_styles: Dict[int, ZoomStyle] = field(default_factory=_default_zoom_styles)

    major_highways: Set[str] = field(default_factory=lambda: {
        "motorway", "trunk", "primary", "secondary", "tertiary",
        "motorway_link", "trunk_link", "primary_link", "secondary_link", "tertiary_link",
    })
    minor_highways: Set[str] = field(default_factory=lambda: {
        "unclassified", "residential", "living_street", "service", "road", "pedestrian",
    })

    # Color of lanes whose condition could not be resolved (editor mode only)
    unknown_color: str = "black"
    unknown_dash: str = "4, 4"
    opacity: float = 0.9


@dataclass
class BacklightConfig:
    """Selection highlight drawn beneath the clicked lane"""
    extra_weight_px: float = 6.0
    color: str = "fuchsia"
    opacity: float = 0.4


@dataclass
class AreaConfig:
    """Parking area outlines"""
    weight_px: float = 2.0
    opacity: float = 0.6


@dataclass
class PointConfig:
    """Parking point markers"""
    base_radius_px: float = 2.0
    radius_step_px: float = 1.5
    min_zoom: int = 15


@dataclass
class PipelineConfig:
    """Top-level configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    lanes: LaneConfig = field(default_factory=LaneConfig)
    backlight: BacklightConfig = field(default_factory=BacklightConfig)
    points: PointConfig = field(default_factory=PointConfig)
    areas: AreaConfig = field(default_factory=AreaConfig)

    # Raw view-mode responses are cached here when set
    cache_dir: Optional[str] = None
    cache_max_age_s: Optional[float] = 3600.0


# Global config instance
config = PipelineConfig()


def get_config() -> PipelineConfig:
    """Get global configuration"""
    return config


def validate_config(config: PipelineConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors: List[str] = []

    if config.api is None:
        errors.append("api configuration is required but not set")
    else:
        if not config.api.overpass_url:
            errors.append("api.overpass_url is required but not set")
        if not config.api.osm_api_url:
            errors.append("api.osm_api_url is required but not set")
        if config.api.max_retries < 1:
            errors.append(f"api.max_retries must be at least 1, got {config.api.max_retries}")
        if not config.api.editor_name:
            errors.append("api.editor_name is required but not set")

    if config.lanes is None:
        errors.append("lanes configuration is required but not set")
    else:
        if not config.lanes.zoom_styles:
            errors.append("lanes.zoom_styles must not be empty")
        if config.lanes.split_zoom < 0 or config.lanes.split_zoom > 22:
            errors.append(f"lanes.split_zoom must be between 0 and 22, got {config.lanes.split_zoom}")
        if config.lanes.view_min_zoom < 0 or config.lanes.view_min_zoom > 22:
            errors.append(f"lanes.view_min_zoom must be between 0 and 22, got {config.lanes.view_min_zoom}")
        overlap = config.lanes.major_highways & config.lanes.minor_highways
        if overlap:
            errors.append(f"highway values are both major and minor: {sorted(overlap)}")
        offsets = [config.lanes.zoom_styles[z].offset_major for z in sorted(config.lanes.zoom_styles)]
        if offsets != sorted(offsets):
            errors.append("lanes.zoom_styles offsets must not decrease with zoom")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
