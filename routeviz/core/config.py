# routeviz/core/config.py
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Route Visualizer API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Graph selected when the query string does not name one
    DEFAULT_GRAPH: str = "amsterdam-roads"
    # Pathfinder selected when the query string does not name one
    DEFAULT_FINDER: str = "nba"

    # Dataset name -> OSMnx place string
    GRAPH_PLACES: Dict[str, str] = {
        "amsterdam-roads": "Amsterdam, Netherlands",
        "milan-roads": "Milan, Italy",
        "seattle-roads": "Seattle, Washington, USA",
        "tokyo-roads": "Chiyoda, Tokyo, Japan",
    }
    # Projected graphs are cached here as GraphML after the first download
    GRAPH_CACHE_DIR: str = "data/graphs"
    LOAD_GRAPH_ON_STARTUP: bool = True

    # Nearest-point search: initial radius (graph units, metres once projected)
    NEAREST_POINT_RADIUS: float = 2000.0
    # Radius doubles on every empty query; give up after this many tries
    NEAREST_POINT_MAX_ITERATIONS: int = 32

    # Report spatial index build progress every N points
    INDEX_PROGRESS_STEP: int = 500

    # Number of rendered routes kept in PathInfo.svg_paths
    ROUTE_HISTORY_LIMIT: int = 5


settings = Settings()
