import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _as_bool(val: Optional[str], default: bool = False) -> bool:
    if val is None:
        return default
    return str(val).lower() in {"1", "true", "yes", "y", "on"}


def _as_list(val: Optional[str]) -> List[str]:
    if not val:
        return []
    return [v.strip() for v in val.split(",") if v.strip()]


def _as_int(val: Optional[str], default: int) -> int:
    try:
        return int(val) if val not in (None, "") else default
    except ValueError:
        return default


def _as_float(val: Optional[str], default: float) -> float:
    try:
        return float(val) if val not in (None, "") else default
    except ValueError:
        return default


@dataclass
class Settings:
    db_url: str = "sqlite:///relgraph.db"

    # Mirror graph store (Neo4j); disabled when no URI is set
    neo4j_uri: Optional[str] = None
    neo4j_user: Optional[str] = None
    neo4j_password: Optional[str] = None
    neo4j_database: str = "neo4j"

    # Store paging used by the snapshot loader and the consolidation engine
    page_size: int = 1000

    # Intro path defaults
    max_hops: int = 4
    max_paths: int = 10
    min_strength: float = 0.3

    # Web API
    cors_origins: List[str] = None

    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        cors_val = os.environ.get("RELGRAPH_CORS_ORIGINS", "*")
        cors_origins = ["*"] if cors_val.strip() == "*" else _as_list(cors_val)
        return cls(
            db_url=os.environ.get("RELGRAPH_DB_URL") or "sqlite:///relgraph.db",
            neo4j_uri=os.environ.get("RELGRAPH_NEO4J_URI") or os.environ.get("NEO4J_URI"),
            neo4j_user=os.environ.get("RELGRAPH_NEO4J_USER") or os.environ.get("NEO4J_USER"),
            neo4j_password=os.environ.get("RELGRAPH_NEO4J_PASSWORD")
            or os.environ.get("NEO4J_PASSWORD"),
            neo4j_database=os.environ.get("RELGRAPH_NEO4J_DATABASE", "neo4j"),
            page_size=_as_int(os.environ.get("RELGRAPH_PAGE_SIZE"), 1000),
            max_hops=_as_int(os.environ.get("RELGRAPH_MAX_HOPS"), 4),
            max_paths=_as_int(os.environ.get("RELGRAPH_MAX_PATHS"), 10),
            min_strength=_as_float(os.environ.get("RELGRAPH_MIN_STRENGTH"), 0.3),
            cors_origins=cors_origins,
            log_level=os.environ.get("RELGRAPH_LOG_LEVEL", "INFO").upper(),
            debug=_as_bool(os.environ.get("RELGRAPH_DEBUG"), False),
        )

    @property
    def mirror_enabled(self) -> bool:
        return bool(self.neo4j_uri)
