"""Release decision engine: semantic version bumps from git history."""

from .config import EngineConfig, load_config
from .errors import BumpwiseError
from .models import AnalysisResult, Bump, Strategy
from .orchestrator import DecisionEngine, ReleaseDecision, StrategyArbiter
from .versioning import SemanticVersion, parse_version

__all__ = [
    "AnalysisResult",
    "Bump",
    "BumpwiseError",
    "DecisionEngine",
    "EngineConfig",
    "ReleaseDecision",
    "SemanticVersion",
    "Strategy",
    "StrategyArbiter",
    "load_config",
    "parse_version",
]

__version__ = "0.1.0"
