from .base import (
    ScenarioStatus,
    StepStatus,
    ScenarioRun,
)
from .config import ConfigManager, DEFAULT_CONFIG
from .exceptions import (
    CoGherkinError,
    ConfigurationError,
    ParseAnomaly,
    ScenarioNotFound,
    MissingStepDefinition,
    StepExecutionFailure,
)

__all__ = [
    # Status tracking
    "ScenarioStatus",
    "StepStatus",
    "ScenarioRun",

    # Configuration
    "ConfigManager",
    "DEFAULT_CONFIG",

    # Exceptions
    "CoGherkinError",
    "ConfigurationError",
    "ParseAnomaly",
    "ScenarioNotFound",
    "MissingStepDefinition",
    "StepExecutionFailure",
]
