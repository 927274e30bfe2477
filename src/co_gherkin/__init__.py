"""
co-gherkin - Gherkin feature documents executed against globally registered
step definitions: define steps once, run them from any feature.
"""

import logging
import os

__version__ = "0.1.0"
__author__ = "co-gherkin Contributors"

from .core import (
    CoGherkinError,
    ConfigManager,
    ConfigurationError,
    MissingStepDefinition,
    ParseAnomaly,
    ScenarioNotFound,
    ScenarioStatus,
    StepExecutionFailure,
)
from .gherkin import (
    Feature,
    Scenario,
    Step,
    StepType,
    parse_feature_content,
    parse_feature_file,
    resolve_feature_path,
)
from .executor import (
    FeatureRunner,
    HooksRegistry,
    RunnerConfig,
    StepRegistry,
    execute_scenario,
    execute_steps,
    global_hooks,
    global_registry,
    given,
    when,
    then,
    and_,
    but,
    step,
    before_feature,
    after_feature,
    before_scenario,
    after_scenario,
)
from .executor.step_definitions import Given, When, Then, And, But

logger = logging.getLogger(__name__)


def set_debug(enabled: bool = True) -> None:
    """Enable/disable debug logging for the whole package"""
    logger.setLevel(logging.DEBUG if enabled else logging.NOTSET)


if os.getenv("CO_GHERKIN_DEBUG"):
    set_debug(True)


__all__ = [
    "CoGherkinError",
    "ConfigManager",
    "ConfigurationError",
    "MissingStepDefinition",
    "ParseAnomaly",
    "ScenarioNotFound",
    "ScenarioStatus",
    "StepExecutionFailure",
    "Feature",
    "Scenario",
    "Step",
    "StepType",
    "parse_feature_content",
    "parse_feature_file",
    "resolve_feature_path",
    "FeatureRunner",
    "HooksRegistry",
    "RunnerConfig",
    "StepRegistry",
    "execute_scenario",
    "execute_steps",
    "global_hooks",
    "global_registry",
    "given",
    "when",
    "then",
    "and_",
    "but",
    "step",
    "Given",
    "When",
    "Then",
    "And",
    "But",
    "before_feature",
    "after_feature",
    "before_scenario",
    "after_scenario",
    "set_debug",
]
