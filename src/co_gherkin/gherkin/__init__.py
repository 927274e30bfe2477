from .model import Step, StepType, Scenario, Feature, ExamplesTable, STEP_KEYWORDS
from .expander import OutlineExpander, expand_scenario_outline
from .parser import FeatureParser, parse_feature_content, parse_feature_file
from .paths import resolve_feature_path

__all__ = [
    "Step",
    "StepType",
    "Scenario",
    "Feature",
    "ExamplesTable",
    "STEP_KEYWORDS",
    "OutlineExpander",
    "expand_scenario_outline",
    "FeatureParser",
    "parse_feature_content",
    "parse_feature_file",
    "resolve_feature_path",
]
