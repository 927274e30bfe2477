from .step_definitions import (
    StepDefinition,
    StepMatch,
    StepRegistry,
    compile_expression,
    global_registry,
    given,
    when,
    then,
    and_,
    but,
    step,
)
from .hooks import (
    HooksRegistry,
    global_hooks,
    before_feature,
    after_feature,
    before_scenario,
    after_scenario,
)
from .runner import (
    FeatureRunner,
    RunnerConfig,
    execute_steps,
    execute_scenario,
    run_scenario,
)
from .report_collector import ReportCollector
from .debug_utils import StepDebugger

__all__ = [
    'StepDefinition',
    'StepMatch',
    'StepRegistry',
    'compile_expression',
    'global_registry',
    'given',
    'when',
    'then',
    'and_',
    'but',
    'step',
    'HooksRegistry',
    'global_hooks',
    'before_feature',
    'after_feature',
    'before_scenario',
    'after_scenario',
    'FeatureRunner',
    'RunnerConfig',
    'execute_steps',
    'execute_scenario',
    'run_scenario',
    'ReportCollector',
    'StepDebugger',
]
