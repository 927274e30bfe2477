import asyncio
import inspect
import importlib
import importlib.util
import logging
import sys
from dataclasses import dataclass, field, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..core import (
    CoGherkinError,
    ConfigManager,
    ConfigurationError,
    MissingStepDefinition,
    ScenarioNotFound,
    ScenarioRun,
    ScenarioStatus,
    StepExecutionFailure,
    StepStatus,
)
from ..gherkin import Feature, Scenario, Step, parse_feature_content, parse_feature_file
from .debug_utils import StepDebugger
from .hooks import HooksRegistry, global_hooks
from .step_definitions import StepRegistry, global_registry

logger = logging.getLogger(__name__)


def _step_record(step: Step, status: StepStatus, **extra: Any) -> Dict[str, Any]:
    record = {
        'keyword': step.keyword,
        'name': step.text,
        'line': step.line,
        'status': status.value,
    }
    record.update(extra)
    return record


async def execute_steps(
        steps: Sequence[Step],
        scenario_name: str,
        registry: Optional[StepRegistry] = None,
        step_results: Optional[List[Dict[str, Any]]] = None,
        dry_run: bool = False,
) -> None:
    """
    Run steps strictly in order, awaiting each handler before the next.

    Each handler receives the captured pattern groups, then the step's data
    table (if any), then its doc-string (if any). The first undefined or
    failing step raises and the remaining steps are not run.

    Args:
        steps: Steps to run
        scenario_name: Label used in error messages
        registry: Registry to resolve steps against (global by default)
        step_results: When given, one record per step is appended to it
        dry_run: Resolve every step without invoking handlers

    Raises:
        MissingStepDefinition: A step has no matching definition
        StepExecutionFailure: A handler raised
    """
    if registry is None:
        registry = global_registry

    undefined: List[MissingStepDefinition] = []

    for position, step in enumerate(steps):
        start_time = datetime.now().isoformat()
        step_match = registry.find_step(step.text)

        if step_match is None:
            error = MissingStepDefinition(step.keyword, step.text, scenario_name, StepDebugger.snippet(step))
            if step_results is not None:
                step_results.append(_step_record(
                    step, StepStatus.UNDEFINED, error=str(error), snippet=error.snippet, start_time=start_time,
                ))
            if dry_run:
                undefined.append(error)
                continue
            _skip_remaining(steps[position + 1:], step_results)
            logger.error(str(error))
            raise error

        arguments = list(step_match.arguments)
        if step.data_table is not None:
            arguments.append(step.data_table)
        if step.docstring is not None:
            arguments.append(step.docstring)

        if dry_run:
            if step_results is not None:
                step_results.append(_step_record(step, StepStatus.SKIPPED, start_time=start_time))
            continue

        logger.debug(f"Executing step: {step.full_text}")
        try:
            result = step_match.function(*arguments)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            failure = StepExecutionFailure(step.keyword, step.text, scenario_name, e)
            if step_results is not None:
                step_results.append(_step_record(
                    step, StepStatus.FAILED, error=str(failure), start_time=start_time,
                    end_time=datetime.now().isoformat(),
                ))
            _skip_remaining(steps[position + 1:], step_results)
            logger.error(str(failure))
            raise failure from e

        if step_results is not None:
            step_results.append(_step_record(
                step, StepStatus.PASSED, start_time=start_time, end_time=datetime.now().isoformat(),
            ))

    if undefined:
        raise undefined[0]


def _skip_remaining(steps: Sequence[Step], step_results: Optional[List[Dict[str, Any]]]) -> None:
    if step_results is not None:
        step_results.extend(_step_record(step, StepStatus.SKIPPED) for step in steps)


async def run_scenario(
        feature: Feature,
        scenario: Scenario,
        registry: Optional[StepRegistry] = None,
        run: Optional[ScenarioRun] = None,
        dry_run: bool = False,
) -> ScenarioRun:
    """
    Run the feature's background, then the scenario's own steps.

    The returned ScenarioRun ends PASSED; on failure it is left FAILED and
    the error propagates.
    """
    if run is None:
        run = ScenarioRun(name=scenario.name, tags=list(scenario.tags))

    try:
        if feature.background:
            run.status = ScenarioStatus.RUNNING_BACKGROUND
            try:
                await execute_steps(
                    feature.background, f"{scenario.name} (Background)",
                    registry=registry, step_results=run.steps, dry_run=dry_run,
                )
            except CoGherkinError:
                _skip_remaining(scenario.steps, run.steps)
                raise

        run.status = ScenarioStatus.RUNNING_STEPS
        await execute_steps(scenario.steps, scenario.name, registry=registry, step_results=run.steps, dry_run=dry_run)
    except CoGherkinError as e:
        run.fail(e)
        raise

    run.status = ScenarioStatus.PASSED
    return run


async def execute_scenario(
        feature_content: str,
        scenario_name: str,
        registry: Optional[StepRegistry] = None,
) -> ScenarioRun:
    """Parse ``feature_content`` and run the scenario named exactly ``scenario_name``"""
    feature = parse_feature_content(feature_content)
    scenario = feature.get_scenario(scenario_name)

    if scenario is None:
        raise ScenarioNotFound(scenario_name)

    return await run_scenario(feature, scenario, registry=registry)


@dataclass
class RunnerConfig:
    """Configuration for FeatureRunner"""
    features_dir: str = "features"
    steps: List[str] = field(default_factory=list)
    fail_fast: bool = False
    dry_run: bool = False
    report_formats: List[str] = field(default_factory=list)
    output_dir: str = "test-results"

    @classmethod
    def from_config_manager(cls, manager: ConfigManager) -> 'RunnerConfig':
        runner = manager.get_section('runner')
        reporter = manager.get_section('reporter')
        return cls(
            features_dir=runner.get('features_dir', cls.features_dir),
            steps=list(runner.get('steps') or []),
            fail_fast=bool(runner.get('fail_fast', False)),
            dry_run=bool(runner.get('dry_run', False)),
            report_formats=list(reporter.get('formats') or []),
            output_dir=reporter.get('output_dir', cls.output_dir),
        )


class FeatureRunner:
    """
    Runs feature files against a step registry, with lifecycle hooks and
    per-scenario isolation: a failing scenario is recorded and the next one
    still runs (unless fail_fast is set).
    """

    def __init__(self, config: Optional[Union[Dict, RunnerConfig]] = None,
                 registry: Optional[StepRegistry] = None,
                 hooks: Optional[HooksRegistry] = None):
        if isinstance(config, dict):
            known = {f.name for f in fields(RunnerConfig)}
            self.config = RunnerConfig(**{k: v for k, v in config.items() if k in known})
        else:
            self.config = config or RunnerConfig()

        self.registry = registry if registry is not None else global_registry
        self.hooks = hooks if hooks is not None else global_hooks
        self._report_collector = None

        if self.config.steps:
            self.load_step_modules(self.config.steps)

    @property
    def report_collector(self):
        if self._report_collector is None:
            from .report_collector import ReportCollector
            self._report_collector = ReportCollector(self.config.output_dir)
        return self._report_collector

    def load_step_modules(self, modules: Sequence[str]) -> None:
        """
        Import step modules (dotted names or .py paths) so their decorators register.

        Module-level decorators register on ``global_registry``, so modules can
        only be loaded for a runner that resolves steps against it.

        Raises:
            ConfigurationError: The runner was given its own registry
            FileNotFoundError: A .py path does not exist
            ImportError: A module cannot be imported
        """
        if self.registry is not global_registry:
            raise ConfigurationError(
                "Step modules register on the global registry; "
                "register steps on the runner's own registry directly instead"
            )

        for module in modules:
            path = Path(module)
            if module.endswith('.py') or path.is_file():
                if not path.is_file():
                    raise FileNotFoundError(f"Step module not found: {module}")
                name = f"co_gherkin_steps_{abs(hash(str(path.resolve())))}"
                spec = importlib.util.spec_from_file_location(name, path)
                if spec is None or spec.loader is None:
                    raise ImportError(f"Cannot load step module: {module}")
                loaded = importlib.util.module_from_spec(spec)
                sys.modules[name] = loaded
                spec.loader.exec_module(loaded)
            else:
                importlib.import_module(module)
            logger.info(f"Loaded step definitions from {module}")

        logger.info(f"Registered {len(self.registry.get_all())} step definitions")

    async def execute_feature(self, feature_path: Union[str, Path, Feature]) -> Dict[str, Any]:
        """Execute a single feature file (or an already parsed Feature)"""
        if isinstance(feature_path, Feature):
            feature = feature_path
            file_name = None
        else:
            path = Path(feature_path).resolve()
            feature = parse_feature_file(path)
            file_name = str(path)

        logger.info(f"Executing feature: {feature.name}")
        result = {
            'feature': feature.name,
            'file': file_name,
            'tags': list(feature.tags),
            'scenarios': [],
            'start_time': datetime.now().isoformat(),
            'status': 'passed',
        }

        try:
            await self.hooks.run_hooks('before_feature')
        except Exception as e:
            logger.error(f"before_feature hook failed for '{feature.name}': {e}")
            result['status'] = 'failed'
            result['error'] = f"before_feature hook failed: {e}"
            result['end_time'] = datetime.now().isoformat()
            return result

        stop = False
        try:
            for scenario in feature.scenarios:
                if stop:
                    result['scenarios'].append(self._skipped_scenario(feature, scenario))
                    continue

                scenario_result = await self._execute_scenario(feature, scenario)
                result['scenarios'].append(scenario_result)

                if scenario_result['status'] == 'failed':
                    result['status'] = 'failed'
                    stop = self.config.fail_fast
        finally:
            try:
                await self.hooks.run_hooks('after_feature')
            except Exception as e:
                logger.error(f"after_feature hook failed for '{feature.name}': {e}")
                result['status'] = 'failed'
                result['error'] = f"after_feature hook failed: {e}"
            result['end_time'] = datetime.now().isoformat()

        return result

    async def _execute_scenario(self, feature: Feature, scenario: Scenario) -> Dict[str, Any]:
        """Execute a single scenario, recording rather than raising failures"""
        run = ScenarioRun(name=scenario.name, tags=list(scenario.tags))

        try:
            await self.hooks.run_hooks('before_scenario')
        except Exception as e:
            logger.error(f"before_scenario hook failed for '{scenario.name}': {e}")
            run.steps.extend(_step_record(step, StepStatus.SKIPPED) for step in (feature.background or []))
            run.steps.extend(_step_record(step, StepStatus.SKIPPED) for step in scenario.steps)
            run.error = f"before_scenario hook failed: {e}"
            run.status = ScenarioStatus.FAILED
            return run.to_dict()

        try:
            await run_scenario(feature, scenario, registry=self.registry, run=run, dry_run=self.config.dry_run)
        except CoGherkinError as e:
            logger.info(f"Scenario failed: {scenario.name}")
            logger.debug(str(e))
        finally:
            try:
                await self.hooks.run_hooks('after_scenario')
            except Exception as e:
                logger.error(f"after_scenario hook failed for '{scenario.name}': {e}")
                if run.error is None:
                    run.error = f"after_scenario hook failed: {e}"
                if not run.status.is_terminal:
                    run.status = ScenarioStatus.FAILED

        scenario_result = run.to_dict()
        if run.status is ScenarioStatus.PASSED and run.error is not None:
            scenario_result['status'] = 'failed'
        return scenario_result

    @staticmethod
    def _skipped_scenario(feature: Feature, scenario: Scenario) -> Dict[str, Any]:
        steps = list(feature.background or []) + list(scenario.steps)
        return {
            'name': scenario.name,
            'tags': list(scenario.tags),
            'steps': [_step_record(step, StepStatus.SKIPPED) for step in steps],
            'status': 'skipped',
            'start_time': None,
            'end_time': None,
            'duration': 0.0,
        }

    async def execute_features(self, feature_paths: Sequence[Union[str, Path]]) -> Dict[str, Any]:
        """Execute features one after another and summarise"""
        results = {
            'features': [],
            'summary': {
                'features': 0,
                'total': 0,
                'passed': 0,
                'failed': 0,
                'skipped': 0,
            },
            'start_time': datetime.now().isoformat(),
        }

        for feature_path in feature_paths:
            feature_result = await self.execute_feature(feature_path)
            results['features'].append(feature_result)

            summary = results['summary']
            summary['features'] += 1
            for scenario in feature_result['scenarios']:
                summary['total'] += 1
                summary[scenario['status']] += 1

            if self.config.fail_fast and feature_result['status'] == 'failed':
                break

        results['end_time'] = datetime.now().isoformat()
        results['status'] = 'failed' if any(f['status'] == 'failed' for f in results['features']) else 'passed'

        report_paths = []
        for report_format in self.config.report_formats:
            report_paths.append(self.report_collector.generate_report(results, report_format))
        if report_paths:
            results['report_paths'] = report_paths

        return results

    def execute_directory(self, feature_dir: Union[str, Path]) -> Dict[str, Any]:
        """Execute all feature files in a directory"""
        feature_dir = Path(feature_dir)
        if not feature_dir.exists():
            raise FileNotFoundError(f"Feature directory not found: {feature_dir}")

        feature_files = sorted(feature_dir.glob('**/*.feature'))
        logger.info(f"Found {len(feature_files)} feature files in {feature_dir}")
        return asyncio.run(self.execute_features(feature_files))

    def execute(self, input_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute feature files

        Args:
            input_data: Dict with 'feature_path' or 'feature_dir'

        Returns:
            Execution results
        """
        feature_path = input_data.get('feature_path')
        if feature_path:
            return asyncio.run(self.execute_features([feature_path]))
        return self.execute_directory(input_data.get('feature_dir', self.config.features_dir))
