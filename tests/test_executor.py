import pytest
import asyncio
import json
from unittest.mock import AsyncMock, Mock
from co_gherkin.core import (
    ConfigurationError,
    MissingStepDefinition,
    ScenarioNotFound,
    ScenarioStatus,
    StepExecutionFailure,
)
from co_gherkin.executor import (
    FeatureRunner,
    HooksRegistry,
    RunnerConfig,
    StepRegistry,
    execute_scenario,
    execute_steps,
    global_registry,
)
from co_gherkin.gherkin import Step, StepType, parse_feature_content


def _steps(*texts):
    return [Step(keyword="Given", type=StepType.GIVEN, text=text, line=index + 1)
            for index, text in enumerate(texts)]


@pytest.fixture
def registry():
    return StepRegistry()


@pytest.fixture
def hooks():
    return HooksRegistry()


class TestRunnerConfig:
    """Test RunnerConfig class"""

    def test_default_config(self):
        """Test default configuration values"""
        config = RunnerConfig()
        assert config.features_dir == "features"
        assert config.steps == []
        assert config.fail_fast is False
        assert config.dry_run is False
        assert config.report_formats == []
        assert config.output_dir == "test-results"

    def test_from_dict(self, registry):
        """Test dict configuration keeps known keys only"""
        runner = FeatureRunner({'fail_fast': True, 'browser': 'ignored'}, registry=registry)
        assert runner.config.fail_fast is True


class TestExecuteSteps:
    """Test sequential step execution"""

    @pytest.mark.asyncio
    async def test_steps_run_in_order(self, registry):
        """Test every step runs once, in document order"""
        calls = []
        registry.given("step {int}", lambda n: calls.append(n))

        await execute_steps(_steps("step 1", "step 2", "step 3"), "S", registry=registry)

        assert calls == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_async_handlers_awaited_in_turn(self, registry):
        """Test an async step finishes before the next step starts"""
        calls = []

        async def slow(n):
            await asyncio.sleep(0.01)
            calls.append(f"slow {n}")

        registry.given("slow {int}", slow)
        registry.given("fast {int}", lambda n: calls.append(f"fast {n}"))

        await execute_steps(_steps("slow 1", "fast 2", "slow 3"), "S", registry=registry)

        assert calls == ["slow 1", "fast 2", "slow 3"]

    @pytest.mark.asyncio
    async def test_arguments_table_and_docstring(self, registry):
        """Test handlers get captures, then table, then doc-string"""
        handler = Mock()
        registry.given("I post to {string}", handler)
        step = Step(keyword="Given", type=StepType.GIVEN, text='I post to "/users"',
                    data_table=[["name"], ["ann"]], docstring='{"a": 1}')

        await execute_steps([step], "S", registry=registry)

        handler.assert_called_once_with("/users", [["name"], ["ann"]], '{"a": 1}')

    @pytest.mark.asyncio
    async def test_missing_step_stops_execution(self, registry):
        """Test an undefined step raises before later steps run"""
        later = Mock()
        registry.given("done", later)
        results = []

        with pytest.raises(MissingStepDefinition) as exc_info:
            await execute_steps(_steps("I fly", "done"), "Flying", registry=registry, step_results=results)

        assert "I fly" in str(exc_info.value)
        assert "Flying" in str(exc_info.value)
        assert "@given('I fly')" in str(exc_info.value)
        later.assert_not_called()
        assert [r['status'] for r in results] == ['undefined', 'skipped']

    @pytest.mark.asyncio
    async def test_failing_step_wrapped(self, registry):
        """Test handler errors are wrapped with step context"""
        registry.given("it breaks", Mock(side_effect=AssertionError("nope")))
        registry.given("after", Mock())
        results = []

        with pytest.raises(StepExecutionFailure) as exc_info:
            await execute_steps(_steps("it breaks", "after"), "Broken", registry=registry, step_results=results)

        error = exc_info.value
        assert "it breaks" in str(error)
        assert "Broken" in str(error)
        assert "nope" in str(error)
        assert isinstance(error.__cause__, AssertionError)
        assert [r['status'] for r in results] == ['failed', 'skipped']

    @pytest.mark.asyncio
    async def test_dry_run(self, registry):
        """Test dry runs resolve every step without calling handlers"""
        handler = Mock()
        registry.given("known", handler)
        results = []

        with pytest.raises(MissingStepDefinition) as exc_info:
            await execute_steps(_steps("unknown one", "known", "unknown two"), "S",
                                registry=registry, step_results=results, dry_run=True)

        handler.assert_not_called()
        assert exc_info.value.text == "unknown one"
        assert [r['status'] for r in results] == ['undefined', 'skipped', 'undefined']

    @pytest.mark.asyncio
    async def test_empty_steps(self, registry):
        """Test an empty list is a no-op"""
        await execute_steps([], "S", registry=registry)


class TestExecuteScenario:
    """Test scenario execution from document text"""

    FEATURE = """
Feature: Calculator
  Background:
    Given I start with 10

  Scenario: Add
    When I add 5
    Then the total is 15

  Scenario Outline: Add many
    When I add <n>
    Then the total is <total>
    Examples:
      | n | total |
      | 1 | 11    |
      | 2 | 12    |
      | 3 | 13    |
"""

    @pytest.fixture
    def calculator(self, registry):
        state = {}
        calls = []

        @registry.given("I start with {int}")
        def start(value):
            calls.append("start")
            state['total'] = value

        @registry.when("I add {int}")
        async def add(value):
            calls.append("add")
            state['total'] += value

        @registry.then("the total is {int}")
        def check(value):
            calls.append("check")
            assert state['total'] == value

        return calls

    @pytest.mark.asyncio
    async def test_background_runs_first(self, registry, calculator):
        """Test background steps run before the scenario's own"""
        run = await execute_scenario(self.FEATURE, "Add", registry=registry)

        assert calculator == ["start", "add", "check"]
        assert run.status is ScenarioStatus.PASSED
        assert [s['name'] for s in run.steps] == ["I start with 10", "I add 5", "the total is 15"]

    @pytest.mark.asyncio
    async def test_expanded_outline_scenarios(self, registry, calculator):
        """Test each expanded example runs by its generated name"""
        for index in (1, 2, 3):
            run = await execute_scenario(self.FEATURE, f"Add many (Example {index})", registry=registry)
            assert run.status is ScenarioStatus.PASSED

    @pytest.mark.asyncio
    async def test_scenario_not_found(self, registry):
        """Test unknown scenario names raise"""
        with pytest.raises(ScenarioNotFound, match="Missing"):
            await execute_scenario(self.FEATURE, "Missing", registry=registry)

    @pytest.mark.asyncio
    async def test_outline_template_name_not_runnable(self, registry):
        """Test the bare outline name is not a scenario"""
        with pytest.raises(ScenarioNotFound):
            await execute_scenario(self.FEATURE, "Add many", registry=registry)

    @pytest.mark.asyncio
    async def test_background_failure_labelled(self, registry):
        """Test failures in the background name the background"""
        registry.given("I start with {int}", Mock(side_effect=RuntimeError("no power")))

        with pytest.raises(StepExecutionFailure) as exc_info:
            await execute_scenario(self.FEATURE, "Add", registry=registry)

        assert "Add (Background)" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_failed_assertion(self, registry, calculator):
        """Test a failing Then step surfaces the assertion"""
        feature = "Feature: F\nScenario: Wrong\nGiven I start with 1\nThen the total is 2\n"

        with pytest.raises(StepExecutionFailure) as exc_info:
            await execute_scenario(feature, "Wrong", registry=registry)

        assert isinstance(exc_info.value.original, AssertionError)


class TestFeatureRunner:
    """Test FeatureRunner"""

    FEATURE = """
@suite
Feature: Runner
  Scenario: Good
    Given it works
  Scenario: Bad
    Given it breaks
  Scenario: Also good
    Given it works
"""

    @pytest.fixture
    def runner(self, registry, hooks):
        registry.given("it works", lambda: None)
        registry.given("it breaks", Mock(side_effect=RuntimeError("broken")))
        return FeatureRunner(registry=registry, hooks=hooks)

    @pytest.fixture
    def feature_file(self, tmp_path):
        path = tmp_path / "runner.feature"
        path.write_text(self.FEATURE)
        return path

    @pytest.mark.asyncio
    async def test_scenarios_isolated(self, runner, feature_file):
        """Test a failing scenario does not stop the next one"""
        result = await runner.execute_feature(feature_file)

        assert result['feature'] == "Runner"
        assert result['tags'] == ["suite"]
        assert [s['status'] for s in result['scenarios']] == ['passed', 'failed', 'passed']
        assert result['status'] == 'failed'
        assert "broken" in result['scenarios'][1]['error']

    @pytest.mark.asyncio
    async def test_fail_fast(self, runner, feature_file):
        """Test fail_fast skips the rest after a failure"""
        runner.config.fail_fast = True

        result = await runner.execute_feature(feature_file)

        assert [s['status'] for s in result['scenarios']] == ['passed', 'failed', 'skipped']

    @pytest.mark.asyncio
    async def test_hooks_called(self, runner, hooks, feature_file):
        """Test hooks run around the feature and each scenario"""
        before_scenario = AsyncMock()
        after_scenario = Mock()
        before_feature = Mock()
        after_feature = Mock()
        hooks.register('before_scenario', before_scenario)
        hooks.register('after_scenario', after_scenario)
        hooks.register('before_feature', before_feature)
        hooks.register('after_feature', after_feature)

        await runner.execute_feature(feature_file)

        assert before_scenario.await_count == 3
        assert after_scenario.call_count == 3
        before_feature.assert_called_once()
        after_feature.assert_called_once()

    @pytest.mark.asyncio
    async def test_before_scenario_failure(self, runner, hooks):
        """Test a failing before_scenario hook fails just that scenario"""
        hooks.register('before_scenario', Mock(side_effect=[RuntimeError("setup"), None]))
        feature = parse_feature_content("Feature: F\nScenario: A\nGiven it works\nScenario: B\nGiven it works\n")

        result = await runner.execute_feature(feature)

        assert [s['status'] for s in result['scenarios']] == ['failed', 'passed']
        assert result['scenarios'][0]['steps'][0]['status'] == 'skipped'
        assert "setup" in result['scenarios'][0]['error']

    @pytest.mark.asyncio
    async def test_before_feature_failure(self, runner, hooks, feature_file):
        """Test a failing before_feature hook skips the feature"""
        hooks.register('before_feature', Mock(side_effect=RuntimeError("no db")))

        result = await runner.execute_feature(feature_file)

        assert result['status'] == 'failed'
        assert result['scenarios'] == []
        assert "no db" in result['error']

    @pytest.mark.asyncio
    async def test_summary(self, runner, feature_file):
        """Test execute_features counts scenarios"""
        results = await runner.execute_features([feature_file])

        assert results['summary'] == {'features': 1, 'total': 3, 'passed': 2, 'failed': 1, 'skipped': 0}
        assert results['status'] == 'failed'

    def test_execute_directory(self, runner, tmp_path):
        """Test every .feature file under a directory runs"""
        (tmp_path / "nested").mkdir()
        (tmp_path / "a.feature").write_text("Feature: A\nScenario: S\nGiven it works\n")
        (tmp_path / "nested" / "b.feature").write_text("Feature: B\nScenario: S\nGiven it works\n")

        results = runner.execute({'feature_dir': str(tmp_path)})

        assert [f['feature'] for f in results['features']] == ["A", "B"]
        assert results['status'] == 'passed'

    def test_execute_directory_missing(self, runner, tmp_path):
        """Test a missing directory raises"""
        with pytest.raises(FileNotFoundError):
            runner.execute_directory(tmp_path / "nope")

    def test_reports_written(self, runner, feature_file, tmp_path):
        """Test configured report formats are written"""
        runner.config.report_formats = ['json', 'junit']
        runner.config.output_dir = str(tmp_path / "reports")

        results = runner.execute({'feature_path': str(feature_file)})

        assert len(results['report_paths']) == 2
        with open(results['report_paths'][0]) as f:
            assert json.load(f)['summary']['total'] == 3


class TestLoadStepModules:
    """Test importing step modules"""

    @pytest.fixture(autouse=True)
    def clean_registry(self):
        global_registry.clear()
        yield
        global_registry.clear()

    @pytest.fixture
    def steps_file(self, tmp_path):
        module = tmp_path / "my_steps.py"
        module.write_text(
            "from co_gherkin import given\n"
            "given('hello', lambda: None)\n"
        )
        return module

    @pytest.mark.asyncio
    async def test_load_from_path_and_run(self, steps_file, hooks, tmp_path):
        """Test steps loaded from a .py path resolve when the feature runs"""
        feature = tmp_path / "hello.feature"
        feature.write_text("Feature: F\nScenario: S\nGiven hello\n")

        runner = FeatureRunner({'steps': [str(steps_file)]}, hooks=hooks)
        result = await runner.execute_feature(feature)

        assert runner.registry is global_registry
        assert result['status'] == 'passed'

    def test_own_registry_rejects_step_modules(self, steps_file, registry):
        """Test step modules cannot be loaded for a runner with its own registry"""
        with pytest.raises(ConfigurationError):
            FeatureRunner({'steps': [str(steps_file)]}, registry=registry)

        assert global_registry.get_all() == []

    def test_missing_file(self):
        """Test a missing .py step module raises"""
        with pytest.raises(FileNotFoundError):
            FeatureRunner({'steps': ['does/not/exist.py']})

    def test_package_directory_imported_by_name(self, tmp_path, monkeypatch):
        """Test a package directory in the cwd is imported as a module, not read as a file"""
        package = tmp_path / "pkg_steps_dir"
        package.mkdir()
        (package / "__init__.py").write_text(
            "from co_gherkin import then\n"
            "then('from a package', lambda: None)\n"
        )
        monkeypatch.chdir(tmp_path)
        monkeypatch.syspath_prepend(str(tmp_path))

        FeatureRunner({'steps': ['pkg_steps_dir']})

        assert global_registry.find_step("from a package") is not None

    def test_unknown_module(self):
        """Test an unknown dotted module raises ImportError"""
        with pytest.raises(ImportError):
            FeatureRunner({'steps': ['no_such_steps_module_xyz']})
