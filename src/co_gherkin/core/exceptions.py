class CoGherkinError(Exception):
    """Base exception for co-gherkin"""
    pass


class ConfigurationError(CoGherkinError):
    """Configuration-related errors"""
    pass


class ParseAnomaly(UserWarning):
    """A construct the parser dropped instead of attaching (logged, never raised)"""

    def __init__(self, message: str, line: int = 0):
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)


class ScenarioNotFound(CoGherkinError):
    """Requested scenario does not exist in the feature"""

    def __init__(self, scenario_name: str):
        self.scenario_name = scenario_name
        super().__init__(f'Scenario "{scenario_name}" not found in feature content')


class MissingStepDefinition(CoGherkinError):
    """No registered step definition matches a step"""

    def __init__(self, keyword: str, text: str, scenario_name: str, snippet: str = ""):
        self.keyword = keyword
        self.text = text
        self.scenario_name = scenario_name
        self.snippet = snippet
        message = f'Missing step definition for "{keyword} {text}" in scenario "{scenario_name}"'
        if snippet:
            message += f"\n\nAdd this step definition:\n{snippet}"
        super().__init__(message)


class StepExecutionFailure(CoGherkinError):
    """A step handler raised; wraps the original error with step context"""

    def __init__(self, keyword: str, text: str, scenario_name: str, original: BaseException):
        self.keyword = keyword
        self.text = text
        self.scenario_name = scenario_name
        self.original = original
        super().__init__(
            f'Step failed: "{keyword} {text}" in scenario "{scenario_name}"\n'
            f"Error: {type(original).__name__}: {original}"
        )
