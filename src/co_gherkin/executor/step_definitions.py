import re
import inspect
from typing import Dict, List, Callable, Pattern, Optional, Any, Union, Tuple
from dataclasses import dataclass, field
import logging

from ..gherkin.model import StepType

logger = logging.getLogger(__name__)

StepHandler = Callable[..., Any]
StepPattern = Union[str, Pattern]


def _unescape(value: str) -> str:
    return re.sub(r'\\(.)', r'\1', value)


# Placeholder -> (regex, converter)
PLACEHOLDERS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    'string': (r'"((?:[^"\\]|\\.)*)"', _unescape),
    'int': (r'([-+]?\d+)', int),
    'float': (r'([-+]?\d*\.\d+)', float),
    'word': (r'([^\s]+)', str),
}

_PLACEHOLDER_RE = re.compile(r'\{(' + '|'.join(PLACEHOLDERS) + r')\}')


def compile_expression(expression: str) -> Tuple[Pattern, Dict[str, Callable[[str], Any]]]:
    """
    Turn a step expression into an anchored regex.

    Placeholders become named groups so their converters stay aligned with
    the right capture even when the expression also carries plain regex
    groups. Text outside the placeholders is used as regex source unchanged.

    Returns:
        The compiled pattern and a map of group name -> converter
    """
    converters: Dict[str, Callable[[str], Any]] = {}

    def _placeholder(match: re.Match) -> str:
        kind = match.group(1)
        name = f"_p{len(converters)}"
        regex, converter = PLACEHOLDERS[kind]
        converters[name] = converter
        # Re-express the placeholder's single group as a named group
        return regex.replace('(', f'(?P<{name}>', 1)

    source = _PLACEHOLDER_RE.sub(_placeholder, expression)
    return re.compile(f'^{source}$'), converters


@dataclass
class StepDefinition:
    """Represents a step definition with its pattern and function"""
    keyword: StepType
    pattern: Pattern
    function: StepHandler
    converters: Dict[str, Callable[[str], Any]] = field(default_factory=dict)
    expression: Optional[str] = None

    @property
    def source(self) -> str:
        return self.expression if self.expression is not None else self.pattern.pattern

    def match(self, step_text: str) -> Optional['StepMatch']:
        """Match the full step text; returns the converted arguments"""
        if self.expression is not None:
            match = self.pattern.match(step_text)
        else:
            # Caller-supplied patterns are used as given; anchor them yourself
            match = self.pattern.search(step_text)
        if not match:
            return None
        return StepMatch(self, self._arguments(match))

    def _arguments(self, match: re.Match) -> List[Any]:
        names = {index: name for name, index in match.re.groupindex.items()}
        arguments = []
        for index, value in enumerate(match.groups(), start=1):
            converter = self.converters.get(names.get(index))
            if converter is not None and value is not None:
                value = converter(value)
            arguments.append(value)
        return arguments


@dataclass
class StepMatch:
    """A resolved step: the definition plus its captured arguments"""
    definition: StepDefinition
    arguments: List[Any]

    @property
    def function(self) -> StepHandler:
        return self.definition.function


class StepRegistry:
    """
    Ordered registry of step definitions.

    Definitions are never replaced or deduplicated: lookups scan in
    registration order and the first match wins.
    """

    def __init__(self):
        self.definitions: List[StepDefinition] = []

    def register(self, step_type: Union[StepType, str], pattern: StepPattern,
                 function: StepHandler) -> StepDefinition:
        """Add a step definition to registry"""
        if isinstance(pattern, str):
            compiled, converters = compile_expression(pattern)
            definition = StepDefinition(
                keyword=StepType(step_type),
                pattern=compiled,
                function=function,
                converters=converters,
                expression=pattern,
            )
        else:
            definition = StepDefinition(
                keyword=StepType(step_type),
                pattern=pattern,
                function=function,
            )

        self.definitions.append(definition)
        logger.debug(f"Registered step: {definition.keyword} {definition.source}")
        return definition

    def find_step(self, step_text: str) -> Optional[StepMatch]:
        """Find the first definition matching the full step text"""
        logger.debug(f"Finding step: [{step_text}] among {len(self.definitions)} definitions")

        for definition in self.definitions:
            step_match = definition.match(step_text)
            if step_match is not None:
                logger.debug(f"Found matching step definition: {definition.source}")
                return step_match

        logger.debug(f"No step definition found for: [{step_text}]")
        return None

    def clear(self):
        """Clear all registered definitions"""
        self.definitions.clear()

    def get_all(self) -> List[StepDefinition]:
        """Live list of registered definitions"""
        return self.definitions

    def list_definitions(self) -> List[Dict[str, str]]:
        """List all registered step definitions"""
        return [
            {
                'keyword': defn.keyword.value,
                'pattern': defn.source,
                'function': getattr(defn.function, '__name__', repr(defn.function)),
                'location': _location(defn.function),
            }
            for defn in self.definitions
        ]

    def _decorator(self, step_type: StepType, pattern: StepPattern,
                   function: Optional[StepHandler]):
        if function is not None:
            self.register(step_type, pattern, function)
            return function

        def decorator(func):
            self.register(step_type, pattern, func)
            return func

        return decorator

    def given(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register a Given step (decorator or direct call)"""
        return self._decorator(StepType.GIVEN, pattern, function)

    def when(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register a When step (decorator or direct call)"""
        return self._decorator(StepType.WHEN, pattern, function)

    def then(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register a Then step (decorator or direct call)"""
        return self._decorator(StepType.THEN, pattern, function)

    def and_(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register an And step (decorator or direct call)"""
        return self._decorator(StepType.AND, pattern, function)

    def but(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register a But step (decorator or direct call)"""
        return self._decorator(StepType.BUT, pattern, function)

    def step(self, pattern: StepPattern, function: Optional[StepHandler] = None):
        """Register a step for any keyword"""
        return self._decorator(StepType.ANY, pattern, function)


def _location(function: StepHandler) -> str:
    try:
        filename = inspect.getsourcefile(function)
        _, line = inspect.getsourcelines(function)
    except (TypeError, OSError):
        return ""
    return f"{filename}:{line}"


# Process-wide default registry. Isolated runs should build their own
# StepRegistry or call global_registry.clear() between runs.
global_registry = StepRegistry()


def given(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register a Given step on the global registry"""
    return global_registry.given(pattern, function)


def when(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register a When step on the global registry"""
    return global_registry.when(pattern, function)


def then(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register a Then step on the global registry"""
    return global_registry.then(pattern, function)


def and_(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register an And step on the global registry"""
    return global_registry.and_(pattern, function)


def but(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register a But step on the global registry"""
    return global_registry.but(pattern, function)


def step(pattern: StepPattern, function: Optional[StepHandler] = None):
    """Register a keyword-agnostic step on the global registry"""
    return global_registry.step(pattern, function)


Given = given
When = when
Then = then
And = and_
But = but
