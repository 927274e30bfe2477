import re
import logging
from typing import Any, Dict, List

from ..gherkin.model import Step, StepType
from .step_definitions import StepRegistry

logger = logging.getLogger(__name__)

# Quoted strings, then decimals, then integers, each bounded by non-word text
_ARGUMENT_RE = re.compile(r'"(?:[^"\\]|\\.)*"|(?<![\w.])[-+]?\d*\.\d+(?![\w.])|(?<![\w.])[-+]?\d+(?![\w.])')
_REGEX_SPECIAL_RE = re.compile(r'([.^$*+?()\[\]{}|\\])')

_DECORATORS = {
    StepType.GIVEN: 'given',
    StepType.WHEN: 'when',
    StepType.THEN: 'then',
}


class StepDebugger:
    """Debug utilities for step matching"""

    @staticmethod
    def expression_for(text: str) -> Dict[str, Any]:
        """Derive a step expression and parameter names from literal step text"""
        parts = []
        params = []
        counts: Dict[str, int] = {}
        position = 0

        for match in _ARGUMENT_RE.finditer(text):
            token = match.group(0)
            if token.startswith('"'):
                kind = 'string'
            elif '.' in token:
                kind = 'float'
            else:
                kind = 'int'
            counts[kind] = counts.get(kind, 0) + 1
            params.append(f"{kind}{counts[kind]}")

            parts.append(_REGEX_SPECIAL_RE.sub(r'\\\1', text[position:match.start()]))
            parts.append('{' + kind + '}')
            position = match.end()

        parts.append(_REGEX_SPECIAL_RE.sub(r'\\\1', text[position:]))
        return {'expression': ''.join(parts), 'params': params}

    @staticmethod
    def snippet(step: Step) -> str:
        """Paste-ready step definition stub for an undefined step"""
        derived = StepDebugger.expression_for(step.text)
        params = list(derived['params'])
        if step.data_table is not None:
            params.append('table')
        if step.docstring is not None:
            params.append('docstring')

        decorator = _DECORATORS.get(StepType(step.type), 'step')
        return (
            f"@{decorator}({derived['expression']!r})\n"
            f"def step_impl({', '.join(params)}):\n"
            f"    raise NotImplementedError({('STEP: ' + step.full_text)!r})\n"
        )

    @staticmethod
    def explain(step_text: str, registry: StepRegistry) -> List[Dict[str, Any]]:
        """Report, for every registered definition, whether it matches ``step_text``"""
        report = []

        for index, definition in enumerate(registry.get_all()):
            entry = {
                'index': index,
                'keyword': definition.keyword.value,
                'pattern': definition.source,
                'matched': False,
                'arguments': None,
            }
            try:
                step_match = definition.match(step_text)
            except ValueError as e:
                entry['error'] = str(e)
                report.append(entry)
                continue

            if step_match is not None:
                entry['matched'] = True
                entry['arguments'] = step_match.arguments
            report.append(entry)

        matches = [entry for entry in report if entry['matched']]
        if len(matches) > 1:
            logger.info(
                f"{len(matches)} definitions match '{step_text}'; "
                f"the first registered ({matches[0]['pattern']}) wins"
            )
        return report
