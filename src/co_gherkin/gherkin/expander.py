import re
from dataclasses import replace
from typing import Dict, List, Optional

from .model import ExamplesTable, Scenario, Step


class OutlineExpander:
    """
    Expands a scenario outline template into concrete scenarios, one per
    examples row.

    Every ``<header>`` occurrence in step text, data table cells and
    doc-strings is replaced by the row's value for that column. All headers
    are substituted in a single pass, so a value that itself looks like a
    placeholder is never substituted again.

    Example:
        expander = OutlineExpander()
        scenarios = expander.expand(template, examples)
    """

    def expand(self, template: Scenario, examples: ExamplesTable,
               start_index: int = 1) -> List[Scenario]:
        """
        Build the concrete scenarios for ``examples``.

        Args:
            template: The outline's scenario template
            examples: Headers and rows of the examples table
            start_index: Number used for the first row's "(Example N)" suffix

        Returns:
            One scenario per examples row, in row order
        """
        if not examples.rows:
            return []

        pattern = self._placeholder_pattern(examples.headers)
        scenarios = []

        for offset, row in enumerate(examples.rows):
            values = dict(zip(examples.headers, row))
            steps = [self._substitute_step(step, pattern, values) for step in template.steps]
            scenarios.append(Scenario(
                name=f"{template.name} (Example {start_index + offset})",
                steps=steps,
                tags=template.tags,
                line=template.line,
            ))

        return scenarios

    @staticmethod
    def _placeholder_pattern(headers: List[str]) -> Optional[re.Pattern]:
        if not headers:
            return None
        # Longest first so a header that prefixes another never shadows it
        names = sorted(set(headers), key=len, reverse=True)
        return re.compile("<(" + "|".join(re.escape(name) for name in names) + ")>")

    @staticmethod
    def _substitute(text: str, pattern: Optional[re.Pattern], values: Dict[str, str]) -> str:
        if pattern is None:
            return text
        return pattern.sub(lambda match: values.get(match.group(1), match.group(0)), text)

    def _substitute_step(self, step: Step, pattern: Optional[re.Pattern],
                         values: Dict[str, str]) -> Step:
        data_table = None
        if step.data_table is not None:
            data_table = [
                [self._substitute(cell, pattern, values) for cell in row]
                for row in step.data_table
            ]

        docstring = None
        if step.docstring is not None:
            docstring = self._substitute(step.docstring, pattern, values)

        return replace(
            step,
            text=self._substitute(step.text, pattern, values),
            data_table=data_table,
            docstring=docstring,
        )


def expand_scenario_outline(template: Scenario, examples: ExamplesTable,
                            start_index: int = 1) -> List[Scenario]:
    """Expand an outline template with the default expander"""
    return OutlineExpander().expand(template, examples, start_index)
