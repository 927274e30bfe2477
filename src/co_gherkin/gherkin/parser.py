import re
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Union

from ..core.exceptions import ParseAnomaly
from .expander import OutlineExpander
from .model import ExamplesTable, Feature, Scenario, Step, StepType
from .paths import resolve_feature_path

logger = logging.getLogger(__name__)

STEP_PATTERN = re.compile(r"^(\*|Given|When|Then|And|But)\s+(.+)$")
DOCSTRING_FENCES = ('"""', '```')


class FeatureParser:
    """
    Line-oriented parser for feature documents.

    A single forward scan classifies each line, in this order: doc-string
    fence or content, comment or blank, tag line, ``Feature:``,
    ``Background:``, ``Scenario:``/``Scenario Outline:``, ``Examples:``,
    table row, step line. Anything else is free text: it becomes the feature
    description while still directly under ``Feature:`` and is ignored
    elsewhere.

    Malformed constructs (orphan table rows or doc-strings, outlines that
    never get an examples table) are logged as parse anomalies and dropped;
    ``parse`` always returns a best-effort ``Feature``.

    Example:
        feature = FeatureParser().parse(text)
    """

    def __init__(self, expander: Optional[OutlineExpander] = None):
        self.expander = expander or OutlineExpander()
        self._reset()

    def _reset(self) -> None:
        self.feature = Feature()
        self.anomalies: List[ParseAnomaly] = []
        self._background: List[Step] = []
        self._description: List[str] = []
        self._in_description = False
        self._is_background = False
        self._is_outline = False
        self._current: Optional[Scenario] = None
        self._template: Optional[Scenario] = None
        self._examples: Optional[ExamplesTable] = None
        self._example_count = 0
        self._pending_tags: List[str] = []
        self._doc_fence: Optional[str] = None
        self._doc_lines: List[str] = []
        self._doc_start = 0

    def parse(self, content: str) -> Feature:
        """
        Parse feature document text.

        Args:
            content: Full document content

        Returns:
            Feature with every scenario outline already expanded
        """
        self._reset()

        for number, raw_line in enumerate(content.splitlines(), start=1):
            self._parse_line(raw_line, number)

        self._finish()
        return self.feature

    # Line classification

    def _parse_line(self, raw_line: str, number: int) -> None:
        line = raw_line.strip()

        if self._doc_fence is not None:
            if line.startswith(self._doc_fence):
                self._close_docstring()
            else:
                self._doc_lines.append(raw_line)
            return

        if not line or line.startswith('#'):
            return

        is_table_row = line.startswith('|')
        if not is_table_row:
            # Another Examples: block, possibly tagged, may follow for the same outline
            self._close_examples(keep_template=line.startswith(('Examples:', '@')))

        if line.startswith(DOCSTRING_FENCES):
            self._in_description = False
            self._doc_fence = line[:3]
            self._doc_lines = []
            self._doc_start = number
            return

        if line.startswith('@'):
            self._in_description = False
            self._pending_tags.extend(tag.lstrip('@') for tag in line.split() if tag.startswith('@'))
            return

        if line.startswith('Feature:'):
            self.feature.name = line[len('Feature:'):].strip()
            self.feature.tags = self._take_tags()
            self._in_description = True
            return

        if line.startswith('Background:'):
            self._in_description = False
            self._commit_scenario()
            self._abandon_template(number)
            self._is_background = True
            self._is_outline = False
            return

        if line.startswith('Scenario Outline:') or line.startswith('Scenario:'):
            self._start_scenario(line, number)
            return

        if line.startswith('Examples:'):
            self._open_examples(number)
            return

        if is_table_row:
            self._table_row(line, number)
            return

        match = STEP_PATTERN.match(line)
        if match:
            self._in_description = False
            self._add_step(match.group(1), match.group(2), number)
            return

        if self._in_description:
            self._description.append(line)

    # Sections

    def _take_tags(self) -> List[str]:
        tags, self._pending_tags = self._pending_tags, []
        return tags

    def _start_scenario(self, line: str, number: int) -> None:
        self._in_description = False
        self._commit_scenario()
        self._abandon_template(number)
        self._is_background = False

        is_outline = line.startswith('Scenario Outline:')
        prefix = 'Scenario Outline:' if is_outline else 'Scenario:'
        scenario = Scenario(name=line[len(prefix):].strip(), tags=self._take_tags(), line=number)

        self._is_outline = is_outline
        if is_outline:
            self._template = scenario
            self._example_count = 0
        else:
            self._current = scenario

    def _commit_scenario(self) -> None:
        if self._current is not None:
            self.feature.scenarios.append(self._current)
            self._current = None

    def _abandon_template(self, number: int) -> None:
        """Drop an outline whose examples never arrived"""
        if self._template is not None:
            if self._example_count == 0:
                self._anomaly(
                    f"Scenario Outline '{self._template.name}' discarded: no Examples table",
                    number,
                )
            self._template = None

    def _open_examples(self, number: int) -> None:
        self._in_description = False
        if self._template is None:
            self._anomaly("Examples: without a Scenario Outline", number)
        # Tags on an Examples block are not carried to the next header
        self._take_tags()
        self._examples = ExamplesTable(line=number)

    def _close_examples(self, keep_template: bool = False) -> None:
        """Expand the outline once its examples table ends"""
        if self._examples is None:
            return

        examples, self._examples = self._examples, None
        if self._template is None:
            return

        scenarios = self.expander.expand(self._template, examples, start_index=self._example_count + 1)
        self._example_count += len(scenarios)
        self.feature.scenarios.extend(scenarios)

        if not keep_template:
            self._template = None

    # Steps and step arguments

    def _active_steps(self) -> Optional[List[Step]]:
        if self._is_background:
            return self._background
        if self._is_outline:
            return self._template.steps if self._template is not None else None
        if self._current is not None:
            return self._current.steps
        return None

    def _add_step(self, keyword: str, text: str, number: int) -> None:
        steps = self._active_steps()
        if steps is None:
            self._anomaly(f"Step '{keyword} {text}' outside of a scenario or background", number)
            return
        steps.append(Step(keyword=keyword, type=StepType(keyword), text=text, line=number))

    def _table_row(self, line: str, number: int) -> None:
        cells = [cell.strip() for cell in line.split('|')[1:-1]]

        if self._examples is not None:
            if not self._examples.headers:
                self._examples.headers = cells
            elif len(cells) != len(self._examples.headers):
                self._anomaly(
                    f"Examples row has {len(cells)} cells, expected {len(self._examples.headers)}",
                    number,
                )
            else:
                self._examples.rows.append(cells)
            return

        steps = self._active_steps()
        if not steps:
            self._anomaly("Table row with no preceding step", number)
            return

        last = steps[-1]
        table = list(last.data_table) if last.data_table else []
        if table and len(cells) != len(table[0]):
            self._anomaly(f"Data table row has {len(cells)} cells, expected {len(table[0])}", number)
            return
        table.append(cells)
        steps[-1] = replace(last, data_table=table)

    def _close_docstring(self) -> None:
        docstring = '\n'.join(self._doc_lines)
        self._doc_fence = None
        self._doc_lines = []

        steps = self._active_steps()
        if not steps:
            self._anomaly("Doc-string with no preceding step", self._doc_start)
            return
        steps[-1] = replace(steps[-1], docstring=docstring)

    def _finish(self) -> None:
        if self._doc_fence is not None:
            self._anomaly("Unterminated doc-string", self._doc_start)
            self._doc_fence = None

        self._close_examples()
        self._commit_scenario()
        self._abandon_template(0)

        self.feature.description = '\n'.join(self._description)
        self.feature.background = self._background or None

    def _anomaly(self, message: str, line: int) -> None:
        anomaly = ParseAnomaly(message, line)
        self.anomalies.append(anomaly)
        logger.warning(f"Parse anomaly: {anomaly}")


def parse_feature_content(content: str) -> Feature:
    """Parse feature document text into a Feature"""
    return FeatureParser().parse(content)


def parse_feature_file(feature_path: Union[str, Path], caller_file: Optional[str] = None) -> Feature:
    """Read and parse a .feature file; relative paths resolve against the caller"""
    path = resolve_feature_path(feature_path, caller_file)
    if not path.exists():
        raise FileNotFoundError(f"Feature file not found: {path}")

    logger.debug(f"Parsing feature file: {path}")
    return parse_feature_content(path.read_text(encoding='utf-8'))
