from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class StepType(str, Enum):
    """Keyword class of a step"""
    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    ANY = "*"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def _missing_(cls, value):
        # Accept "given", " THEN " and the like
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


STEP_KEYWORDS = tuple(step_type.value for step_type in StepType)


@dataclass(frozen=True)
class Step:
    """A single step line, with its optional data table and doc-string"""
    keyword: str
    type: StepType
    text: str
    data_table: Optional[List[List[str]]] = None
    docstring: Optional[str] = None
    line: int = 0

    @property
    def full_text(self) -> str:
        return f"{self.keyword} {self.text}"


@dataclass
class Scenario:
    name: str
    steps: List[Step] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    line: int = 0


@dataclass
class ExamplesTable:
    """Examples block of a scenario outline; only lives during parsing"""
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)
    line: int = 0


@dataclass
class Feature:
    name: str = ""
    description: str = ""
    scenarios: List[Scenario] = field(default_factory=list)
    background: Optional[List[Step]] = None
    tags: List[str] = field(default_factory=list)

    def get_scenario(self, name: str) -> Optional[Scenario]:
        """First scenario whose name matches exactly"""
        for scenario in self.scenarios:
            if scenario.name == name:
                return scenario
        return None

    @property
    def step_count(self) -> int:
        return sum(len(scenario.steps) for scenario in self.scenarios)
