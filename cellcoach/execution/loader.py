#!/usr/bin/env python3
"""
Course content loading.

Reads the course JSON into Stage and Cell objects. Every regex is compiled
here, once, so a malformed pattern is reported when the course loads rather
than when a learner first runs the cell.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Union

from ..errors import StageLoadError, UnknownStageError
from .state import Cell, Stage, StageRules, ValidationSpec, make_expectation

logger = logging.getLogger(__name__)


DEFAULT_STARTER_CODE = '# Your code here\n'


@dataclass
class Course:
    """Ordered stages of one course"""
    stages: List[Stage] = field(default_factory=list)
    title: str = ''

    def get_stage(self, stage_id: Union[int, str]) -> Stage:
        """Look a stage up by id; '2' and 2 name the same stage"""
        for stage in self.stages:
            if str(stage.id) == str(stage_id):
                return stage
        raise UnknownStageError(stage_id)

    @property
    def stage_ids(self) -> List[Union[int, str]]:
        return [stage.id for stage in self.stages]

    def next_stage(self, stage: Stage) -> Optional[Stage]:
        position = self.stages.index(stage)
        if position + 1 < len(self.stages):
            return self.stages[position + 1]
        return None


def _compile(patterns, where: str) -> List[Pattern]:
    if patterns is None:
        return []
    if not isinstance(patterns, list):
        raise StageLoadError(f"{where}: patterns must be a list, got {type(patterns).__name__}")
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except (re.error, TypeError) as e:
            raise StageLoadError(f"{where}: invalid pattern {pattern!r}: {e}") from e
    return compiled


def _load_validation_spec(data: Optional[Dict], where: str) -> Optional[ValidationSpec]:
    if not data:
        return None

    spec = ValidationSpec()
    if 'outputPatterns' in data:
        spec.output_patterns = _compile(data['outputPatterns'], where)
    if 'requiredNumbers' in data:
        try:
            spec.required_numbers = [float(n) for n in data['requiredNumbers']]
        except (TypeError, ValueError) as e:
            raise StageLoadError(f"{where}: requiredNumbers must be numbers") from e
    if 'requiredText' in data:
        spec.required_text = [str(text) for text in data['requiredText']]
    return spec


def _load_cell(data: Dict, index: int, stage_id) -> Cell:
    where = f"stage {stage_id} cell {index}"
    starter = data.get('starterCode') or DEFAULT_STARTER_CODE
    expected = make_expectation(
        data.get('expectedOutput'),
        _load_validation_spec(data.get('validation'), where),
    )
    return Cell(
        index=index,
        source=starter,
        expected=expected,
        title=data.get('title', ''),
        instruction=data.get('instruction', ''),
        starter_code=starter,
    )


def load_stage(data: Dict) -> Stage:
    """Build one Stage from its JSON object"""
    if 'id' not in data:
        raise StageLoadError("stage is missing an 'id'")
    stage_id = data['id']
    where = f"stage {stage_id}"

    rules = None
    stage_validation = data.get('validation')
    if stage_validation:
        rules = StageRules(
            code_patterns=_compile(stage_validation.get('codePatterns'), where),
            output_patterns=_compile(stage_validation.get('outputPatterns'), where),
        )

    cells_data = data.get('cells')
    if cells_data:
        cells = [_load_cell(cell, i, stage_id) for i, cell in enumerate(cells_data)]
    else:
        # Single-cell stage: the stage itself is the cell
        cells = [_load_cell({
            'title': data.get('title', ''),
            'instruction': data.get('challenge', ''),
            'starterCode': data.get('starterCode'),
            'expectedOutput': data.get('expectedOutput'),
        }, 0, stage_id)]

    return Stage(
        id=stage_id,
        cells=cells,
        rules=rules,
        hints=list(data.get('hints') or []),
        title=data.get('title', ''),
        challenge=data.get('challenge', ''),
        solution=data.get('solution'),
    )


def load_stages(data: Dict) -> Course:
    """Build a Course from already-parsed content"""
    if not isinstance(data, dict) or not isinstance(data.get('stages'), list):
        raise StageLoadError("content must be an object with a 'stages' list")

    stages = []
    seen = set()
    for stage_data in data['stages']:
        stage = load_stage(stage_data)
        key = str(stage.id)
        if key in seen:
            raise StageLoadError(f"duplicate stage id {stage.id!r}")
        seen.add(key)
        stages.append(stage)

    logger.debug("Loaded %d stage(s)", len(stages))
    return Course(stages=stages, title=data.get('title', ''))


def load_course(path: Union[str, Path]) -> Course:
    """Read and parse a course content file"""
    path = Path(path)
    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise StageLoadError(f"cannot read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StageLoadError(f"{path} is not valid JSON: {e}") from e

    logger.info("Loading course from %s", path)
    return load_stages(data)
