#!/usr/bin/env python3
"""
Tests for course content loading.
"""

import json
import re

import pytest

from cellcoach.cli import BUNDLED_COURSE
from cellcoach.errors import StageLoadError, UnknownStageError
from cellcoach.execution import (
    LiteralMatch,
    LiteralMatchAll,
    NoExpectation,
    StructuredSpec,
    load_course,
    load_stages,
)


def _content(*stages):
    return {'stages': list(stages)}


class TestLoadStages:
    """Tests for building stages from parsed content"""

    def test_multi_cell_stage(self):
        """Test cells keep their order, starter code and expectations"""
        course = load_stages(_content({
            'id': 1,
            'title': 'Basics',
            'hints': ['h1'],
            'cells': [
                {'title': 'one', 'starterCode': 'x = 1\n'},
                {'title': 'two', 'starterCode': 'print(x)\n', 'expectedOutput': '1'},
                {'title': 'three', 'expectedOutput': ['a', 'b']},
            ],
        }))
        stage = course.get_stage(1)

        assert [cell.index for cell in stage.cells] == [0, 1, 2]
        assert stage.cells[0].source == 'x = 1\n'
        assert isinstance(stage.cells[0].expected, NoExpectation)
        assert stage.cells[1].expected == LiteralMatch('1')
        assert stage.cells[2].expected == LiteralMatchAll(('a', 'b'))
        assert stage.cells[2].source == '# Your code here\n'
        assert stage.hints == ['h1']

    def test_stage_without_cells_is_single_cell(self):
        """Test a stage with no cells becomes one cell built from the stage"""
        course = load_stages(_content({
            'id': 'loops',
            'challenge': 'Print 1 to 3',
            'starterCode': '# loop here\n',
            'solution': 'for i in range(1, 4):\n    print(i)\n',
            'validation': {'codePatterns': ['for\\s+\\w+'], 'outputPatterns': ['1.*2.*3']},
        }))
        stage = course.get_stage('loops')

        assert stage.is_single_cell
        assert stage.cells[0].source == '# loop here\n'
        assert stage.cells[0].instruction == 'Print 1 to 3'
        assert stage.solution_for(0).startswith('for i')
        assert stage.rules.code_patterns[0].flags & re.IGNORECASE

    def test_validation_takes_precedence(self):
        """Test a cell's validation spec wins over its expectedOutput"""
        course = load_stages(_content({
            'id': 1,
            'cells': [{
                'expectedOutput': 'ignored',
                'validation': {'requiredNumbers': [42], 'requiredText': ['Result'],
                               'outputPatterns': ['result']},
            }],
        }))
        expected = course.get_stage(1).cells[0].expected

        assert isinstance(expected, StructuredSpec)
        assert expected.spec.required_numbers == [42.0]
        assert expected.spec.required_text == ['Result']
        assert expected.spec.output_patterns[0].search('RESULT')

    def test_stage_lookup_by_string_id(self):
        """Test numeric ids can be looked up with their string form"""
        course = load_stages(_content({'id': 2, 'cells': [{}]}))
        assert course.get_stage('2').id == 2

    def test_unknown_stage(self):
        """Test looking up a missing id raises UnknownStageError"""
        course = load_stages(_content({'id': 1, 'cells': [{}]}))
        with pytest.raises(UnknownStageError):
            course.get_stage(99)

    def test_next_stage(self):
        """Test stages are ordered as in the content"""
        course = load_stages(_content({'id': 1}, {'id': 2}))
        assert course.next_stage(course.get_stage(1)).id == 2
        assert course.next_stage(course.get_stage(2)) is None


class TestLoadErrors:
    """Tests for content problems reported at load time"""

    def test_bad_regex(self):
        """Test a malformed pattern names the stage and pattern"""
        with pytest.raises(StageLoadError) as exc_info:
            load_stages(_content({'id': 7, 'validation': {'codePatterns': ['(unclosed']}}))
        assert 'stage 7' in str(exc_info.value)
        assert '(unclosed' in str(exc_info.value)

    def test_bad_cell_regex(self):
        """Test a malformed cell pattern names the cell"""
        with pytest.raises(StageLoadError) as exc_info:
            load_stages(_content({'id': 1, 'cells': [{}, {'validation': {'outputPatterns': ['[']}}]}))
        assert 'cell 1' in str(exc_info.value)

    def test_duplicate_ids(self):
        """Test two stages with the same id are rejected"""
        with pytest.raises(StageLoadError):
            load_stages(_content({'id': 1}, {'id': '1'}))

    def test_missing_id(self):
        """Test a stage without an id is rejected"""
        with pytest.raises(StageLoadError):
            load_stages(_content({'title': 'no id'}))

    def test_missing_stages_list(self):
        """Test content without a stages list is rejected"""
        with pytest.raises(StageLoadError):
            load_stages({'title': 'empty'})

    def test_non_numeric_required_numbers(self):
        """Test requiredNumbers must hold numbers"""
        with pytest.raises(StageLoadError):
            load_stages(_content({'id': 1, 'cells': [{'validation': {'requiredNumbers': ['many']}}]}))


class TestLoadCourse:
    """Tests for reading content files"""

    def test_load_from_file(self, tmp_path):
        """Test a JSON file on disk loads into a course"""
        path = tmp_path / 'course.json'
        path.write_text(json.dumps({'title': 'Mini', 'stages': [{'id': 1, 'cells': [{}]}]}))

        course = load_course(path)

        assert course.title == 'Mini'
        assert course.stage_ids == [1]

    def test_invalid_json(self, tmp_path):
        """Test malformed JSON raises StageLoadError"""
        path = tmp_path / 'course.json'
        path.write_text('{"stages": [')
        with pytest.raises(StageLoadError):
            load_course(path)

    def test_missing_file(self, tmp_path):
        """Test an unreadable file raises StageLoadError"""
        with pytest.raises(StageLoadError):
            load_course(tmp_path / 'nope.json')

    def test_bundled_course(self):
        """Test the bundled course loads"""
        course = load_course(BUNDLED_COURSE)
        assert course.stage_ids == [1, 2, 3, 4, 5]
        assert len(course.get_stage(1).cells) == 3
        assert course.get_stage(2).is_single_cell
