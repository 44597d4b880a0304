#!/usr/bin/env python3
"""
Tests for the cellcoach command line entry point.
"""

import json
import logging

from cellcoach import config
from cellcoach.cli import main


class TestCLI:
    """Tests for the non-interactive CLI modes"""

    def teardown_method(self):
        root = logging.getLogger()
        for handler in [h for h in root.handlers if h.get_name() == 'cellcoach-rich']:
            root.removeHandler(handler)
        root.setLevel(logging.WARNING)

    def test_list_bundled_course(self, capsys):
        """Test --list prints the bundled course's stages"""
        assert main(['--list']) == 0
        assert 'Stages' in capsys.readouterr().out

    def test_check(self, capsys):
        """Test --check reports stage and cell counts"""
        assert main(['--check']) == 0
        assert 'stage(s)' in capsys.readouterr().out

    def test_verify_bundled_course(self):
        """Test --verify passes for the bundled course"""
        assert main(['--verify']) == 0

    def test_verify_reports_failures(self, tmp_path, capsys):
        """Test a solution that fails its own check makes --verify fail"""
        course = tmp_path / 'course.json'
        course.write_text(json.dumps({'stages': [{
            'id': 1,
            'starterCode': 'print(1)\n',
            'expectedOutput': '2',
            'solution': 'print(1)\n',
        }]}))

        assert main([str(course), '--verify']) == 1
        assert 'fail with their reference solution' in capsys.readouterr().out

    def test_missing_course(self, tmp_path, capsys):
        """Test an unreadable course file is reported"""
        assert main([str(tmp_path / 'missing.json'), '--check']) == 1
        assert 'Error' in capsys.readouterr().out

    def test_empty_course(self, tmp_path):
        """Test a course without stages is rejected"""
        course = tmp_path / 'empty.json'
        course.write_text(json.dumps({'stages': []}))
        assert main([str(course), '--list']) == 1

    def test_config_assignment_persists(self):
        """Test --config stores the value in the config file"""
        assert main(['--config', 'step_limit=500']) == 0
        assert config.get_config_value('step_limit') == 500

    def test_bad_config_assignment(self):
        """Test an unknown setting is rejected"""
        assert main(['--config', 'colour=blue']) == 2
        assert config.load_config() == {}
