"""Tests for the command line interface."""

import sys
import os
import json
import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import cli


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    # Handlers bound to captured streams would outlive the test
    monkeypatch.setattr(cli, 'setup_logging', lambda *args, **kwargs: None)


class TestParser:
    def test_move_arguments(self):
        args = cli.create_parser().parse_args(
            ['move', 'startpos', '--suggestion', 'e2e4', '--last-move', 'e7e5'])
        assert args.command == 'move'
        assert args.fen == 'startpos'
        assert args.suggestion == 'e2e4'
        assert args.last_move == 'e7e5'

    def test_serve_arguments(self):
        args = cli.create_parser().parse_args(['serve', '--port', '9000'])
        assert args.port == 9000
        assert args.host is None

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestCommands:
    def test_move_with_suggestion(self, capsys):
        assert not cli.main(['move', 'startpos', '--suggestion', 'E2-E4!!'])
        out = capsys.readouterr().out
        assert "Move: e2e4" in out
        assert "validated_direct" in out

    def test_move_verbose_dumps_decision(self, capsys):
        cli.main(['--verbose', 'move', 'startpos', '--suggestion', 'z9z9'])
        out = capsys.readouterr().out
        decision = json.loads(out[out.index('{'):])
        assert decision['validation'] == 'unvalidated'
        assert decision['move'] in decision['legal_moves']

    def test_move_bad_position(self, capsys):
        assert cli.main(['move', 'not a fen', '--suggestion', 'e2e4']) == 1
        assert "Error" in capsys.readouterr().out

    def test_validate(self, tmp_path, capsys):
        path = tmp_path / "board.json"
        path.write_text(json.dumps([
            {'piece': {'type': 'king', 'color': 'white'}, 'row': 7, 'col': 4},
            {'piece': {'type': 'king', 'color': 'black'}, 'row': 0, 'col': 4},
        ]))
        assert not cli.main(['validate', str(path)])
        assert "Board state is valid." in capsys.readouterr().out

    def test_validate_rejects(self, tmp_path, capsys):
        path = tmp_path / "board.json"
        path.write_text(json.dumps([]))
        assert cli.main(['validate', str(path)]) == 1
        assert "exactly 1 white king" in capsys.readouterr().out

    def test_validate_missing_file(self, tmp_path, capsys):
        assert cli.main(['validate', str(tmp_path / "missing.json")]) == 1

    def test_weights(self, capsys):
        assert not cli.main(['weights'])
        out = capsys.readouterr().out
        assert "version 0" in out
        assert "capture_value" in out

    def test_weights_reset(self, capsys):
        assert not cli.main(['weights', '--reset'])
        out = capsys.readouterr().out
        assert "persisted: True" in out
        assert "version 1" in out
