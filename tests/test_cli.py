"""
Tests for the command line, user configuration and output helpers.
"""

import csv
import json
from datetime import datetime

import pytest

from conftest import build_signature, build_thumbnail
from shotsieve.__main__ import main as package_main
from shotsieve.app import create_parser as create_serve_parser
from shotsieve.app import main as serve_main
from shotsieve.cli import CLIOrchestrator, parse_arguments, prompt_for_directory
from shotsieve.models import GroupState
from shotsieve.user_config import get_user_config
from shotsieve.utils import (
    export_groups,
    format_capture_time,
    format_number,
    format_span,
    format_time_estimate,
    validate_directory,
    validate_preset,
    validate_settings,
    validate_window,
)
from shotsieve.utils.validators import window_hint


def _scan_args(folder, temp_dir, *extra):
    return [
        str(folder),
        '--db', str(temp_dir / 'cli.db'),
        '--trash-dir', str(temp_dir / 'trash'),
        '--no-progress',
        '--no-faces',
        *extra,
    ]


def _groups():
    first = [
        build_thumbnail('/p/a.jpg', minutes_ago=0, signature=build_signature(sharpness=1.0)),
        build_thumbnail('/p/b.jpg', minutes_ago=1, signature=build_signature(sharpness=2.0)),
    ]
    first[1].is_best = True
    first[1].is_checked = True
    first[0].is_in_bucket = True
    second = [
        build_thumbnail('/p/c.jpg', minutes_ago=200),
        build_thumbnail('/p/d.jpg', minutes_ago=201, retained=True),
    ]
    return [GroupState(first, is_processed=True), GroupState(second)]


class TestArgumentParsing:
    """Test CLI argument parsing."""

    def test_defaults(self):
        """Unset options default to None so user config applies."""
        args = parse_arguments(['/photos'])
        assert str(args.directory) == '/photos'
        assert args.window is None
        assert args.preset is None
        assert args.export_format == 'txt'
        assert not args.no_cache

    def test_options(self):
        """Grouping options are parsed."""
        args = parse_arguments(['/photos', '-W', '30', '-p', 'strict', '--no-cache', '-r'])
        assert args.window == 30
        assert args.preset == 'strict'
        assert args.no_cache
        assert args.no_recursive

    def test_invalid_preset(self):
        """Unknown presets are rejected by argparse."""
        with pytest.raises(SystemExit):
            parse_arguments(['/photos', '--preset', 'fuzzy'])

    def test_serve_parser(self):
        """The serve command has its own options."""
        args = create_serve_parser().parse_args(['/photos', '--port', '8080', '--no-browser'])
        assert args.port == 8080
        assert args.no_browser
        assert args.window is None


class TestScanCommand:
    """Test the scan workflow end to end."""

    def test_reports_groups(self, photo_folder, temp_dir, capsys):
        """The burst is reported as a group."""
        exit_code = CLIOrchestrator().run(_scan_args(photo_folder, temp_dir))
        out = capsys.readouterr().out

        assert exit_code == 0
        assert "SIMILAR PHOTO REPORT" in out
        assert "Group 1 (2 photos" in out
        assert "burst_1.jpg" in out
        assert "other.jpg" not in out
        assert "[BEST]" in out

    def test_export_csv(self, photo_folder, temp_dir):
        """Groups are exported to CSV."""
        export = temp_dir / 'groups.csv'
        exit_code = CLIOrchestrator().run(
            _scan_args(photo_folder, temp_dir, '-e', str(export), '--export-format', 'csv')
        )

        assert exit_code == 0
        with open(export, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 2
        assert {row['group_id'] for row in rows} == {'1'}

    def test_scan_does_not_change_anything(self, photo_folder, temp_dir):
        """Scanning leaves the photos and the quota alone."""
        orchestrator = CLIOrchestrator()
        orchestrator.run(_scan_args(photo_folder, temp_dir))

        assert (photo_folder / 'burst_2.jpg').exists()
        assert orchestrator.engine.used_quota == 0
        assert len(orchestrator.db.retention) == 0

    def test_missing_directory(self, temp_dir):
        """A missing folder fails validation."""
        assert CLIOrchestrator().run(_scan_args(temp_dir / 'missing', temp_dir)) == 1

    def test_empty_directory(self, temp_dir):
        """A folder without photos exits with an error."""
        empty = temp_dir / 'empty'
        empty.mkdir()
        assert CLIOrchestrator().run(_scan_args(empty, temp_dir)) == 1

    def test_export_path_is_directory(self, photo_folder, temp_dir):
        """Exporting onto a directory is refused."""
        assert CLIOrchestrator().run(_scan_args(photo_folder, temp_dir, '-e', str(temp_dir))) == 1

    def test_prompts_for_directory(self, photo_folder, temp_dir, monkeypatch):
        """Without a directory argument the user is asked for one."""
        monkeypatch.setattr('builtins.input', lambda prompt: str(photo_folder))
        args = _scan_args(photo_folder, temp_dir)[1:]
        assert CLIOrchestrator().run(args) == 0


class TestPromptForDirectory:
    """Test the interactive folder prompt."""

    def test_retries_until_valid(self, photo_folder, monkeypatch, capsys):
        """Empty and missing paths are asked again; quotes are stripped."""
        answers = iter(['', '/definitely/missing', f'"{photo_folder}"'])
        monkeypatch.setattr('builtins.input', lambda prompt: next(answers))

        assert prompt_for_directory() == photo_folder
        out = capsys.readouterr().out
        assert "Please enter a valid path." in out
        assert "Directory not found" in out


class TestPackageMain:
    """Test the python -m shotsieve dispatcher."""

    def test_no_arguments(self, capsys):
        """No command prints usage and fails."""
        assert package_main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_help(self):
        """Help succeeds."""
        assert package_main(['--help']) == 0

    def test_unknown_command(self, capsys):
        """Unknown commands fail."""
        assert package_main(['tidy']) == 1
        assert "Unknown command" in capsys.readouterr().err

    def test_config_show(self, capsys):
        """config prints the effective settings."""
        assert package_main(['config']) == 0
        out = capsys.readouterr().out
        assert "not found" in out
        assert "window_minutes: 60" in out

    def test_config_init(self, isolated_user_config):
        """config --init writes an example file."""
        assert package_main(['config', '--init']) == 0
        data = json.loads((isolated_user_config / 'config.json').read_text())
        assert data['preset'] == 'standard'

    def test_scan_dispatch(self, photo_folder, temp_dir):
        """scan runs the CLI workflow."""
        assert package_main(['scan', *_scan_args(photo_folder, temp_dir)]) == 0

    def test_serve_bad_directory(self, temp_dir, capsys):
        """serve refuses a missing folder before starting a server."""
        assert serve_main([str(temp_dir / 'missing'), '--db', str(temp_dir / 's.db')]) == 1
        assert "Error" in capsys.readouterr().err


class TestUserConfig:
    """Test user configuration sources."""

    def test_defaults(self):
        """Without file or environment the built-in defaults apply."""
        config = get_user_config()
        assert config.window_minutes == 60
        assert config.preset == 'standard'
        assert config.daily_limit == 3
        assert config.detect_faces is True
        assert config.cache_max_age_days == 30

    def test_file_values(self, isolated_user_config):
        """Values from config.json override defaults."""
        isolated_user_config.mkdir(parents=True, exist_ok=True)
        (isolated_user_config / 'config.json').write_text(
            json.dumps({'window_minutes': 120, 'preset': 'loose', 'db_file': '/tmp/x.db'})
        )
        config = get_user_config()
        config.reload()

        assert config.window_minutes == 120
        assert config.preset == 'loose'
        assert config.db_file == '/tmp/x.db'

    def test_environment_wins(self, isolated_user_config, monkeypatch):
        """Environment variables override the file."""
        isolated_user_config.mkdir(parents=True, exist_ok=True)
        (isolated_user_config / 'config.json').write_text(json.dumps({'daily_limit': 5}))
        monkeypatch.setenv('SHOTSIEVE_DAILY_LIMIT', '7')
        monkeypatch.setenv('SHOTSIEVE_DETECT_FACES', 'false')
        config = get_user_config()
        config.reload()

        assert config.daily_limit == 7
        assert config.detect_faces is False

    def test_invalid_number_falls_back(self, monkeypatch):
        """Garbage numbers use the default."""
        monkeypatch.setenv('SHOTSIEVE_WINDOW_MINUTES', 'lots')
        assert get_user_config().window_minutes == 60

    def test_malformed_file_is_ignored(self, isolated_user_config):
        """A broken config file falls back to defaults."""
        isolated_user_config.mkdir(parents=True, exist_ok=True)
        (isolated_user_config / 'config.json').write_text('{not json')
        config = get_user_config()
        config.reload()
        assert config.preset == 'standard'

    def test_as_dict(self):
        """Every setting is listed."""
        assert set(get_user_config().as_dict()) == {
            'window_minutes', 'preset', 'daily_limit', 'detect_faces',
            'use_mtime_fallback', 'cache_max_age_days', 'db_file', 'trash_dir',
        }


class TestValidators:
    """Test input validators."""

    def test_directory(self, temp_dir):
        """Existing folders pass, files and missing paths fail."""
        assert validate_directory(str(temp_dir)) == (True, "")
        assert not validate_directory('')[0]
        assert "not found" in validate_directory(str(temp_dir / 'missing'))[1]

        file_path = temp_dir / 'file.txt'
        file_path.write_text('x')
        assert "not a directory" in validate_directory(str(file_path))[1]

    @pytest.mark.parametrize("value,valid", [
        (90, True), (5, True), ('45', True), (30.0, True),
        ('soon', False), (True, False), (1.5, False), (None, False),
    ])
    def test_window(self, value, valid):
        """Whole numbers pass, anything else fails."""
        assert validate_window(value)[0] is valid

    def test_preset(self):
        """Known preset names pass."""
        assert validate_preset('extra_loose') == (True, "")
        assert not validate_preset('Standard')[0]

    def test_settings(self):
        """A settings update needs a known key with a valid value."""
        assert validate_settings({'window_minutes': 30})[0]
        assert validate_settings({'preset': 'strict', 'window_minutes': 90})[0]
        assert not validate_settings({})[0]
        assert not validate_settings([])[0]

    def test_window_hint(self):
        """The hint names the clamp range."""
        assert window_hint() == "15-240 minutes"


class TestFormatters:
    """Test output formatting helpers."""

    def test_format_number(self):
        assert format_number(1234567) == '1,234,567'

    @pytest.mark.parametrize("seconds,expected", [
        (45, '45s'), (150, '2m 30s'), (3665, '1h 1m'),
    ])
    def test_format_time_estimate(self, seconds, expected):
        assert format_time_estimate(seconds) == expected

    def test_format_capture_time(self):
        """Capture times print to the second; unknown ones as undated."""
        assert format_capture_time(datetime(2024, 5, 1, 14, 3, 9)) == '2024-05-01 14:03:09'
        assert format_capture_time(None) == 'undated'

    def test_format_span(self):
        """Spans start at the earlier time, in either argument order."""
        early = datetime(2024, 5, 1, 14, 3, 0)
        late = datetime(2024, 5, 1, 14, 5, 5)
        assert format_span(late, early) == '2024-05-01 14:03 (+2m 5s)'
        assert format_span(None, late) == 'undated'


class TestExporters:
    """Test group exports."""

    def test_txt(self, temp_dir):
        """TXT lists each member with its decision marker."""
        output = temp_dir / 'groups.txt'
        export_groups(_groups(), output, 'txt')
        text = output.read_text(encoding='utf-8')

        assert text.startswith("SIMILAR PHOTO GROUPS")
        assert "Group 1: 2 photos (finalized)" in text
        assert "[DISCARD] /p/a.jpg" in text
        assert "[BEST] /p/b.jpg" in text
        assert "(retained)" in text

    def test_csv(self, temp_dir):
        """CSV has one row per member."""
        output = temp_dir / 'groups.csv'
        export_groups(_groups(), output, 'csv')
        with open(output, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))

        assert [row['path'] for row in rows] == ['/p/a.jpg', '/p/b.jpg', '/p/c.jpg', '/p/d.jpg']
        assert [row['status'] for row in rows] == ['discard', 'keep', 'undecided', 'undecided']
        assert rows[1]['is_best'] == '1'
        assert rows[3]['is_retained'] == '1'
        assert rows[2]['group_id'] == '2'

    def test_json(self, temp_dir):
        """JSON carries the group count and numbered groups."""
        output = temp_dir / 'groups.json'
        export_groups(_groups(), output, 'json')
        data = json.loads(output.read_text(encoding='utf-8'))

        assert data['group_count'] == 2
        assert [g['group_id'] for g in data['groups']] == [1, 2]
        assert data['groups'][0]['is_processed'] is True
        assert data['groups'][0]['items'][0]['id'] == '/p/a.jpg'

    def test_unsupported_format(self, temp_dir):
        """Unknown formats raise ValueError."""
        with pytest.raises(ValueError):
            export_groups(_groups(), temp_dir / 'groups.xml', 'xml')
