"""
Tests for the command line tools
"""

import json

import pytest

from mmr_processor.cli import main, output_path_for


@pytest.fixture
def config_path(tmp_path):
    return str(tmp_path / "config.json")


@pytest.fixture
def workbook_path(tmp_path, full_workbook):
    path = tmp_path / "PRJ006_MMR_July_2025.xlsx"
    path.write_bytes(full_workbook)
    return str(path)


class TestParseCommand:
    def test_parse_writes_report(self, config_path, workbook_path, capsys):
        assert main(['--config', config_path, 'parse', workbook_path]) == 0

        output = capsys.readouterr().out
        assert "File parsed successfully" in output
        assert "Confidence: 100%" in output
        assert "Milestone 2 delayed" in output

        with open(output_path_for(workbook_path), encoding='utf-8') as f:
            saved = json.load(f)
        assert saved['project_id'] == "PRJ006"
        assert saved['month'] == "July"

    def test_json_output(self, config_path, workbook_path, capsys):
        assert main(['--config', config_path, 'parse', workbook_path, '--output', 'json']) == 0
        result = json.loads(capsys.readouterr().out)

        assert result['success'] is True
        assert result['confidence'] == 100

    def test_unparseable_workbook(self, config_path, tmp_path, make_workbook, capsys):
        path = tmp_path / "notes.xlsx"
        path.write_bytes(make_workbook({"Notes": [["Random", "Notes"]]}))

        assert main(['--config', config_path, 'parse', str(path)]) == 1
        assert "No valid annexures found" in capsys.readouterr().out

    def test_missing_file(self, config_path, tmp_path, capsys):
        assert main(['--config', config_path, 'parse', str(tmp_path / "missing.xlsx")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_output_path(self):
        assert output_path_for("/data/PRJ001 March.xlsx") == "/data/PRJ001 March_parsed.json"


class TestAnalyzeCommand:
    def test_describes_sheets(self, config_path, workbook_path, capsys):
        assert main(['--config', config_path, 'analyze', workbook_path]) == 0
        output = capsys.readouterr().out

        assert "Classifier profile: default" in output
        assert "Search window: 50 rows x 20 columns" in output
        assert "Sheets found: 4" in output
        assert '"Summary" -> Summary' in output
        assert "Row 3: A3: Project Name | B3: Metro Line Extension" in output
        assert "B6: 50000000" in output
        assert '"Physical Progress" -> PhysicalProgress' in output
        assert '"project" found at A3' in output

    def test_corrupt_workbook(self, config_path, tmp_path, capsys):
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"not a zip")

        assert main(['--config', config_path, 'analyze', str(path)]) == 1
        assert "Error reading workbook" in capsys.readouterr().out
