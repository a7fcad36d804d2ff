"""
Tests for loading, updating and resetting the JSON configuration
"""

import json

import pytest
from pydantic import ValidationError

from mmr_processor.config.config_manager import ConfigManager
from mmr_processor.models.config_models import ConfigSection, ConfigUpdateRequest, MMRConfig


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "settings" / "config.json"


class TestLoad:
    def test_creates_default_file(self, config_file):
        manager = ConfigManager(str(config_file))

        assert config_file.exists()
        assert manager.get_config() == MMRConfig.get_default_config()

    def test_loads_existing_file(self, config_file):
        ConfigManager(str(config_file))
        data = json.loads(config_file.read_text())
        data['queue']['concurrency'] = 3
        config_file.write_text(json.dumps(data))

        assert ConfigManager(str(config_file)).get_config().queue.concurrency == 3

    def test_invalid_file_falls_back_to_defaults(self, config_file):
        config_file.parent.mkdir(parents=True)
        config_file.write_text("{not json")

        assert ConfigManager(str(config_file)).get_config() == MMRConfig.get_default_config()

    def test_environment_variable(self, config_file, monkeypatch):
        monkeypatch.setenv('MMR_CONFIG_PATH', str(config_file))
        assert ConfigManager().config_file == config_file


class TestUpdate:
    def test_update_persists(self, config_file):
        manager = ConfigManager(str(config_file))
        manager.update_config(ConfigUpdateRequest(section=ConfigSection.INGRESS, values={'max_batch_size': 5}))

        assert manager.get_config().ingress.max_batch_size == 5
        assert ConfigManager(str(config_file)).get_config().ingress.max_batch_size == 5

    def test_unknown_field(self, config_file):
        manager = ConfigManager(str(config_file))
        with pytest.raises(ValueError, match="Unknown field"):
            manager.update_config(ConfigUpdateRequest(section=ConfigSection.QUEUE, values={'threads': 4}))

    def test_invalid_value_keeps_previous_config(self, config_file):
        manager = ConfigManager(str(config_file))
        with pytest.raises(ValidationError):
            manager.update_config(ConfigUpdateRequest(section=ConfigSection.QUEUE, values={'concurrency': 0}))
        assert manager.get_config().queue.concurrency == 10

    def test_empty_update_rejected(self):
        with pytest.raises(ValidationError):
            ConfigUpdateRequest(section=ConfigSection.QUEUE, values={})

    def test_classifier_profile(self, config_file):
        manager = ConfigManager(str(config_file))

        assert manager.set_classifier_profile('anx_short').classifier.active_profile == 'anx_short'
        with pytest.raises(ValidationError):
            manager.set_classifier_profile('unknown')

    def test_reset(self, config_file):
        manager = ConfigManager(str(config_file))
        manager.update_config(ConfigUpdateRequest(section=ConfigSection.JOBS, values={'max_retries': 1}))

        assert manager.reset_to_defaults().jobs.max_retries == 3
        assert ConfigManager(str(config_file)).get_config().jobs.max_retries == 3

    def test_summary(self, config_file):
        summary = ConfigManager(str(config_file)).get_config_summary()

        assert summary['profiles'] == ['anx_short']
        assert summary['active_profile'] is None
        assert summary['max_batch_size'] == 10
