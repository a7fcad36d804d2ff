#!/usr/bin/env python3
"""
Configuration Manager for the MMR processor using Pydantic models.
Loads, saves, updates and resets the JSON configuration file.
"""

import json
import os
from typing import Optional
from pathlib import Path
import logging

from pydantic import ValidationError

from mmr_processor.models.config_models import (
    MMRConfig,
    ConfigSection,
    ConfigUpdateRequest
)

CONFIG_PATH_ENV = 'MMR_CONFIG_PATH'


class ConfigManager:
    """Manages MMR processor configuration using Pydantic models"""

    def __init__(self, config_file_path: Optional[str] = None):
        self.logger = logging.getLogger(self.__class__.__name__)

        config_file_path = config_file_path or os.environ.get(CONFIG_PATH_ENV)
        if config_file_path is None:
            self.config_dir = Path.home() / '.mmr_processor'
            self.config_file = self.config_dir / 'processor_config.json'
        else:
            self.config_file = Path(config_file_path)
            self.config_dir = self.config_file.parent
        os.makedirs(self.config_dir, exist_ok=True)

        self.config = self._load_config()

    def _load_config(self) -> MMRConfig:
        """Load configuration from file, create default if it doesn't exist or is invalid"""
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
                config = MMRConfig(**config_data)
                self.logger.info(f"Loaded configuration from {self.config_file}")
                return config
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                self.logger.error(f"Error loading config file {self.config_file}: {e}")
                self.logger.warning("Falling back to default configuration")
                return MMRConfig.get_default_config()

        default_config = MMRConfig.get_default_config()
        self._save_config(default_config)
        self.logger.info("Created default configuration")
        return default_config

    def _save_config(self, config: MMRConfig) -> None:
        """Save configuration to file"""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(config.model_dump(mode='json'), f, indent=2, ensure_ascii=False)
            self.logger.info(f"Configuration saved to {self.config_file}")
        except OSError as e:
            self.logger.error(f"Error saving config file: {e}")
            raise

    def get_config(self) -> MMRConfig:
        """Get the complete configuration"""
        return self.config

    def update_config(self, update_request: ConfigUpdateRequest) -> MMRConfig:
        """Merge the request values into one section; the whole config is re-validated"""
        section = update_request.section.value
        data = self.config.model_dump(mode='json')
        merged = dict(data[section])
        for field, value in update_request.values.items():
            if field not in merged:
                raise ValueError(f"Unknown field '{field}' in section '{section}'")
            merged[field] = value
        data[section] = merged

        updated = MMRConfig(**data)
        self._save_config(updated)
        self.config = updated
        self.logger.info(f"Configuration section '{section}' updated: {sorted(update_request.values)}")
        return updated

    def set_classifier_profile(self, profile: Optional[str]) -> MMRConfig:
        """Activate a named classifier profile, or None for the defaults only"""
        return self.update_config(ConfigUpdateRequest(
            section=ConfigSection.CLASSIFIER,
            values={'active_profile': profile},
        ))

    def reset_to_defaults(self) -> MMRConfig:
        """Reset configuration to defaults"""
        self.config = MMRConfig.get_default_config()
        self._save_config(self.config)
        self.logger.info("Configuration reset to defaults")
        return self.config

    def get_config_summary(self) -> dict:
        """Get a summary of current configuration for display"""
        classifier = self.config.classifier
        return {
            "search_window": self.config.parser.search_window.model_dump(),
            "tolerances": self.config.parser.tolerances.model_dump(),
            "name_patterns": len(classifier.ordered_name_patterns()),
            "active_profile": classifier.active_profile,
            "profiles": sorted(classifier.profiles),
            "confidence_weights": self.config.confidence_weights.model_dump(),
            "concurrency": self.config.queue.concurrency,
            "max_batch_size": self.config.ingress.max_batch_size,
        }
