"""
Unit tests for config_loader module.
"""

import logging
import tempfile
import shutil
from pathlib import Path

import pytest
import yaml

from reqman.config_loader import (
    deep_merge,
    get_config_value,
    get_default_config,
    get_logging_level,
    load_config,
    validate_config,
)


class TestConfigLoader:
    """Test class for configuration loading."""

    def setup_method(self):
        """Set up test environment before each test."""
        self.test_dir = Path(tempfile.mkdtemp())
        self.config_path = self.test_dir / "config.yaml"

    def teardown_method(self):
        """Clean up after each test."""
        shutil.rmtree(self.test_dir)

    def test_missing_file_uses_defaults(self):
        """Test that a missing config file falls back to defaults."""
        assert load_config(self.config_path) == get_default_config()

    def test_user_values_override_defaults(self):
        """Test that user values are merged over defaults."""
        self.config_path.write_text(yaml.dump({
            'database': {'path': 'data/tasks.toml', 'schema_path': 'schemas/tasks.json'},
            'ui': {'page_size': 10}
        }), encoding='utf-8')

        config = load_config(self.config_path)

        assert config['database']['path'] == 'data/tasks.toml'
        assert config['database']['schema_path'] == 'schemas/tasks.json'
        assert config['ui']['page_size'] == 10
        assert config['ui']['page_title'] == 'Reqman'
        assert config['logging']['level'] == 'INFO'

    @pytest.mark.parametrize("content", ["", "database: [", "- just\n- a list\n"])
    def test_unusable_file_uses_defaults(self, content):
        """Test that empty, broken or non-mapping files fall back to defaults."""
        self.config_path.write_text(content, encoding='utf-8')

        assert load_config(self.config_path) == get_default_config()

    def test_deep_merge_does_not_mutate(self):
        base = {'a': {'x': 1, 'y': 2}}

        merged = deep_merge(base, {'a': {'y': 3}, 'b': 4})

        assert merged == {'a': {'x': 1, 'y': 3}, 'b': 4}
        assert base == {'a': {'x': 1, 'y': 2}}

    def test_get_config_value(self):
        config = {'database': {'path': 'db.toml', 'schema_path': None}, 'ui': 'broken'}

        assert get_config_value(config, 'database', 'path') == 'db.toml'
        assert get_config_value(config, 'database', 'schema_path', 'fallback') == 'fallback'
        assert get_config_value(config, 'ui', 'page_size', 50) == 50
        assert get_config_value(config, 'missing', 'key') is None

    def test_default_config_is_valid(self):
        assert validate_config(get_default_config()) == []

    def test_validate_config_reports_problems(self):
        config = get_default_config()
        config['database']['path'] = ''
        config['logging']['level'] = 'LOUD'
        config['ui']['page_size'] = 0

        problems = validate_config(config)

        assert len(problems) == 3
        assert "database.path must be a non-empty string" in problems

    @pytest.mark.parametrize("level, expected", [
        ('debug', logging.DEBUG),
        ('WARNING', logging.WARNING),
        ('nonsense', logging.INFO),
        (None, logging.INFO),
    ])
    def test_get_logging_level(self, level, expected):
        assert get_logging_level(level) == expected
