"""
Viewer Configuration Manager
Handles loading and saving layout, view and cache preferences.
"""

import copy
import json
import logging
import os

from prof_viewer.rendering.layout_engine import LayoutContext

logger = logging.getLogger(__name__)


class ViewerConfig:
    """
    Manages viewer preferences.
    Preferences are stored under the 'viewer' section of a JSON file; other
    sections of the file are preserved on save.
    """

    DEFAULT_CONFIG = {
        'layout': {
            'row_height': 20.0,
            'padding': 4.0,
            'summary_rows': 2,
            'collapsed_rows': 4,
            'placeholder_height': 20.0
        },
        'view': {
            'min_drag_distance': 5.0,
            'zoom_factor': 2.0
        },
        'cache': {
            'background_fetch': False
        },
        'logging': {
            'level': 'INFO'
        }
    }

    def __init__(self, config_file=None):
        """
        Initialize viewer configuration manager.

        Args:
            config_file: Path to configuration file (optional)
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        if config_file and os.path.exists(config_file):
            self.load()

    def load(self):
        """Load viewer preferences from the configuration file."""
        if not self.config_file or not os.path.exists(self.config_file):
            return

        try:
            # Empty file means defaults
            if os.path.getsize(self.config_file) == 0:
                return

            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading configuration from {self.config_file}: {e}")
            return

        viewer_data = data.get('viewer') if isinstance(data, dict) else None
        if not isinstance(viewer_data, dict):
            return

        for section, defaults in self.DEFAULT_CONFIG.items():
            values = viewer_data.get(section)
            if not isinstance(values, dict):
                continue
            for key, value in values.items():
                if key not in defaults:
                    logger.warning(f"Ignoring unknown setting {section}.{key}")
                    continue
                if not self._type_matches(defaults[key], value):
                    logger.warning(
                        f"Ignoring setting {section}.{key}: expected "
                        f"{type(defaults[key]).__name__}, got {type(value).__name__}"
                    )
                    continue
                self.config[section][key] = value

    @staticmethod
    def _type_matches(default, value) -> bool:
        # bool is an int subclass; keep flags and numbers apart
        if isinstance(default, bool) or isinstance(value, bool):
            return isinstance(default, bool) and isinstance(value, bool)
        if isinstance(default, float):
            return isinstance(value, (int, float))
        return isinstance(value, type(default))

    def save(self):
        """Save viewer preferences to the configuration file."""
        if not self.config_file:
            return

        existing_data = {}
        if os.path.exists(self.config_file) and os.path.getsize(self.config_file) > 0:
            try:
                with open(self.config_file, 'r') as f:
                    existing_data = json.load(f)
            except json.JSONDecodeError:
                # File exists but is not valid JSON, start fresh
                existing_data = {}

        existing_data['viewer'] = self.config

        config_dir = os.path.dirname(self.config_file)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        try:
            with open(self.config_file, 'w') as f:
                json.dump(existing_data, f, indent=2)
        except OSError as e:
            logger.error(f"Error saving configuration to {self.config_file}: {e}")

    def get(self, section, key):
        """
        Get a setting.

        Args:
            section: Section name ('layout', 'view', 'cache', 'logging')
            key: Setting name

        Returns:
            Setting value, falling back to the default
        """
        return self.config.get(section, {}).get(key, self.DEFAULT_CONFIG[section][key])

    def set(self, section, key, value):
        """
        Set a setting and persist it.

        Raises:
            KeyError: If the setting is unknown
        """
        if section not in self.DEFAULT_CONFIG or key not in self.DEFAULT_CONFIG[section]:
            raise KeyError(f"Unknown setting {section}.{key}")
        self.config[section][key] = value
        self.save()

    def layout_context(self) -> LayoutContext:
        """Build layout parameters from the 'layout' section."""
        layout = self.config['layout']
        return LayoutContext(
            row_height=float(layout['row_height']),
            padding=float(layout['padding']),
            summary_rows=int(layout['summary_rows']),
            collapsed_rows=int(layout['collapsed_rows']),
            placeholder_height=float(layout['placeholder_height']),
        )

    def log_level(self) -> int:
        level = logging.getLevelName(str(self.get('logging', 'level')).upper())
        return level if isinstance(level, int) else logging.INFO

    def reset_to_defaults(self):
        """Reset all preferences to defaults."""
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()
