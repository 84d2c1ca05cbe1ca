"""
Utility functions and helpers.
"""
from .logging_utils import configure_logging
from .resource_loader import get_app_data_dir, get_config_dir, get_log_dir
from .settings import EditorSettings, load_settings, save_settings

__all__ = [
    'configure_logging',
    'get_app_data_dir',
    'get_config_dir',
    'get_log_dir',
    'EditorSettings',
    'load_settings',
    'save_settings',
]
