"""
Utility modules for the CV API
"""
from .app_config_loader import AppConfig, get_app_config, load_app_config

__all__ = [
    'AppConfig',
    'get_app_config',
    'load_app_config',
]
