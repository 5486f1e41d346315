"""
docagg Services

Supporting services for the evaluator (configuration loading).
"""

from .config_loader import (
    ConfigLoader,
    EvaluatorSettings,
    get_config_loader,
    get_settings,
    reset_config_loader,
)

__all__ = [
    "ConfigLoader",
    "EvaluatorSettings",
    "get_config_loader",
    "get_settings",
    "reset_config_loader",
]
