"""Declarative ifcfg-* interface management."""
from .config_engine import ConfigEngine, ActivationPolicy, ApplyResult, kinds

__version__ = "0.1.0"

__all__ = ["ConfigEngine", "ActivationPolicy", "ApplyResult", "kinds", "__version__"]
