# src/Epochipy/core/analysis/registry.py
# -*- coding: utf-8 -*-
"""
Fitter Registry for mixed-model backend registration and lookup.

Backends register themselves via a class decorator, so the optimizer used to
fit the model is an injected dependency selected by name in the analysis
configuration.
"""
import importlib
import logging
from typing import Callable, Dict, List, Type

from Epochipy.shared.error_handling import ConfigurationError

log = logging.getLogger('Epochipy.core.analysis.registry')

# Modules whose import registers the built-in backends
_BUILTIN_BACKEND_MODULES = ("Epochipy.core.analysis.mixed_model",)


class FitterRegistry:
    """
    Registry for MixedModelFitter implementations.

    Example:
        @FitterRegistry.register("statsmodels")
        class StatsmodelsMixedFitter(MixedModelFitter):
            ...
    """

    _registry: Dict[str, Type] = {}
    _builtins_loaded = False

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        """
        Decorator to register a fitter class under ``name``.
        """
        def decorator(fitter_cls: Type) -> Type:
            if name in cls._registry and cls._registry[name] is not fitter_cls:
                log.warning(f"Fitter backend '{name}' is already registered. Overwriting.")
            cls._registry[name] = fitter_cls
            log.debug(f"Registered fitter backend: {name}")
            return fitter_cls
        return decorator

    @classmethod
    def _load_builtins(cls):
        if cls._builtins_loaded:
            return
        for module_name in _BUILTIN_BACKEND_MODULES:
            importlib.import_module(module_name)
        cls._builtins_loaded = True

    @classmethod
    def get(cls, name: str) -> Type:
        """
        Retrieve a registered fitter class by name.

        Raises:
            ConfigurationError: if no backend is registered under ``name``.
        """
        cls._load_builtins()
        fitter_cls = cls._registry.get(name)
        if fitter_cls is None:
            raise ConfigurationError(
                f"Fitter backend '{name}' not found. Available: {cls.list_registered()}"
            )
        return fitter_cls

    @classmethod
    def create(cls, name: str):
        """Instantiate the backend registered under ``name``."""
        return cls.get(name)()

    @classmethod
    def list_registered(cls) -> List[str]:
        """Names of all registered backends."""
        cls._load_builtins()
        return list(cls._registry.keys())

    @classmethod
    def unregister(cls, name: str) -> None:
        """Remove a backend (mainly for testing)."""
        cls._registry.pop(name, None)
