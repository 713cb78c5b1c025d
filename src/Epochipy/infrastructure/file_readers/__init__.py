# -*- coding: utf-8 -*-
"""
File readers for Epochipy. Recordings are read through neo.
"""
from .neo_adapter import NeoAdapter

__all__ = [
    "NeoAdapter",
]
