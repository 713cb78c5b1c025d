#!/usr/bin/env python3
"""
Setup shim for Epochipy.

Package metadata, dependencies and the ``epochipy`` console script live in
pyproject.toml; this file only lets older pip versions run an editable install.
"""

from setuptools import setup

setup()
