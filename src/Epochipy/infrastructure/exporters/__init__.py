# -*- coding: utf-8 -*-
"""
Exporters Submodule for Epochipy Infrastructure.

Writes observation tables, predictions, bootstrap summaries and model
estimates to CSV.
"""
from .csv_exporter import CSVExporter

__all__ = [
    "CSVExporter",
]
