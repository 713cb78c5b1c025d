# -*- coding: utf-8 -*-
"""
Epochipy: event-locked epoch analysis with multilevel models.

This package loads continuous neurophysiological recordings through the neo
library, segments event-locked epochs, fits a mixed-effects model of
amplitude by condition across time points and reports predictions with
parametric bootstrap compatibility intervals.
"""

# PEP 396 style version marker
__version__ = "0.1.0"
__license__ = "AGPL-3.0-or-later"

__all__ = ["__version__", "__license__"]
