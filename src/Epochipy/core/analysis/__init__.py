# -*- coding: utf-8 -*-
"""
Analysis stages: event extraction, epoching, tabulation, mixed-model
fitting, prediction and the parametric bootstrap.

Submodules are imported explicitly by callers; result containers in
Epochipy.core.results depend on model_spec, so nothing is re-exported here.
"""
