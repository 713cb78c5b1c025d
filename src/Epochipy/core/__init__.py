# -*- coding: utf-8 -*-
"""
Core domain logic for Epochipy: the recording and epoch data model, analysis
configuration, signal processing and the end-to-end analysis pipeline.
"""
