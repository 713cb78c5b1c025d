# -*- coding: utf-8 -*-
"""
Infrastructure layer: reading recordings from disk and writing results out.
"""
