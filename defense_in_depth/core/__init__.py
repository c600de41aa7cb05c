# -*- coding: utf-8 -*-
"""
The 'core' package holds the reference data model, the YAML-backed data
store and the HTTP client used to read the data provider API.
"""
