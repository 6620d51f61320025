"""Insider core — errors, logging, settings, document models and storage.

Everything else in the package (collector, analyzer, scheduling, gateway,
api, cli) builds on these modules and nothing here imports from them.
"""
