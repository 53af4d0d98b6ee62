"""Core signal logic: indicators, providers, consensus and session gating.

This package contains pure business logic with no I/O dependencies
(no database, no network access). Market data, sentiment scores and the
clock are injected, so the same code runs under the live service
(signal_app/) and under tests with fixed data.
"""
