"""Rule-based alerting for patient vital signs.

This package contains the alerting domain models and the evaluation engine,
isolated from record stores and delivery channels for easy testing and reasoning.
"""
