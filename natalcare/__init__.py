"""Maternal-health risk assessment for offline antenatal care.

This package contains the clinical domain models and the risk scoring logic,
isolated from storage and UI layers for easy testing and reasoning.
"""
