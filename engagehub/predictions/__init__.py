"""Prediction jobs - models, stores and API."""
