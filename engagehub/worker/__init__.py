"""Prediction worker - backoff, executor, processor and drivers."""
