"""Content entities touched by the prediction pipeline."""
