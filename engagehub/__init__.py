"""EngageHub backend - prediction job queue and worker."""
