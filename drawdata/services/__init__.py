"""Collection services: durable store, per-source orchestration and the batch runner."""
