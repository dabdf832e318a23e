"""Pytest package configuration shared by the relay tests."""

from __future__ import annotations

import os

# Keep the Prometheus exporter from binding a port when apps are built in tests.
os.environ.setdefault("VISION_DISABLE_METRICS", "1")
