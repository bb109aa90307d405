"""
Pytest configuration for integration tests.

Runs the webhook app against in-memory tenants and dedup, so no Redis or
desk database is needed.
"""

import os
import sys

# Add project paths to sys.path for imports
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.join(project_root, "packages", "basecore", "src"))
sys.path.insert(0, os.path.join(project_root, "packages", "desk_bridge", "src"))
sys.path.insert(0, os.path.join(project_root, "apps", "bridge-webhook", "src"))

# Set environment variables for tests
os.environ.setdefault("BRIDGE_TENANT_BACKEND", "memory")
os.environ.setdefault("BRIDGE_DEDUP_BACKEND", "memory")
os.environ.setdefault("BRIDGE_GATEWAY_PROVIDER", "stub")
os.environ.setdefault("BRIDGE_LOG_LEVEL", "WARNING")
