#!/usr/bin/env python3
"""
Start a Celery worker or beat for AetherFlow background compaction.

Usage: python start_celery.py [worker|beat]
"""

import sys
from aetherflow.celery_app import celery_app

if __name__ == "__main__":
    mode = sys.argv[1] if len(sys.argv) > 1 else "worker"
    if mode not in ("worker", "beat"):
        print(f"Unknown mode '{mode}', expected worker or beat")
        sys.exit(1)

    print(f"Starting Celery {mode} for AetherFlow...")
    print("Press Ctrl+C to stop")
    try:
        celery_app.start([mode, '--loglevel=info'])
    except KeyboardInterrupt:
        print(f"\nStopping Celery {mode}...")
        sys.exit(0)
