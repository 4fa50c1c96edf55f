#!/usr/bin/env python3
"""
Simple launcher script for the AetherFlow API.
Run this from the root directory to start the application.
"""

import uvicorn

if __name__ == "__main__":
    print("Starting AetherFlow API with auto-reload...")
    print("API Documentation: http://localhost:8000/docs")
    uvicorn.run(
        "aetherflow.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        reload_dirs=["aetherflow"],
        log_level="info"
    )
