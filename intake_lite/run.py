#!/usr/bin/env python3
"""
Quick runner for Intake Service
===============================

Usage:
    python -m intake_lite.run
    # or
    python intake_lite/run.py
"""

import uvicorn

if __name__ == "__main__":
    print("Starting Intake Service...")
    print("API docs: http://localhost:8000/docs")
    print("Health:   http://localhost:8000/health")
    print()

    uvicorn.run(
        "intake_lite.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
