#!/usr/bin/env python3
"""
Quick runner for ReelReview
===========================

Usage:
    python -m reelreview.run
"""

import uvicorn

if __name__ == "__main__":
    print("Starting ReelReview...")
    print("API docs: http://localhost:8000/docs")
    print("Health:   http://localhost:8000/health")
    print()

    uvicorn.run(
        "reelreview.api:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
