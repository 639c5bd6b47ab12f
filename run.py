#!/usr/bin/env python3
"""Run script for maintrack."""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "maintrack.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True
    )
