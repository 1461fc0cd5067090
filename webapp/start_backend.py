#!/usr/bin/env python3
"""
Start script for the FastAPI backend
"""

import sys
from pathlib import Path

import uvicorn

# Add the repository root to Python path
repo_dir = Path(__file__).parent.parent
sys.path.insert(0, str(repo_dir))

from config.settings import APIConfig

if __name__ == "__main__":
    uvicorn.run(
        "webapp.backend.main:app",
        host=APIConfig.HOST,
        port=APIConfig.PORT,
        reload=True,
        reload_dirs=[str(repo_dir)],
        log_level="info"
    )
