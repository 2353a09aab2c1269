#!/usr/bin/env python3
"""
Moderation Console - Development Server Runner
This script properly sets up the Python path and starts the server
"""

import sys
import os

# Add the 'src' directory to Python path so imports work correctly
project_root = os.path.dirname(os.path.abspath(__file__))
src_path = os.path.join(project_root, 'src')

# Insert at beginning of path
if src_path not in sys.path:
    sys.path.insert(0, src_path)


if __name__ == "__main__":
    import uvicorn

    from config.settings import get_settings

    settings = get_settings()

    print("=" * 50)
    print(f"{settings.name} - Development Server")
    print("=" * 50)
    print(f"Starting server on http://{settings.api_host}:{settings.api_port}")
    print("Press Ctrl+C to stop")
    print()

    uvicorn.run(
        "web.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        reload_dirs=[src_path],
        log_level=settings.log_level.lower(),
    )
