#!/usr/bin/env python3
"""
Inculab REST - Python Backend Server

License: CC-BY-NC-SA 4.0 (compatible with dependencies)
Dependencies: FastAPI (MIT), Uvicorn (BSD 3-Clause), SQLAlchemy (MIT)
"""

# Import startup module
from shared.startup import run_server_startup

# Configuration is loaded and the app assembled here; storage and the
# listener are only touched once startup.run() begins the sequence
startup = run_server_startup()
app = startup.app

if __name__ == '__main__':
    startup.run()
