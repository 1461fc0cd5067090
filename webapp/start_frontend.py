#!/usr/bin/env python3
"""
Start script for the Streamlit frontend
"""

import socket
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

sys.path.insert(0, str(Path(__file__).parent.parent))
from config.settings import APIConfig

PORT_ATTEMPTS = 5
REPO_DIR = Path(__file__).parent.parent
DASHBOARD_SCRIPT = Path(__file__).parent / "frontend" / "dashboard.py"


def port_is_free(port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        return sock.connect_ex(("127.0.0.1", port)) != 0


def find_port(first: int = APIConfig.FRONTEND_PORT, attempts: int = PORT_ATTEMPTS) -> Optional[int]:
    """First free port from `first` upward, None when all are taken"""
    for port in range(first, first + attempts):
        if port_is_free(port):
            return port
        print(f"Port {port} is busy, trying next port...")
    return None


def streamlit_command(port: int) -> List[str]:
    return [
        sys.executable, "-m", "streamlit", "run",
        str(DASHBOARD_SCRIPT),
        "--server.port", str(port),
        "--server.address", "0.0.0.0",
        "--browser.gatherUsageStats", "false"
    ]


def main():
    port = find_port()
    if port is None:
        last = APIConfig.FRONTEND_PORT + PORT_ATTEMPTS - 1
        print(f"No free port between {APIConfig.FRONTEND_PORT} and {last}")
        print("Please check if any Streamlit processes are still running")
        sys.exit(1)

    print(f"Starting OpenPrescriber dashboard at http://localhost:{port}")
    print("Press Ctrl+C to stop")

    try:
        subprocess.run(streamlit_command(port), check=True, cwd=REPO_DIR)
    except subprocess.CalledProcessError as e:
        print(f"Dashboard exited with an error: {e}")
        sys.exit(e.returncode)
    except KeyboardInterrupt:
        print("\nShutting down dashboard...")


if __name__ == "__main__":
    main()
