#!/usr/bin/env python3
"""
Start both backend and frontend services for OpenPrescriber
"""

import signal
import subprocess
import sys
import time
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))
from config.settings import APIConfig

BACKEND_STARTUP_TIMEOUT = 30


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully"""
    print("\nShutting down OpenPrescriber...")
    sys.exit(0)


def wait_for_backend(timeout: int = BACKEND_STARTUP_TIMEOUT) -> bool:
    """Poll the health endpoint until the API answers"""
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            response = requests.get(f"{APIConfig.API_BASE_URL}/api/health", timeout=2)
            if response.ok:
                health = response.json()
                if health.get("missing"):
                    print(f"⚠️  Missing data files: {', '.join(health['missing'])}")
                return True
        except requests.exceptions.RequestException:
            pass
        time.sleep(1)
    return False


def main():
    signal.signal(signal.SIGINT, signal_handler)

    webapp_dir = Path(__file__).parent

    print("🚀 Starting OpenPrescriber")
    print("=" * 50)

    print("📡 Starting FastAPI backend...")
    backend_process = subprocess.Popen([sys.executable, "start_backend.py"], cwd=webapp_dir)

    if not wait_for_backend():
        print(f"❌ Backend did not answer within {BACKEND_STARTUP_TIMEOUT}s")
        backend_process.terminate()
        sys.exit(1)

    print("🎨 Starting Streamlit frontend...")
    frontend_process = subprocess.Popen([sys.executable, "start_frontend.py"], cwd=webapp_dir)

    print("\n✅ OpenPrescriber started")
    print("=" * 50)
    print(f"🌐 Dashboard: http://localhost:{APIConfig.FRONTEND_PORT}")
    print(f"🔌 API Docs: {APIConfig.API_BASE_URL}/docs")
    print(f"📊 API Health: {APIConfig.API_BASE_URL}/api/health")
    print("=" * 50)
    print("Press Ctrl+C to stop all services")

    processes = [backend_process, frontend_process]
    try:
        for process in processes:
            process.wait()
    except KeyboardInterrupt:
        print("\n🛑 Stopping services...")
        for process in processes:
            process.terminate()
        try:
            for process in processes:
                process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            print("⚠️  Force killing processes...")
            for process in processes:
                process.kill()
        print("✅ All services stopped")


if __name__ == "__main__":
    main()
