import json
import os
import signal
import subprocess
import sys
import time

import requests
from libs.config import get_setting

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
BASE_URL = f"http://127.0.0.1:{int(get_setting('service.port', 5000))}"


def _wait_health(url: str, timeout_s: int = 15) -> None:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        try:
            r = requests.get(url, timeout=1)
            if r.status_code == 200:
                return
        except requests.RequestException:
            pass
        time.sleep(0.3)
    raise RuntimeError(f"service not ready: {url}")


def main() -> None:
    env = os.environ.copy()
    env["PYTHONPATH"] = ROOT + (os.pathsep + env["PYTHONPATH"] if env.get("PYTHONPATH") else "")
    # fast ticks so the demo shows movement within a few seconds
    env.setdefault("TICK_INTERVAL_S", "1")
    runner = subprocess.Popen([sys.executable, "scripts/run_battery.py"], cwd=ROOT, env=env)

    try:
        _wait_health(f"{BASE_URL}/health")

        r1 = requests.get(f"{BASE_URL}/start-simulation", params={"preset": "full"}, timeout=5)
        print("start-simulation:", json.dumps(r1.json(), ensure_ascii=False))

        for _ in range(3):
            time.sleep(2.5)
            r2 = requests.get(f"{BASE_URL}/state", timeout=5)
            sim = (r2.json() or {}).get("simulation") or {}
            print(f"state: soc={sim.get('stateOfCharge')} temp={sim.get('batteryTemperature')} mode={sim.get('mode')}")

        r3 = requests.post(f"{BASE_URL}/stop-simulation", timeout=5)
        print("stop-simulation:", json.dumps(r3.json(), ensure_ascii=False))
    finally:
        try:
            runner.send_signal(signal.SIGINT)
            runner.wait(timeout=8)
        except subprocess.TimeoutExpired:
            runner.terminate()
            runner.wait(timeout=5)


if __name__ == "__main__":
    main()
