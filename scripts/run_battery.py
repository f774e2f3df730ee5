import os
import subprocess
import sys

from libs.config import get_setting

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

APP = "services.battery_service.app:app"
HOST = str(get_setting("service.host", "0.0.0.0"))
PORT = int(get_setting("service.port", 5000))


def build_command() -> list:
    return [
        sys.executable, "-m", "uvicorn", APP,
        "--host", HOST,
        "--port", str(PORT),
        "--log-level", str(get_setting("log.level", "INFO")).lower(),
    ]


def main() -> int:
    env = os.environ.copy()
    # 关键：让 ROOT 在 sys.path 上，这样 services/ libs/ 可导入
    env["PYTHONPATH"] = ROOT + (os.pathsep + env["PYTHONPATH"] if env.get("PYTHONPATH") else "")

    print(f"Starting battery_service on {HOST}:{PORT} ...")
    proc = subprocess.Popen(build_command(), cwd=ROOT, env=env)
    try:
        return proc.wait()
    except KeyboardInterrupt:
        print("\nStopping...")
        proc.terminate()
        try:
            proc.wait(timeout=10)
        except subprocess.TimeoutExpired:
            proc.kill()
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
