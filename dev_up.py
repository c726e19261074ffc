# -----------------------------------------------------------------------------
# dev_up.py: Local dev runner for the Physik Formelsammlung API
# Steps:
#   1. Resolve Settings (.env included)
#   2. Load the catalog with the API's own loader; abort on CatalogError
#   3. Free API_PORT, start `uvicorn api.main:app --reload` with src/ on
#      PYTHONPATH, wait for /health, then relay the server log until Ctrl+C
# -----------------------------------------------------------------------------

from __future__ import annotations
import atexit
import os
import signal
import socket
import subprocess
import sys
import time
import urllib.error
import urllib.request
from pathlib import Path
from typing import List

ROOT = Path(__file__).parent.resolve()
SRC_DIR = str(ROOT / "src")
UVICORN_TARGET = "api.main:app"
READY_TIMEOUT_S = 60.0

if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)


# ---------------------- OUTPUT ----------------------
def say(msg: str): print(f"[dev_up] {msg}", flush=True)
def die(msg: str, code: int = 1): say(f"❌ {msg}"); sys.exit(code)


# ---------------------- PORT ----------------------
def pids_on_port(port: int) -> List[str]:
    if sys.platform.startswith("win"):
        out = subprocess.run(["netstat", "-ano"], capture_output=True, text=True).stdout
        return sorted({ln.split()[-1] for ln in out.splitlines()
                       if f":{port} " in ln and "LISTENING" in ln})
    out = subprocess.run(["lsof", "-t", f"-i:{port}"], capture_output=True, text=True).stdout
    return [pid for pid in out.split() if pid.isdigit()]

def free_port(port: int):
    for pid in pids_on_port(port):
        say(f"Stopping PID {pid} (holds port {port})")
        if sys.platform.startswith("win"):
            subprocess.run(["taskkill", "/PID", pid, "/F"], capture_output=True)
        else:
            try:
                os.kill(int(pid), signal.SIGKILL)
            except ProcessLookupError:
                pass

def port_in_use(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.settimeout(0.5)
        return s.connect_ex((host, port)) == 0

def probe_host(bind_host: str) -> str:
    # 0.0.0.0 is bindable but not connectable
    return "127.0.0.1" if bind_host in ("0.0.0.0", "0") else bind_host


# ---------------------- CHECKS ----------------------
def validate_catalog(catalog_dir: str) -> tuple[int, int]:
    """
    Load the catalog exactly as the API will so schema and expression
    errors show up before the server starts. Returns (formulas, topics).
    """
    from physik.catalog import Catalog
    from physik.errors import CatalogError
    try:
        catalog = Catalog.from_dir(catalog_dir)
    except CatalogError as e:
        die(f"Catalog invalid:\n{e}")
    return len(catalog.formulas), len(catalog.topics)

def healthy(url: str) -> bool:
    try:
        with urllib.request.urlopen(url, timeout=2) as r:
            return r.status == 200
    except (urllib.error.URLError, OSError):
        return False


# ---------------------- SERVER ----------------------
def spawn_api(host: str, port: int) -> subprocess.Popen:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(p for p in (env.get("PYTHONPATH"), SRC_DIR) if p)
    cmd = [sys.executable, "-m", "uvicorn", UVICORN_TARGET,
           "--host", host, "--port", str(port), "--reload"]
    say("▶ " + " ".join(cmd))
    return subprocess.Popen(cmd, cwd=str(ROOT), env=env, text=True,
                            stdout=subprocess.PIPE, stderr=subprocess.STDOUT)

def relay(proc: subprocess.Popen, max_lines: int | None = None):
    n = 0
    while proc.stdout and (max_lines is None or n < max_lines):
        line = proc.stdout.readline()
        if not line:
            if proc.poll() is not None or max_lines is not None:
                return
            time.sleep(0.2)
            continue
        print(f"[api] {line}", end="")
        n += 1


def main():
    from physik.config import Settings

    settings = Settings.from_env()
    say(f"Catalog: {settings.catalog_dir}")
    n_formulas, n_topics = validate_catalog(settings.catalog_dir)
    say(f"✅ {n_formulas} formulas, {n_topics} topics")

    host = probe_host(settings.api_host)
    free_port(settings.api_port)
    if port_in_use(host, settings.api_port):
        die(f"Port {settings.api_port} is still taken.")

    proc = spawn_api(settings.api_host, settings.api_port)

    def stop():
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=3)
            except subprocess.TimeoutExpired:
                proc.kill()
    atexit.register(stop)

    health = f"http://{host}:{settings.api_port}/health"
    deadline = time.time() + READY_TIMEOUT_S
    while not healthy(health):
        if proc.poll() is not None or time.time() > deadline:
            stop()
            relay(proc, max_lines=20)
            die("API did not come up.")
        time.sleep(0.4)
    say(f"✅ API ready, docs at http://{host}:{settings.api_port}/docs")

    try:
        relay(proc)
    except KeyboardInterrupt:
        say("🛑 Ctrl+C, stopping")
    finally:
        stop()


if __name__ == "__main__":
    main()
