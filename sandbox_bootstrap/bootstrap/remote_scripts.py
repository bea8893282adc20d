"""Python snippets executed inside the sandbox via the provider's run_code.

Every snippet receives its inputs as a JSON document bound to `PARAMS` and
reports back through one `RESULT_PREFIX` line on stdout, so callers never
scrape free-form output.
"""

from __future__ import annotations

import json
from typing import Any

RESULT_PREFIX = "__BOOTSTRAP_RESULT__:"

_EMIT = """
def _emit(payload):
    print(RESULT_PREFIX + json.dumps(payload))
"""

_WRITE_FILES = """
import os

written = []
for item in PARAMS["files"]:
    full = os.path.join(PARAMS["app_dir"], item["path"])
    os.makedirs(os.path.dirname(full), exist_ok=True)
    with open(full, "w", encoding="utf-8") as fh:
        fh.write(item["content"])
    written.append(item["path"])
_emit({"written": written})
"""

_NPM_INSTALL = """
import subprocess

try:
    proc = subprocess.run(
        ["npm", "install"],
        cwd=PARAMS["app_dir"],
        capture_output=True,
        text=True,
        timeout=PARAMS["timeout_s"],
    )
    _emit({"exit_code": proc.returncode, "stderr": (proc.stderr or "")[-2000:], "timed_out": False})
except subprocess.TimeoutExpired:
    _emit({"exit_code": 124, "stderr": "npm install timed out", "timed_out": True})
"""

_KILL_STRAY = """
import subprocess

try:
    proc = subprocess.run(["pkill", "-f", PARAMS["pattern"]], capture_output=True, timeout=10)
    _emit({"exit_code": proc.returncode})
except subprocess.TimeoutExpired:
    _emit({"exit_code": 124})
"""

_START_DEV_SERVER = """
import os
import subprocess
import time

env = os.environ.copy()
env.update(PARAMS["env"])
out = open(PARAMS["log_path"], "a", encoding="utf-8", errors="replace")
err = open(PARAMS["err_path"], "w+", encoding="utf-8", errors="replace")
proc = subprocess.Popen(
    PARAMS["cmd"],
    cwd=PARAMS["app_dir"],
    env=env,
    stdout=out,
    stderr=err,
    start_new_session=True,
)
time.sleep(PARAMS["probe_s"])
rc = proc.poll()
if rc is None:
    _emit({"pid": proc.pid})
else:
    err.flush()
    err.seek(0)
    _emit({"pid": None, "exit_code": rc, "stderr": err.read()[-2000:]})
"""

_TOUCH = """
import os

path = os.path.join(PARAMS["app_dir"], PARAMS["path"])
if os.path.exists(path):
    os.utime(path, None)
    _emit({"touched": True})
else:
    _emit({"touched": False})
"""


def _script(body: str, **params: Any) -> str:
    header = (
        "import json\n"
        f"RESULT_PREFIX = {RESULT_PREFIX!r}\n"
        f"PARAMS = json.loads({json.dumps(params)!r})\n"
    )
    return header + _EMIT + body


def write_files_script(*, app_dir: str, files: list[tuple[str, str]]) -> str:
    return _script(
        _WRITE_FILES,
        app_dir=app_dir,
        files=[{"path": p, "content": c} for p, c in files],
    )


def npm_install_script(*, app_dir: str, timeout_s: int) -> str:
    return _script(_NPM_INSTALL, app_dir=app_dir, timeout_s=int(timeout_s))


def kill_stray_script(*, pattern: str) -> str:
    return _script(_KILL_STRAY, pattern=pattern)


def start_dev_server_script(
    *,
    app_dir: str,
    cmd: list[str],
    env: dict[str, str],
    probe_s: float,
    log_path: str = "/tmp/vite-dev.log",
    err_path: str = "/tmp/vite-dev.err",
) -> str:
    return _script(
        _START_DEV_SERVER,
        app_dir=app_dir,
        cmd=list(cmd),
        env=dict(env),
        probe_s=float(probe_s),
        log_path=log_path,
        err_path=err_path,
    )


def touch_script(*, app_dir: str, path: str) -> str:
    return _script(_TOUCH, app_dir=app_dir, path=path)


def parse_result(stdout: str) -> dict[str, Any] | None:
    """Return the last structured result emitted by a snippet, if any."""
    for line in reversed((stdout or "").splitlines()):
        line = line.strip()
        if not line.startswith(RESULT_PREFIX):
            continue
        try:
            data = json.loads(line[len(RESULT_PREFIX) :])
        except ValueError:
            return None
        return data if isinstance(data, dict) else None
    return None
