"""Run artifact helpers."""

from __future__ import annotations

import json
import platform
import subprocess
import time
from pathlib import Path
from typing import Mapping

from .. import __version__


def git_sha() -> str:
    try:
        out = subprocess.check_output(["git", "rev-parse", "HEAD"], stderr=subprocess.DEVNULL)
        return out.decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def write_manifest(
    path: str | Path,
    *,
    config: Mapping[str, object],
    outcome: Mapping[str, object],
) -> str:
    """Write a manifest JSON file recording the resolved config and the outcome."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    manifest = {
        "git_sha": git_sha(),
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": config,
        "outcome": dict(outcome),
        "environment": {
            "python": platform.python_version(),
            "backpropnets": __version__,
        },
    }
    path.write_text(json.dumps(manifest, indent=2))
    return str(path)
