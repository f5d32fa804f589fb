## ward_capacity/watcher.py

from __future__ import annotations
import time, glob, os
from .utils import logger, ensure_dirs
from .config import load_settings
from .pipeline import build_orchestrator, process_file


def poll_once(pattern: str, seen: set, cfg_path: str, orchestrator) -> int:
    processed = 0
    for path in sorted(glob.glob(pattern)):
        if path in seen: continue
        process_file(path, cfg_path, orchestrator=orchestrator)
        seen.add(path)
        processed += 1
    return processed


def run(cfg_path: str = "config.yaml"):
    ensure_dirs()
    settings = load_settings(cfg_path)
    pattern = os.path.join("incoming", settings.file_glob)
    poll = settings.watcher.get("poll_seconds", 3)

    seen = set()
    logger.info("Watching for new event files...")
    with build_orchestrator(settings) as orchestrator:
        while True:
            poll_once(pattern, seen, cfg_path, orchestrator)
            time.sleep(poll)
