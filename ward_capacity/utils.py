## ward_capacity/utils.py

from __future__ import annotations
import logging, os, time
from functools import wraps
from typing import Any, Callable

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger("ward_capacity")


def configure_logging(log_dir: str = "logs", level: str | None = None):
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL", "INFO")).upper(),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "pipeline.log")),
            logging.StreamHandler()
        ],
    )


class Retryable(Exception):
    pass


def retry(times: int = 3, delay: float = 1.0):
    def deco(fn: Callable[..., Any]):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            last = None
            for i in range(times):
                try:
                    return fn(*args, **kwargs)
                except Retryable as e:
                    last = e
                    logger.warning(f"Retry {i+1}/{times} for {fn.__name__}: {e}")
                    if i + 1 < times:
                        time.sleep(delay * (2 ** i))
            raise last if last else Exception("Retry failed")
        return wrapper
    return deco


def now_ms() -> int:
    return int(time.time() * 1000)


def load_yaml(path: str) -> dict:
    import yaml
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def ensure_dirs():
    for d in ("incoming", "quarantine", "data", "logs"):
        os.makedirs(d, exist_ok=True)
