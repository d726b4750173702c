# vdupe/jsonio.py
from __future__ import annotations
import dataclasses, json, logging, sys
from typing import Any, Dict, Optional

def enable_json_logging(log_file: Optional[str] = None):
    """Send logs to stderr (errors only) so stdout carries a single JSON payload."""
    # Drop existing handlers to avoid duplicate logs
    for h in logging.root.handlers[:]:
        logging.root.removeHandler(h)
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=logging.ERROR, handlers=handlers,
                        format="%(asctime)s [%(levelname)s] %(message)s")

def to_jsonable(obj: Any) -> Any:
    """Dataclasses (and lists of them) to plain dicts; bytes are left out."""
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {k: to_jsonable(v) for k, v in dataclasses.asdict(obj).items()
                if not isinstance(v, (bytes, bytearray))}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(v) for v in obj]
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    return obj

def success(command: str, data: Dict[str, Any] | list | None = None,
            meta: Optional[Dict[str, Any]] = None, code: int = 0) -> int:
    payload = {"result": "success", "command": command, "data": to_jsonable(data) if data is not None else {}}
    if meta:
        payload["meta"] = meta
    print(json.dumps(payload, ensure_ascii=False, default=str), file=sys.stdout)
    sys.stdout.flush()
    return code

def error(command: str, message: str, debug: Optional[Dict[str, Any]] = None, code: int = 1) -> int:
    payload = {"result": "error", "command": command, "error": message}
    if debug:
        payload["debug"] = debug
    print(json.dumps(payload, ensure_ascii=False), file=sys.stdout)
    sys.stdout.flush()
    return code
